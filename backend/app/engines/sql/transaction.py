"""
All-or-nothing multi-statement work on one pooled connection.

    BEGIN -> work(tx) -> COMMIT
               |
           exception -> ROLLBACK -> re-raise

The connection is released in every case. Statements inside ``work`` run
strictly in submission order on the same connection.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import psycopg

from app.core.errors import InternalError, InvalidRequestError, raise_db_error
from app.core.pool import ConnectionPool

from .builders import CrudMixin
from .executor import run_statement
from .statement import QueryResult, Statement
from .tables import TableSpec

_log = logging.getLogger(__name__)

T = TypeVar("T")


class Transaction(CrudMixin):
    """Handle passed to transactional work; bound to one leased connection."""

    def __init__(
        self,
        conn: Any,
        *,
        tables: Mapping[str, TableSpec],
        slow_query_ms: float,
    ) -> None:
        self._conn = conn
        self.tables = tables
        self._slow_query_ms = slow_query_ms
        self._active = True
        self._failed: psycopg.Error | None = None

    @property
    def connection(self) -> Any:
        return self._conn

    @property
    def aborted(self) -> bool:
        """True once a statement has failed; the server ignores the rest."""
        if self._failed is not None:
            return True
        info = getattr(self._conn, "info", None)
        status = getattr(info, "transaction_status", None)
        return status == psycopg.pq.TransactionStatus.INERROR

    def execute(self, sql: str | Statement, args: Any = None) -> QueryResult:
        if not self._active:
            raise InvalidRequestError("Transaction is no longer active")
        try:
            return run_statement(
                self._conn, Statement.of(sql, args), slow_query_ms=self._slow_query_ms
            )
        except psycopg.Error as e:
            self._failed = e
            raise

    def run_in_transaction(self, work: Callable[["Transaction"], T]) -> T:
        raise InvalidRequestError("Nested transactions are not supported")


def _rollback(conn: Any) -> bool:
    try:
        conn.execute("ROLLBACK")
        return True
    except Exception:
        _log.exception("Rollback failed; discarding connection")
        return False


def run_in_transaction(
    pool: ConnectionPool,
    work: Callable[[Transaction], T],
    *,
    tables: Mapping[str, TableSpec],
    slow_query_ms: float,
) -> T:
    """
    Run *work* inside BEGIN/COMMIT on one connection and return its result.

    On any exception from BEGIN, *work* or COMMIT a ROLLBACK is issued before
    the error is re-raised: psycopg errors as normalized DataAccessError
    kinds, anything else unchanged. A failing ROLLBACK is logged and never
    replaces the original error.

    If *work* swallows a statement error and returns, the transaction is
    rolled back and InternalError is raised instead of committing.
    """
    try:
        conn = pool.acquire()
    except psycopg.Error as e:
        raise_db_error(e)

    tx = Transaction(conn, tables=tables, slow_query_ms=slow_query_ms)
    broken = False
    try:
        conn.execute("BEGIN")
        result = work(tx)
        if tx.aborted:
            msg = "Transaction aborted by an earlier statement error"
            raise InternalError(msg) from tx._failed
        conn.execute("COMMIT")
        return result
    except Exception as exc:
        broken = not _rollback(conn)
        if isinstance(exc, psycopg.Error):
            raise_db_error(exc)
        raise
    finally:
        tx._active = False
        pool.release(conn, discard=broken)
