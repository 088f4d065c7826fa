"""
Database handle for the CRM backend.

``Database`` owns the process-wide ``ConnectionPool`` and is the single
entry point model code uses: execute, run_in_transaction and the generic
CRUD builders. Construct it once (``Database.from_settings()`` in the app
lifespan), pass it to whoever needs it, and call ``end()`` once at
shutdown.
"""

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from app.core.config import settings
from app.core.errors import PoolClosedError
from app.core.pool import ConnectionPool, health_check
from app.engines.sql import builders
from app.engines.sql.builders import CrudMixin, Page
from app.engines.sql.executor import execute_statement
from app.engines.sql.statement import QueryResult, Statement
from app.engines.sql.tables import TABLES, FieldMap, TableSpec
from app.engines.sql.transaction import Transaction, run_in_transaction

_log = logging.getLogger(__name__)

T = TypeVar("T")


class Database(CrudMixin):
    def __init__(
        self,
        pool: ConnectionPool,
        *,
        tables: Mapping[str, TableSpec] = TABLES,
        slow_query_ms: float | None = None,
        pagination_workers: int | None = None,
    ) -> None:
        self.pool = pool
        self.tables = tables
        self._slow_query_ms = (
            slow_query_ms if slow_query_ms is not None else settings.DB_SLOW_QUERY_MS
        )
        self._workers = ThreadPoolExecutor(
            max_workers=pagination_workers or settings.DB_PAGINATION_WORKERS,
            thread_name_prefix="db-query",
        )
        self._end_lock = threading.Lock()
        self._ended = False

    @classmethod
    def from_settings(cls) -> "Database":
        return cls(ConnectionPool())

    def execute(self, sql: str | Statement, args: Any = None) -> QueryResult:
        """Run one parameterized statement on a pooled connection."""
        return execute_statement(
            self.pool, Statement.of(sql, args), slow_query_ms=self._slow_query_ms
        )

    def execute_concurrently(self, *statements: Statement) -> list[QueryResult]:
        """Run independent statements in parallel, each on its own connection."""
        if self._ended:
            raise PoolClosedError()
        try:
            futures = [self._workers.submit(self.execute, s) for s in statements]
        except RuntimeError as e:
            # end() shut the workers down between the check and the submit
            raise PoolClosedError() from e
        return [f.result() for f in futures]

    def run_in_transaction(self, work: Callable[[Transaction], T]) -> T:
        return run_in_transaction(
            self.pool,
            work,
            tables=self.tables,
            slow_query_ms=self._slow_query_ms,
        )

    def find_with_pagination(
        self,
        table: str,
        filters: FieldMap | None = None,
        *,
        page: int = builders.DEFAULT_PAGE,
        limit: int = builders.DEFAULT_LIMIT,
        order_by: str = builders.DEFAULT_ORDER_BY,
        order: str = builders.DEFAULT_ORDER,
        fields: str | Sequence[str] = "*",
    ) -> Page:
        return builders.find_with_pagination(
            self,
            table,
            filters,
            page=page,
            limit=limit,
            order_by=order_by,
            order=order,
            fields=fields,
        )

    def health_check(self) -> bool:
        """Lease a connection and run SELECT 1. False on any failure."""
        try:
            conn = self.pool.acquire()
        except Exception:
            return False
        try:
            return health_check(conn)
        finally:
            self.pool.release(conn)

    def stats(self) -> dict[str, int | bool]:
        return self.pool.stats()

    def end(self) -> None:
        """Drain and close the pool. Later calls are no-ops."""
        with self._end_lock:
            if self._ended:
                _log.warning("Database.end() called more than once")
                return
            self._ended = True
        self._workers.shutdown(wait=True)
        self.pool.shutdown()
