"""
Execute parameterized statements against the CRM database.

``run_statement`` works on a connection the caller already holds (used by
transactions); ``execute_statement`` leases a connection from the pool for
exactly one statement and always gives it back.
"""

import logging
import time
from typing import Any

import psycopg

from app.core.errors import raise_db_error
from app.core.pool import ConnectionPool, cursor_to_dicts, execute

from .statement import QueryResult, Statement

_log = logging.getLogger(__name__)


def run_statement(conn: Any, statement: Statement, *, slow_query_ms: float) -> QueryResult:
    """Run *statement* on *conn*; engine errors propagate unchanged."""
    started = time.perf_counter()
    cur = execute(conn, statement.sql, statement.args)
    try:
        rows = cursor_to_dicts(cur)
        rowcount = cur.rowcount
    finally:
        cur.close()
    row_count = rowcount if rowcount is not None and rowcount >= 0 else len(rows)

    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms > slow_query_ms:
        # SQL text only; argument values may carry personal data
        _log.warning(
            "Slow query: %.1f ms, %d rows: %s",
            elapsed_ms,
            row_count,
            " ".join(statement.sql.split()),
        )
    return QueryResult(rows=rows, row_count=row_count)


def execute_statement(
    pool: ConnectionPool,
    statement: Statement,
    *,
    slow_query_ms: float,
) -> QueryResult:
    """
    Lease a connection, run one statement, release the connection.

    psycopg errors are normalized into DataAccessError kinds; a connection
    left closed by the failure is discarded instead of pooled.
    """
    try:
        conn = pool.acquire()
    except psycopg.Error as e:
        raise_db_error(e)

    try:
        return run_statement(conn, statement, slow_query_ms=slow_query_ms)
    except psycopg.Error as e:
        raise_db_error(e, statement.sql)
    finally:
        pool.release(conn)
