"""
Connection helpers for the CRM database.

Connections are psycopg 3 connections opened in autocommit mode: a single
statement commits on its own, and multi-statement work issues BEGIN/COMMIT
explicitly through the transaction coordinator.
"""

from typing import Any

import psycopg

from app.core.config import settings


def connect(
    conninfo: str | None = None,
    *,
    sslmode: str | None = None,
    connect_timeout: int | None = None,
    statement_timeout: float | None = None,
) -> psycopg.Connection:
    """
    Open a connection to the CRM database.

    - conninfo: libpq URL or key/value string; defaults to settings.database_url.
    - sslmode: TLS verification mode; defaults to settings.db_sslmode.
    - statement_timeout: seconds; when set, applied server-side for the
      whole session via the ``options`` startup parameter.
    """
    kwargs: dict[str, Any] = {
        "sslmode": sslmode or settings.db_sslmode,
        "connect_timeout": connect_timeout or settings.DB_CONNECT_TIMEOUT,
    }
    timeout_sec = (
        statement_timeout
        if statement_timeout is not None
        else settings.DB_STATEMENT_TIMEOUT_SEC
    )
    if timeout_sec is not None and timeout_sec > 0:
        kwargs["options"] = f"-c statement_timeout={int(timeout_sec * 1000)}"

    return psycopg.connect(
        conninfo or settings.database_url,
        autocommit=True,
        **kwargs,
    )


def execute(
    conn: Any,
    sql: str,
    params: tuple | list | None = None,
) -> Any:
    """
    Execute SQL and return the cursor. Caller uses cursor_to_dicts(cursor) or
    cursor.rowcount, then closes the cursor.
    """
    cur = conn.cursor()
    try:
        if params:
            cur.execute(sql, params)
        else:
            cur.execute(sql)
    except BaseException:
        cur.close()
        raise
    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts (empty when no result set)."""
    desc = cursor.description
    if desc is None:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]
