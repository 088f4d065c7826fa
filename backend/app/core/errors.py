"""
Error taxonomy for the data access layer.

Every failure that leaves the DAL is one of the ``DataAccessError`` kinds
below. Engine-specific failures (psycopg errors carrying a SQLSTATE) are
mapped by ``raise_db_error``; the query executor and the transaction
coordinator are its only direct callers.

| SQLSTATE | Kind                                  |
|----------|---------------------------------------|
| 23505    | ConflictError                         |
| 23503    | ConflictError (referential=True)      |
| 42P01    | SchemaError                           |
| other    | InternalError (detail logged only)    |
"""

import logging
from typing import NoReturn

_log = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
UNDEFINED_TABLE = "42P01"


class DataAccessError(Exception):
    """Base class for all errors raised by the data access layer."""

    code: str = "DATABASE_ERROR"
    http_status: int = 500
    default_message: str = "Database operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConflictError(DataAccessError):
    """Unique or foreign-key constraint violated."""

    code = "CONFLICT"
    http_status = 409
    default_message = "A record with this information already exists"

    def __init__(
        self,
        message: str | None = None,
        *,
        referential: bool = False,
        constraint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.referential = referential
        self.constraint = constraint


class NotFoundError(DataAccessError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class SchemaError(DataAccessError):
    """Missing table: a deployment defect, never retried."""

    code = "SCHEMA_ERROR"
    http_status = 500
    default_message = "Database schema issue: Table does not exist"


class InternalError(DataAccessError):
    code = "INTERNAL_ERROR"
    http_status = 500


class PoolExhaustedError(DataAccessError):
    code = "POOL_EXHAUSTED"
    http_status = 503
    default_message = "Timed out waiting for a database connection"


class PoolClosedError(PoolExhaustedError):
    code = "POOL_CLOSED"
    default_message = "Database connection pool is shut down"


class InvalidRequestError(DataAccessError):
    """Bad input rejected before any SQL reaches the database."""

    code = "VALIDATION_ERROR"
    http_status = 400
    default_message = "Invalid request"


def _constraint_name(exc: BaseException) -> str | None:
    diag = getattr(exc, "diag", None)
    return getattr(diag, "constraint_name", None) if diag is not None else None


def raise_db_error(exc: BaseException, sql: str | None = None) -> NoReturn:
    """Raise the domain error matching *exc*. Never returns.

    Errors that are already ``DataAccessError`` are re-raised unchanged.
    """
    if isinstance(exc, DataAccessError):
        raise exc

    sqlstate = getattr(exc, "sqlstate", None)
    _log.error(
        "Database error (sqlstate=%s): %s%s",
        sqlstate,
        exc,
        f" | sql: {sql}" if sql else "",
    )

    if sqlstate == UNIQUE_VIOLATION:
        raise ConflictError(constraint=_constraint_name(exc)) from exc
    if sqlstate == FOREIGN_KEY_VIOLATION:
        raise ConflictError(
            "Referenced record does not exist",
            referential=True,
            constraint=_constraint_name(exc),
        ) from exc
    if sqlstate == UNDEFINED_TABLE:
        raise SchemaError() from exc
    raise InternalError() from exc
