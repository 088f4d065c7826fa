"""Unit tests for core.errors.raise_db_error."""

import logging

import psycopg
import pytest
from psycopg import errors as pg_errors

from app.core.errors import (
    ConflictError,
    DataAccessError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    PoolClosedError,
    PoolExhaustedError,
    SchemaError,
    raise_db_error,
)


def test_unique_violation_maps_to_conflict() -> None:
    exc = pg_errors.UniqueViolation("duplicate key value violates unique constraint")
    with pytest.raises(ConflictError) as info:
        raise_db_error(exc)
    err = info.value
    assert err.code == "CONFLICT"
    assert err.http_status == 409
    assert err.message == "A record with this information already exists"
    assert err.referential is False
    assert err.__cause__ is exc


def test_foreign_key_violation_maps_to_referential_conflict() -> None:
    exc = pg_errors.ForeignKeyViolation("insert or update violates foreign key")
    with pytest.raises(ConflictError) as info:
        raise_db_error(exc)
    assert info.value.referential is True
    assert info.value.message == "Referenced record does not exist"


def test_undefined_table_maps_to_schema_error() -> None:
    exc = pg_errors.UndefinedTable('relation "contactz" does not exist')
    with pytest.raises(SchemaError) as info:
        raise_db_error(exc, "SELECT * FROM contactz")
    assert info.value.code == "SCHEMA_ERROR"
    assert info.value.message == "Database schema issue: Table does not exist"


def test_other_errors_map_to_internal_error() -> None:
    exc = psycopg.OperationalError("server closed the connection unexpectedly")
    with pytest.raises(InternalError) as info:
        raise_db_error(exc)
    assert info.value.message == "Database operation failed"
    assert "server closed" not in info.value.message
    assert info.value.__cause__ is exc


def test_non_psycopg_exception_maps_to_internal_error() -> None:
    with pytest.raises(InternalError):
        raise_db_error(ValueError("bad"))


def test_data_access_error_passes_through() -> None:
    original = NotFoundError("Contact")
    with pytest.raises(NotFoundError) as info:
        raise_db_error(original)
    assert info.value is original


def test_failure_is_logged_with_sqlstate_and_sql(caplog: pytest.LogCaptureFixture) -> None:
    exc = pg_errors.UniqueViolation("dup")
    with caplog.at_level(logging.ERROR, logger="app.core.errors"):
        with pytest.raises(ConflictError):
            raise_db_error(exc, 'INSERT INTO "contacts" ("email") VALUES (%s)')
    text = caplog.text
    assert "23505" in text
    assert 'INSERT INTO "contacts"' in text


def test_not_found_message() -> None:
    assert NotFoundError().message == "Resource not found"
    assert NotFoundError("Deal").message == "Deal not found"
    assert NotFoundError("Deal").http_status == 404


def test_pool_errors_are_service_unavailable() -> None:
    assert PoolExhaustedError().http_status == 503
    assert isinstance(PoolClosedError(), PoolExhaustedError)
    assert PoolClosedError().code == "POOL_CLOSED"


def test_invalid_request_custom_message() -> None:
    err = InvalidRequestError("page must be >= 1")
    assert isinstance(err, DataAccessError)
    assert str(err) == "page must be >= 1"
    assert err.http_status == 400
