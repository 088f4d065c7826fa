"""Tests for /api/v1/utils routes and the DataAccessError handler."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.deps import get_db
from app.core.config import settings
from app.core.database import Database
from app.core.errors import (
    ConflictError,
    DataAccessError,
    InvalidRequestError,
    NotFoundError,
    PoolExhaustedError,
    SchemaError,
)
from app.main import app, data_access_exception_handler


@pytest.fixture
def client(db: Database) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_liveness(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/liveness/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_200_when_ready(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_503_when_readiness_fails(client: TestClient) -> None:
    with patch(
        "app.api.routes.utils.readiness_check", return_value=(False, ["postgres"])
    ):
        r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 503
    data = r.json()
    assert data["success"] is False
    assert data["data"] == ["postgres"]


def test_health_check_after_shutdown(client: TestClient, db: Database) -> None:
    db.end()
    r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 503
    assert r.json()["data"] == ["pool_closed"]


def test_pool_stats(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/pool-stats/")
    assert r.status_code == 200
    assert r.json() == {"max_size": 4, "idle": 0, "in_use": 0, "closed": False}


@pytest.fixture
def raising_client() -> TestClient:
    """A bare app whose routes raise DAL errors through the shared handler."""
    errors = {
        "conflict": ConflictError(),
        "missing": NotFoundError("Contact"),
        "schema": SchemaError(),
        "pool": PoolExhaustedError(),
        "invalid": InvalidRequestError("page must be >= 1"),
    }
    bare = FastAPI()
    bare.add_exception_handler(DataAccessError, data_access_exception_handler)

    @bare.get("/raise/{kind}")
    def _raise(kind: str) -> None:
        raise errors[kind]

    return TestClient(bare)


@pytest.mark.parametrize(
    "kind,status,code,detail",
    [
        ("conflict", 409, "CONFLICT", "A record with this information already exists"),
        ("missing", 404, "NOT_FOUND", "Contact not found"),
        ("schema", 500, "SCHEMA_ERROR", "Database schema issue: Table does not exist"),
        ("pool", 503, "POOL_EXHAUSTED", "Timed out waiting for a database connection"),
        ("invalid", 400, "VALIDATION_ERROR", "page must be >= 1"),
    ],
)
def test_data_access_errors_map_to_status(
    raising_client: TestClient, kind: str, status: int, code: str, detail: str
) -> None:
    r = raising_client.get(f"/raise/{kind}")
    assert r.status_code == status
    assert r.json() == {"detail": detail, "code": code}


@patch("app.main.Database")
def test_lifespan_builds_and_ends_database(mock_db_cls: MagicMock) -> None:
    with TestClient(app):
        assert app.state.db is mock_db_cls.from_settings.return_value
    mock_db_cls.from_settings.return_value.end.assert_called_once()
