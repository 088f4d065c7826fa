from collections.abc import Generator

import pytest

from app.core.database import Database
from app.core.pool import ConnectionPool
from tests.utils.fake_db import FakeServer


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def pool(server: FakeServer) -> Generator[ConnectionPool, None, None]:
    p = ConnectionPool(
        server.connect,
        max_size=4,
        idle_timeout=60.0,
        acquire_timeout=0.2,
        max_age=600.0,
        drain_timeout=0.2,
    )
    yield p
    p.shutdown()


@pytest.fixture
def db(pool: ConnectionPool) -> Generator[Database, None, None]:
    database = Database(pool, slow_query_ms=10_000, pagination_workers=2)
    yield database
    database.end()
