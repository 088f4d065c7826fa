"""Unit tests for core.config.Settings computed fields."""

from app.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_database_url_built_from_postgres_fields() -> None:
    s = _settings(
        POSTGRES_SERVER="db",
        POSTGRES_PORT=5433,
        POSTGRES_USER="crm",
        POSTGRES_PASSWORD="secret",
        POSTGRES_DB="crm",
    )
    assert s.database_url == "postgresql://crm:secret@db:5433/crm"


def test_database_url_override_wins() -> None:
    s = _settings(DATABASE_URL="postgresql://other/crm", POSTGRES_SERVER="db")
    assert s.database_url == "postgresql://other/crm"


def test_sslmode_defaults_by_environment() -> None:
    assert _settings(ENVIRONMENT="production").db_sslmode == "require"
    assert _settings(ENVIRONMENT="local").db_sslmode == "prefer"
    assert _settings(ENVIRONMENT="production", DB_SSL_MODE="verify-full").db_sslmode == (
        "verify-full"
    )


def test_pool_defaults() -> None:
    s = _settings()
    assert s.DB_POOL_MAX_SIZE == 20
    assert s.DB_POOL_IDLE_TIMEOUT_SEC == 30.0
    assert s.DB_POOL_ACQUIRE_TIMEOUT_SEC == 2.0
