from typing import Literal

from pydantic import HttpUrl, computed_field
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

SslModeLiteral = Literal[
    "disable", "allow", "prefer", "require", "verify-ca", "verify-full"
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "pycrm"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: HttpUrl | None = None
    LOG_LEVEL: str = "INFO"

    # Full connection string; when unset it is built from POSTGRES_*.
    DATABASE_URL: str | None = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "app"

    # TLS verification mode passed to libpq as sslmode.
    DB_SSL_MODE: SslModeLiteral | None = None

    DB_POOL_MAX_SIZE: int = 20
    DB_POOL_IDLE_TIMEOUT_SEC: float = 30.0
    DB_POOL_ACQUIRE_TIMEOUT_SEC: float = 2.0
    DB_POOL_MAX_AGE_SEC: float = 600.0
    DB_POOL_DRAIN_TIMEOUT_SEC: float = 10.0
    DB_CONNECT_TIMEOUT: int = 10
    DB_STATEMENT_TIMEOUT_SEC: float | None = None
    DB_SLOW_QUERY_MS: float = 100.0
    DB_PAGINATION_WORKERS: int = 4

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(
            MultiHostUrl.build(
                scheme="postgresql",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD or None,
                host=self.POSTGRES_SERVER,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_sslmode(self) -> str:
        if self.DB_SSL_MODE:
            return self.DB_SSL_MODE
        return "require" if self.ENVIRONMENT == "production" else "prefer"


settings = Settings()  # type: ignore
