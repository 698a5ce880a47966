"""Database settings (DB_ prefix).

SQLite through aiosqlite is the default so the back office runs with no
server. Production points DB_DRIVER/DB_HOST/... (or DB_URL) at PostgreSQL
through asyncpg.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """
    Connection and pool settings.

    Example environment:
        DB_DRIVER=postgresql+asyncpg
        DB_HOST=db.internal
        DB_NAME=staffing
        DB_USER=staffing
        DB_PASSWORD=secret
        DB_LOCK_TIMEOUT_MS=5000

    DB_URL, when set, is used as-is.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    driver: str = Field(default="sqlite+aiosqlite", description="sqlite+aiosqlite or postgresql+asyncpg")
    url: Optional[str] = Field(default=None, description="Full async URL; overrides the fields below")

    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    name: str = Field(default="staffing")
    user: str = Field(default="")
    password: str = Field(default="")

    sqlite_path: Path = Field(default=Path("data/staffing.db"), description="SQLite database file")

    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=60)
    pool_pre_ping: bool = Field(default=True)

    echo_sql: bool = Field(default=False, description="Log every SQL statement")
    query_timeout: int = Field(default=30, ge=1, description="Statement timeout in seconds")
    lock_timeout_ms: int = Field(
        default=5000,
        ge=0,
        description="How long an assignment waits for a locked position row (PostgreSQL only)",
    )
    application_name: str = Field(default="staffing-backoffice")

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in (self.url or self.driver).lower()

    @computed_field
    @property
    def is_postgres(self) -> bool:
        return "postgres" in (self.url or self.driver).lower()

    @computed_field
    @property
    def async_url(self) -> str:
        """URL handed to create_async_engine (creates the SQLite directory)."""
        if self.url:
            return self.url

        if self.is_sqlite:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.sqlite_path.absolute()}"

        credentials = ""
        if self.user:
            credentials = self.user + (f":{self.password}" if self.password else "") + "@"
        return f"{self.driver}://{credentials}{self.host}:{self.port}/{self.name}"

    def get_connect_args(self) -> Dict[str, Any]:
        if self.is_sqlite:
            return {"check_same_thread": False, "timeout": self.query_timeout}

        return {
            "command_timeout": self.query_timeout,
            "server_settings": {
                "application_name": self.application_name,
                "lock_timeout": str(self.lock_timeout_ms),
            },
        }


@lru_cache
def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings()
