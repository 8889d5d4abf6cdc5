from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DRIVER_PREFIX = re.compile(r"^(postgresql|postgres)(\+\w+)?://")


class Settings(BaseSettings):
    """
    PostgreSQL connection for the DYOR Hub database.

    POSTGRES_URL wins when set; otherwise the URL is assembled from
    POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_HOST and POSTGRES_PORT.
    """

    POSTGRES_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    SQL_ECHO: bool = Field(default=False, description="Log every SQL statement")
    DB_POOL_SIZE: int = Field(default=10, description="Connections kept by the asyncpg pool")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def database_url(self) -> str:
        if self.POSTGRES_URL:
            return self.POSTGRES_URL
        missing = [
            name
            for name in ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Database configuration missing: set POSTGRES_URL or {', '.join(missing)}")
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def async_database_url(self) -> str:
        """URL with the asyncpg driver, used by the application engine and online migrations."""
        return _DRIVER_PREFIX.sub("postgresql+asyncpg://", self.database_url)

    @property
    def sync_database_url(self) -> str:
        """Driverless URL for Alembic offline mode."""
        return _DRIVER_PREFIX.sub("postgresql://", self.database_url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return database settings populated from the environment."""
    return Settings()
