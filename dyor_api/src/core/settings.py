from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from src.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="DYOR Hub API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for DYOR Hub, a community platform for researching Solana tokens. "
            "Provides comments, token calls, watchlists, tips and gamification."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Comma-separated list or JSON array of allowed origins.",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed badge definitions after migrations.",
    )
    ENABLE_SCHEDULER: bool = Field(
        default=True,
        description="If true, start the background job scheduler at app startup.",
    )

    # JWT / auth cookie
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC secret for signing JWTs")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=24 * 60)
    AUTH_COOKIE_NAME: str = Field(default="jwt")
    AUTH_COOKIE_SECURE: bool = Field(default=False)

    # External services
    BIRDEYE_API_KEY: Optional[str] = Field(default=None, description="Birdeye public API key")
    BIRDEYE_BASE_URL: str = Field(default="https://public-api.birdeye.so")
    SOLANA_RPC_URL: str = Field(default="https://api.mainnet-beta.solana.com")
    HTTP_TIMEOUT_SECONDS: float = Field(default=10.0)

    # Platform token
    DYORHUB_TOKEN_MINT: Optional[str] = Field(
        default=None, description="Mint address of the $DYORHUB SPL token"
    )
    DYORHUB_TOKEN_DECIMALS: int = Field(default=6)
    MIN_TOKEN_HOLDING_FOR_FOLDERS: float = Field(default=500_000)

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      A new instance is constructed on each call so tests can adjust the
      environment between calls.
    """
    return AppSettings()
