"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

import json
from datetime import datetime
from functools import lru_cache
from typing import Any

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "OneVote"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - loaded from environment

    # Authentication (tokens are issued by the sign-in provider, verified here)
    JWT_ALGORITHM: str = "HS256"

    # Database - explicit URL wins, otherwise PostgreSQL parts
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "onevote"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "onevote"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_CREATE_ALL: bool = False  # Create tables on startup (local development)

    # Election window
    ELECTION_ID: str = "default"
    ELECTION_OPENS_AT: datetime | None = None
    ELECTION_CLOSES_AT: datetime | None = None

    # Identity
    # Optional key for device tokens; when unset a plain SHA-256 digest is used
    IDENTITY_HASH_SALT: str | None = None

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    # Accounts allowed to read the vote audit list (comma-separated ids)
    ADMIN_ACCOUNT_IDS: str = ""

    # Live results
    TALLY_EVENT_QUEUE_SIZE: int = 100

    # Hint sent to clients with a transient failure
    TRANSIENT_RETRY_AFTER_SECONDS: int = 2

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    @model_validator(mode="after")
    def validate_election_window(self) -> "Settings":
        """Reject a window that closes before it opens."""
        if (
            self.ELECTION_OPENS_AT is not None
            and self.ELECTION_CLOSES_AT is not None
            and self.ELECTION_CLOSES_AT <= self.ELECTION_OPENS_AT
        ):
            raise ValueError("ELECTION_CLOSES_AT must be after ELECTION_OPENS_AT")
        return self

    @property
    def database_url(self) -> str:
        """Connection URL for the async engine."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def admin_account_ids(self) -> set[str]:
        """Get admin account ids as a set."""
        return {account.strip() for account in self.ADMIN_ACCOUNT_IDS.split(",") if account.strip()}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
