from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=(str(Path(__file__).resolve().parents[1] / ".env"), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    app_name: str = Field(default="Workflow Sync API", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="production",
        alias="APP_ENV",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "https://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    database_url: str = Field(default="sqlite:///./workflows.db", alias="DATABASE_URL")
    db_pool_size: int = Field(default=10, ge=1, le=100, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, ge=0, le=200, alias="DB_MAX_OVERFLOW")

    universal_loader_base_url: str = Field(
        default="https://api-test.universal-loader.com",
        alias="UNIVERSAL_LOADER_BASE_URL",
    )
    universal_loader_company_id: str = Field(default="", alias="UNIVERSAL_LOADER_COMPANY_ID")
    universal_loader_user_id: str = Field(default="", alias="UNIVERSAL_LOADER_USER_ID")
    universal_loader_user_secret: SecretStr = Field(
        default=SecretStr(""),
        alias="UNIVERSAL_LOADER_USER_SECRET",
    )
    remote_timeout_seconds: float = Field(default=30.0, gt=0, le=600, alias="REMOTE_TIMEOUT_SECONDS")
    token_refresh_margin_seconds: int = Field(default=300, ge=0, alias="TOKEN_REFRESH_MARGIN_SECONDS")

    sync_enabled: bool = Field(default=True, alias="SYNC_ENABLED")
    sync_interval_seconds: float = Field(default=1800.0, gt=0, alias="SYNC_INTERVAL_SECONDS")

    @field_validator("api_v1_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        """Ensure the API prefix starts with a slash and has no trailing slash."""
        normalized = value.strip()
        if not normalized.startswith("/"):
            raise ValueError("API_V1_PREFIX must start with '/'.")
        if len(normalized) > 1 and normalized.endswith("/"):
            normalized = normalized.rstrip("/")
        return normalized

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated CORS origins from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        """Validate database URL is a SQLAlchemy URL for a supported backend."""
        lowered = value.lower()
        if not lowered.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite://", "mssql+pyodbc://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql://, postgresql+psycopg2://, sqlite:// or mssql+pyodbc://"
            )
        return value

    @field_validator("universal_loader_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        if not normalized.startswith(("http://", "https://")):
            raise ValueError("UNIVERSAL_LOADER_BASE_URL must be an http(s) URL")
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings: Settings = get_settings()
