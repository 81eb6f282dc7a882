# WelfareCore - Employee Welfare Claims Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from beartype import beartype
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,
        validate_default=True,
        extra="forbid",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///:memory:",
        description="SQLAlchemy async URL (postgresql+asyncpg:// in production)",
        min_length=1,
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log",
    )
    database_pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Connection pool size for server databases",
    )
    database_max_overflow: int = Field(
        default=20,
        ge=0,
        le=200,
        description="Connections allowed above the pool size",
    )
    database_pool_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=60.0,
        description="Connection acquisition timeout in seconds",
    )
    sqlite_busy_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Seconds a SQLite writer waits for the database lock",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        min_length=1,
    )
    redis_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Default Redis TTL in seconds",
    )
    catalog_cache_ttl_seconds: int = Field(
        default=300,
        ge=10,
        le=86400,
        description="TTL for cached welfare sub-program configuration",
    )

    # Fiscal calendar
    fiscal_timezone: str = Field(
        default="Asia/Bangkok",
        description="Timezone used to decide which fiscal year 'now' falls in",
    )

    # API Configuration
    app_name: str = Field(
        default="Welfare Claims Engine",
        description="Application name",
        min_length=1,
    )
    api_host: str = Field(
        default="0.0.0.0",  # nosec B104 - containerized deployment
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port to bind to",
    )
    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="API environment",
    )
    api_cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Allowed CORS origins",
    )
    api_allowed_hosts: list[str] = Field(
        default_factory=lambda: ["localhost"],
        description="Host headers accepted in production",
    )

    # Security
    jwt_secret: str = Field(
        default="test-jwt-secret-for-testing-only-never-use-in-production-32-chars",
        min_length=32,
        description="JWT signing secret shared with the identity provider",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT algorithm",
    )
    jwt_expiration_minutes: int = Field(
        default=60,
        ge=5,
        le=1440,
        description="Lifetime of locally issued tokens in minutes",
    )

    # Performance
    slow_operation_ms: int = Field(
        default=500,
        ge=10,
        le=60000,
        description="Operations slower than this are logged as warnings",
    )

    @field_validator("fiscal_timezone")
    @classmethod
    def validate_fiscal_timezone(cls: type["Settings"], v: str) -> str:
        """Ensure the fiscal timezone is a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("api_cors_origins")
    @classmethod
    def validate_cors_origins(cls: type["Settings"], v: list[str]) -> list[str]:
        """Validate CORS origins are proper URLs."""
        for origin in v:
            if not origin.startswith(("http://", "https://")):
                raise ValueError(f"Invalid CORS origin: {origin}")
        return v

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls: type["Settings"], v: str, info: ValidationInfo) -> str:
        """Ensure test JWT secrets are not used in production."""
        if "api_env" in info.data and info.data["api_env"] == "production":
            if v.startswith("test-"):
                raise ValueError(
                    "Test JWT secret cannot be used in production. "
                    "Set JWT_SECRET environment variable."
                )
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"

    @property
    @beartype
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.api_env == "development"

    @property
    @beartype
    def fiscal_zone(self) -> ZoneInfo:
        """Timezone object for the fiscal calendar."""
        return ZoneInfo(self.fiscal_timezone)


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
