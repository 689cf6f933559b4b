"""
Configuration management for Dugout.

Uses Pydantic Settings to load configuration from environment variables
with sensible defaults for development. All sensitive values (database URLs,
provider API keys) should be set via environment variables or .env file.

Settings are loaded once at process entry and then handed to each component
through its constructor; library code never reads the environment itself.

Usage:
    from dugout.config import get_settings

    settings = get_settings()
    settings.require_startup_credentials(["cricapi"])
"""

from functools import lru_cache
from typing import Iterable, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dugout.errors import MissingConfiguration


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can be set directly or via a .env file
    in the project root directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Database Configuration
    # ==========================================================================

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy connection URL for the backing store",
    )
    db_pool_size: int = Field(
        default=5,
        description="Number of connections to keep in the pool",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max additional connections beyond pool_size",
    )

    # ==========================================================================
    # Provider Configuration
    # ==========================================================================

    cricapi_api_key: Optional[str] = Field(
        default=None,
        description="API key for api.cricapi.com",
    )
    cricapi_base_url: str = Field(
        default="https://api.cricapi.com/v1",
        description="Base URL for the CricAPI v1 endpoints",
    )
    sportmonks_api_token: Optional[str] = Field(
        default=None,
        description="API token for the SportMonks cricket API",
    )
    sportmonks_base_url: str = Field(
        default="https://cricket.sportmonks.com/api/v2.0",
        description="Base URL for the SportMonks cricket v2 endpoints",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        description="Timeout for a single provider request",
    )
    provider_concurrency: int = Field(
        default=4,
        description="Max in-flight provider requests per run (rate limit guard)",
    )

    # ==========================================================================
    # Processing Configuration
    # ==========================================================================

    match_lease_seconds: int = Field(
        default=600,
        description="How long a run may hold a match before another run can take it over",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Format string passed to logging.basicConfig",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("provider_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("provider_concurrency must be at least 1")
        return v

    # ==========================================================================
    # Startup checks
    # ==========================================================================

    def provider_credential(self, provider: str) -> Optional[str]:
        """Return the configured credential for a provider name."""
        if provider == "cricapi":
            return self.cricapi_api_key
        if provider == "sportmonks":
            return self.sportmonks_api_token
        raise KeyError(f"Unknown provider: {provider}")

    def require_startup_credentials(self, providers: Iterable[str]) -> None:
        """
        Fail before any work starts if store or provider credentials are absent.

        Raises:
            MissingConfiguration: listing every missing setting
        """
        missing: list[str] = []
        if not self.database_url:
            missing.append("DATABASE_URL")
        for provider in providers:
            if not self.provider_credential(provider):
                missing.append(
                    "CRICAPI_API_KEY" if provider == "cricapi" else "SPORTMONKS_API_TOKEN"
                )
        if missing:
            raise MissingConfiguration(missing)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Only the CLI entry point should call this; everything below it receives
    the instance explicitly.
    """
    return Settings()
