"""
Configuration Management for Spend Log

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so every external dependency
(database, token signing) is visible in one place and validated at startup.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB record store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string"
    )
    database_name: str = Field(
        default="spend_log",
        description="Database holding the users/transactions/budgets/savings collections"
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="How long the driver waits for a reachable server"
    )


class AuthSettings(BaseSettings):
    """Password hashing and token signing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    secret_key: str = Field(
        ...,
        min_length=8,
        description="Secret used to sign access tokens"
    )
    algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    expire_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Access token lifetime in days"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=16,
        description="bcrypt cost factor for password hashes"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Record store backend"
    )

    # HTTP
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=10000, ge=1, le=65535)
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Defaults applied to new records
    default_currency: str = Field(
        default="₹",
        max_length=5,
        description="Currency symbol for new users"
    )
    default_budget_color: str = Field(default="#667eea")
    default_goal_color: str = Field(default="#10B981")

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=100000000.0,
        gt=0,
        description="Maximum reasonable transaction amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=366,
        ge=0,
        description="How many days in the future a transaction date can be"
    )

    # Budget recommendations
    recommendation_lookback_months: int = Field(
        default=3,
        ge=1,
        le=24,
        description="Months of history averaged for budget recommendations"
    )

    @field_validator('app_environment')
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.app_environment == "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def mongo(self) -> MongoSettings:
        return MongoSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("mongo", "auth", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
