"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Application settings with validation.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="MealCache", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")

    # Database settings
    database_url: str = Field(
        default="sqlite:///./mealcache.db",
        description="SQLAlchemy database URL (postgresql+psycopg2://... in production)",
    )
    db_echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")
    db_init_attempts: int = Field(
        default=8, ge=1, description="Database initialization retry attempts"
    )
    db_init_delay_sec: float = Field(
        default=2.0, ge=0, description="Delay between DB init attempts"
    )

    # External recipe catalog
    catalog_base_url: str = Field(
        default="https://catalog.example.com/api/v1",
        description="Base URL of the external recipe catalog",
    )
    catalog_api_key: str = Field(default="", description="Catalog API key")
    catalog_daily_budget: int = Field(
        default=150, ge=0, description="Catalog requests allowed per rolling 24h window"
    )
    catalog_timeout_sec: float = Field(
        default=10.0, gt=0, description="Per-request catalog timeout"
    )
    catalog_max_attempts: int = Field(
        default=3, ge=1, description="Attempts per catalog call (first try + retries)"
    )
    catalog_backoff_base_sec: float = Field(
        default=0.5, ge=0, description="Initial retry backoff"
    )
    catalog_backoff_max_sec: float = Field(
        default=4.0, ge=0, description="Upper bound for a single retry backoff"
    )

    # Recipe cache and resolver
    cache_recipe_ttl_sec: int = Field(
        default=3600, ge=1, description="TTL for cached recipes"
    )
    cache_negative_ttl_sec: int = Field(
        default=300, ge=1, description="TTL for not-found and stale-fallback entries"
    )
    cache_search_ttl_sec: int = Field(
        default=900, ge=1, description="TTL for cached search results"
    )
    cache_max_entries: int = Field(
        default=2048, ge=1, description="Maximum number of cache entries"
    )
    recipe_staleness_days: int = Field(
        default=7, ge=0, description="Stored recipes older than this are refetched"
    )
    resolver_wait_timeout_sec: float = Field(
        default=30.0, gt=0, description="How long a caller waits on an in-flight fetch"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins",
    )
    cors_allow_credentials: bool = Field(
        default=True, description="Allow CORS credentials"
    )
    cors_allow_methods: list[str] = Field(
        default=["*"], description="Allowed HTTP methods"
    )
    cors_allow_headers: list[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )

    # API settings
    api_prefix: str = Field(default="", description="API route prefix")
    api_title: str = Field(
        default="MealCache API", description="API documentation title"
    )
    api_description: str = Field(
        default="Household meal planning backed by a rate-limited recipe catalog",
        description="API documentation description",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT


# Global settings instance
settings = Settings()
