"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # IMPORT LIMITS
    # ===================
    import_max_file_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        le=100 * 1024 * 1024,
        description="Largest CSV upload accepted, in bytes"
    )
    import_preview_rows: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Raw rows returned as upload preview"
    )
    import_mapped_preview_rows: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Transformed records returned by validation"
    )
    import_report_limit: int = Field(
        default=100,
        ge=10,
        le=10000,
        description="Maximum errors/warnings listed in a validation report"
    )

    # ===================
    # IMPORT DEFAULTS
    # ===================
    import_locale: str = Field(
        default="cs",
        pattern="^cs(-CZ)?$",
        description="Locale used for number, phone and name heuristics"
    )
    import_placeholder_email_domain: str = Field(
        default="placeholder.invalid",
        description="Domain used for generated addresses of customers without email"
    )
    invoice_default_due_days: int = Field(
        default=14,
        ge=0,
        le=365,
        description="Due date offset when an imported invoice has none"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if the destination store is configured."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
