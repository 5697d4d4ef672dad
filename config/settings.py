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
    catalog_table: str = Field(
        default="products",
        description="Table holding catalog entries"
    )
    history_table: str = Field(
        default="upload_history",
        description="Table holding reconciliation history entries"
    )
    catalog_page_size: int = Field(
        default=1000,
        ge=50,
        le=10000,
        description="Rows fetched per request when reading the whole catalog"
    )

    # ===================
    # RECONCILIATION
    # ===================
    history_retention: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of history entries kept for restore"
    )
    default_brand: str = Field(
        default="GUESS",
        description="Brand assigned to inserted entries when the feed has none"
    )
    placeholder_image_url: str = Field(
        default="/images/default.png",
        description="Image assigned to inserted entries when the feed has none"
    )
    catalog_lock_timeout_seconds: float = Field(
        default=10.0,
        ge=0,
        le=300,
        description="How long a run waits for the catalog lease"
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Largest accepted feed file"
    )

    # ===================
    # GOOGLE SHEET SOURCE
    # ===================
    google_sheet_csv_url: Optional[str] = Field(
        None,
        description="Published CSV export URL of the synced product sheet"
    )
    google_sheet_timeout_seconds: int = Field(
        default=30,
        ge=1,
        le=300,
        description="HTTP timeout for the sheet export"
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
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def google_sheet_configured(self) -> bool:
        """Check if the synced sheet source is configured."""
        return bool(self.google_sheet_csv_url)


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
