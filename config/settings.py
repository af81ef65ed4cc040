"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Business constants for the visit rule and the tour estimate live here
so field teams can tune them without a deploy.
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
        extra="ignore"
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (used by the API handlers)"
    )
    supabase_storage_bucket: str = Field(
        default="wellen-photos",
        description="Storage bucket for submission and delivery photos"
    )

    # ===================
    # VISIT RULE
    # ===================
    visit_recency_days: int = Field(
        default=21,
        ge=1,
        le=365,
        description="A visit younger than this needs an explicit new/existing choice"
    )

    # ===================
    # TOUR ESTIMATE
    # ===================
    tour_work_minutes_per_stop: int = Field(
        default=45,
        ge=1,
        le=480,
        description="Minutes of work planned per market"
    )
    tour_travel_minutes_car: int = Field(
        default=15,
        ge=0,
        le=240,
        description="Minutes of driving between two markets by car"
    )
    tour_travel_minutes_train: int = Field(
        default=15,
        ge=0,
        le=240,
        description="Minutes of travel between two markets by train"
    )

    # ===================
    # PRE-ORDER
    # ===================
    palette_minimum_value: float = Field(
        default=600.0,
        ge=0,
        description="Minimum order value (EUR) for a palette or schuette"
    )

    # ===================
    # IMPORTS
    # ===================
    import_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Maximum upload size for market/product import files"
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
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def api_client_key(self) -> Optional[str]:
        """Key used by the API handlers: service role first, anon key as fallback."""
        return self.supabase_service_key or self.supabase_key

    def travel_minutes(self, mode: str) -> int:
        """Travel minutes between two stops for a transport mode."""
        if mode == "train":
            return self.tour_travel_minutes_train
        return self.tour_travel_minutes_car


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
