# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key (requests run under RLS)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret for verifying Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------

    STRIPE_SECRET_KEY: str = Field(
        default="",
        description="Stripe secret API key"
    )

    STRIPE_WEBHOOK_SECRET: str = Field(
        default="",
        description="Signing secret for the Stripe webhook endpoint"
    )

    STRIPE_ALLOWED_PRICE_IDS: str = Field(
        default="",
        description="Comma-separated price IDs accepted by checkout (empty = any)"
    )

    SITE_URL: str = Field(
        default="http://localhost:3000",
        description="Public URL of the web app, used for checkout redirects"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging)"
    )

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    AUTH_COOKIE_SECURE: bool = Field(
        default=True,
        description="Mark session cookies as Secure (disable for plain-http local dev)"
    )

    # -------------------------------------------------------------------------
    # Media Upload Limits
    # -------------------------------------------------------------------------

    HEADSHOT_MAX_MB: int = Field(default=5, ge=1, le=50)

    VIDEO_MAX_MB: int = Field(default=100, ge=1, le=1024)

    VIDEO_MAX_SECONDS: int = Field(
        default=30,
        ge=1,
        le=600,
        description="Longest intro video accepted, in seconds"
    )

    # -------------------------------------------------------------------------
    # Directory Pagination
    # -------------------------------------------------------------------------

    DIRECTORY_PER_PAGE_DEFAULT: int = Field(default=25, ge=1)
    DIRECTORY_PER_PAGE_MIN: int = Field(default=10, ge=1)
    DIRECTORY_PER_PAGE_MAX: int = Field(default=50, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def allowed_price_ids(self) -> set[str]:
        """Checkout price allow-list; empty set means no restriction."""
        return {p.strip() for p in self.STRIPE_ALLOWED_PRICE_IDS.split(",") if p.strip()}

    @property
    def headshot_max_bytes(self) -> int:
        return self.HEADSHOT_MAX_MB * 1024 * 1024

    @property
    def video_max_bytes(self) -> int:
        return self.VIDEO_MAX_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Parses .env and validates once, not on every access.
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
