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
#
# External-service credentials default to empty strings so the health
# endpoint can report which of them are missing instead of refusing to boot.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------

    SUPABASE_URL: str = Field(
        default="",
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        default="",
        description="Supabase service_role key (bypasses RLS)"
    )

    # -------------------------------------------------------------------------
    # Dropbox Configuration
    # -------------------------------------------------------------------------
    # Either a static access token, or refresh credentials from which
    # short-lived access tokens are minted on demand.

    DROPBOX_ACCESS_TOKEN: str = Field(
        default="",
        description="Static Dropbox bearer token"
    )

    DROPBOX_REFRESH_TOKEN: str = Field(
        default="",
        description="Dropbox OAuth refresh token"
    )

    DROPBOX_APP_KEY: str = Field(
        default="",
        description="Dropbox app key (for token refresh)"
    )

    DROPBOX_APP_SECRET: str = Field(
        default="",
        description="Dropbox app secret (for token refresh)"
    )

    # -------------------------------------------------------------------------
    # Email Configuration (Resend)
    # -------------------------------------------------------------------------

    RESEND_API_KEY: str = Field(
        default="",
        description="Resend API key for transactional email"
    )

    EMAIL_FROM: str = Field(
        default="Digital Photo <noreply@parallaxbay.com>",
        description="Sender shown on outgoing emails"
    )

    ADMIN_NOTIFICATION_EMAIL: str = Field(
        default="",
        description="Where new-user and payment-approval notifications go"
    )

    # -------------------------------------------------------------------------
    # Google Sign-In
    # -------------------------------------------------------------------------

    GOOGLE_CLIENT_ID: str = Field(
        default="",
        description="OAuth client ID used as the ID-token audience"
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
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    APP_BASE_URL: str = Field(
        default="",
        description="Public site URL used in emailed links (falls back to the request host)"
    )

    HTTP_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for outbound calls to Dropbox and Resend"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    JWT_SECRET: str = Field(
        default="dev-secret-key-change-in-production",
        min_length=16,
        description="Secret key for signing session and approval tokens"
    )

    SESSION_TOKEN_EXPIRE_HOURS: int = Field(
        default=24,
        ge=1,
        description="Lifetime of a login session token"
    )

    APPROVAL_TOKEN_EXPIRE_HOURS: int = Field(
        default=168,
        ge=1,
        description="Lifetime of an emailed payment-approval link"
    )

    LOGIN_CODE_EXPIRE_MINUTES: int = Field(
        default=10,
        ge=1,
        description="Lifetime of an emailed login code"
    )

    LOGIN_CODE_MAX_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="Wrong guesses allowed before a login code is discarded"
    )

    RESET_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60,
        ge=1,
        description="Lifetime of a password reset link"
    )

    BCRYPT_ROUNDS: int = Field(
        default=10,
        ge=4,
        le=16,
        description="bcrypt cost factor"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="*",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Orders & Uploads
    # -------------------------------------------------------------------------

    ORDER_RETENTION_COUNT: int = Field(
        default=3,
        ge=1,
        description="Number of most recent orders kept per user"
    )

    ORDER_HISTORY_LIMIT: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Orders returned by the history action"
    )

    MAX_UPLOAD_SIZE_MB: int = Field(
        default=15,
        ge=1,
        le=150,
        description="Maximum photo upload size in MB"
    )

    ALLOWED_EXTENSIONS: str = Field(
        default=".jpg,.jpeg,.png,.heic,.webp",
        description="Allowed photo extensions (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Don't fail if .env doesn't exist (useful for production where
        # env vars are set directly)
        env_ignore_empty=True,
        # Case-sensitive environment variable names
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
    def allowed_extensions_list(self) -> list[str]:
        """
        Parse ALLOWED_EXTENSIONS string into a list.

        Example: ".jpg, .png" -> [".jpg", ".png"]
        """
        return [ext.strip().lower() for ext in self.ALLOWED_EXTENSIONS.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert MB to bytes for file size validation."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def dropbox_can_refresh(self) -> bool:
        """True when refresh credentials are configured."""
        return bool(
            self.DROPBOX_REFRESH_TOKEN and self.DROPBOX_APP_KEY and self.DROPBOX_APP_SECRET
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
