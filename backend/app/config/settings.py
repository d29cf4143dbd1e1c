"""
Application Settings for ARTI Ed

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Server-only credentials (Supabase service role, Stripe secret and
    webhook secret) never leave this object; anything the browser needs
    goes through ``public_config()``.
    """

    # Supabase Configuration
    supabase_url: str
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: str
    supabase_jwt_secret: Optional[str] = None

    # Stripe Configuration
    stripe_secret_key: str
    stripe_webhook_secret: str
    stripe_publishable_key: Optional[str] = None
    stripe_api_version: Optional[str] = None
    stripe_webhook_tolerance_seconds: int = 300

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS / redirect configuration
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Team invitations
    invitation_expiry_days: int = 7

    # Database Configuration (SQLModel/SQLAlchemy)
    supabase_password: Optional[str] = None
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_keys(self) -> "Settings":
        """Reject blank credentials and nonsensical limits."""
        missing = [
            name
            for name in (
                "supabase_url",
                "supabase_service_role_key",
                "stripe_secret_key",
                "stripe_webhook_secret",
            )
            if not getattr(self, name).strip()
        ]
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")

        if self.invitation_expiry_days < 1:
            raise ValueError("INVITATION_EXPIRY_DAYS must be at least 1")

        self.supabase_url = self.supabase_url.rstrip("/")
        self.frontend_url = self.frontend_url.rstrip("/")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def database_configured(self) -> bool:
        """Whether a Postgres/SQLite connection can be derived."""
        return bool(self.database_url or self.supabase_password)

    def public_config(self) -> dict[str, Optional[str]]:
        """Configuration that is safe to hand to the browser."""
        return {
            "supabase_url": self.supabase_url,
            "supabase_anon_key": self.supabase_anon_key,
            "stripe_publishable_key": self.stripe_publishable_key,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
