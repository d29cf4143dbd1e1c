"""
Unit tests for Pydantic Settings configuration.

Tests settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from app.config.settings import Settings


REQUIRED = {
    "supabase_url": "https://abc.supabase.co/",
    "supabase_service_role_key": "service-role",
    "stripe_secret_key": "sk_test_x",
    "stripe_webhook_secret": "whsec_x",
}


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_loads_from_env(self, settings):
        """Settings should load from environment variables."""
        assert settings.supabase_url == "https://testproject.supabase.co"
        assert settings.stripe_secret_key == "sk_test_123"
        assert settings.stripe_webhook_secret == "whsec_test_123"

    def test_settings_has_defaults(self, monkeypatch):
        """Optional settings fall back to sensible defaults."""
        monkeypatch.delenv("FRONTEND_URL", raising=False)
        settings = Settings(_env_file=None, **REQUIRED)

        assert settings.invitation_expiry_days == 7
        assert settings.frontend_url == "http://localhost:3000"
        assert settings.stripe_webhook_tolerance_seconds == 300
        assert settings.log_level == "INFO"

    def test_trailing_slash_is_stripped(self):
        settings = Settings(_env_file=None, **REQUIRED, frontend_url="https://arti.example/")
        assert settings.supabase_url == "https://abc.supabase.co"
        assert settings.frontend_url == "https://arti.example"

    def test_blank_secret_is_rejected(self):
        with pytest.raises(ValidationError, match="stripe_webhook_secret"):
            Settings(_env_file=None, **{**REQUIRED, "stripe_webhook_secret": "  "})

    def test_invitation_expiry_must_be_positive(self):
        with pytest.raises(ValidationError, match="INVITATION_EXPIRY_DAYS"):
            Settings(_env_file=None, **REQUIRED, invitation_expiry_days=0)

    def test_is_production_property(self, settings):
        """is_production should only be True for the production environment."""
        assert settings.is_production is False
        assert Settings(_env_file=None, **REQUIRED, environment="Production").is_production

    def test_database_configured(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert Settings(_env_file=None, **REQUIRED).database_configured is False
        assert Settings(_env_file=None, **REQUIRED, supabase_password="pw").database_configured

    def test_public_config_excludes_secrets(self, settings):
        public = settings.public_config()

        assert public == {
            "supabase_url": "https://testproject.supabase.co",
            "supabase_anon_key": "anon-test-key",
            "stripe_publishable_key": "pk_test_123",
        }
        values = set(public.values())
        assert settings.stripe_secret_key not in values
        assert settings.stripe_webhook_secret not in values
        assert settings.supabase_service_role_key not in values
