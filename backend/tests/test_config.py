"""
Unit tests for Settings construction from environment variables.
"""

import pytest

from formmail.config import (
    DEFAULT_ADMIN_EMAIL,
    DEFAULT_FROM_ADDRESS,
    Settings,
    settings_from_env,
)


class TestSettingsFromEnv:
    """settings_from_env() reads a plain mapping."""

    def test_defaults_for_empty_environment(self):
        settings = settings_from_env({})

        assert settings.environment == "development"
        assert settings.is_production is False
        assert settings.has_mail_credentials is False
        assert settings.admin_email == DEFAULT_ADMIN_EMAIL
        assert settings.smtp_host == "smtp.gmail.com"
        assert settings.smtp_port == 465
        assert settings.port == 5001
        assert settings.allowed_origins == ("http://localhost:5173", "http://localhost:5174")

    def test_reads_mail_settings(self):
        settings = settings_from_env({
            "GMAIL_USER": "shop@instashed.com",
            "GMAIL_APP_PASSWORD": "abcd efgh",
            "ADMIN_EMAIL": "owner@instashed.com",
            "SMTP_HOST": "mail.test",
            "SMTP_PORT": "587",
        })

        assert settings.has_mail_credentials is True
        assert settings.admin_email == "owner@instashed.com"
        assert settings.smtp_host == "mail.test"
        assert settings.smtp_port == 587

    def test_environment_is_normalised(self):
        assert settings_from_env({"ENVIRONMENT": " Production "}).is_production

    def test_node_env_is_a_fallback(self):
        assert settings_from_env({"NODE_ENV": "production"}).environment == "production"

    def test_environment_wins_over_node_env(self):
        settings = settings_from_env({"ENVIRONMENT": "staging", "NODE_ENV": "production"})
        assert settings.environment == "staging"

    def test_origins_are_split_and_deduplicated(self):
        settings = settings_from_env({
            "ALLOWED_ORIGINS": "https://instashed.com, https://www.instashed.com,,https://instashed.com",
        })

        assert settings.allowed_origins == ("https://instashed.com", "https://www.instashed.com")

    def test_production_without_origins_uses_placeholder(self):
        settings = settings_from_env({"ENVIRONMENT": "production"})

        assert settings.allowed_origins == ("https://instashed.com",)

    def test_production_without_origins_prefers_cors_origin(self):
        settings = settings_from_env({
            "ENVIRONMENT": "production",
            "CORS_ORIGIN": " https://www.instashed.com ",
        })

        assert settings.allowed_origins == ("https://www.instashed.com",)

    def test_allowed_origins_win_over_cors_origin(self):
        settings = settings_from_env({
            "ENVIRONMENT": "production",
            "ALLOWED_ORIGINS": "https://a.example",
            "CORS_ORIGIN": "https://b.example",
        })

        assert settings.allowed_origins == ("https://a.example",)

    def test_cors_origin_is_ignored_outside_production(self):
        settings = settings_from_env({"CORS_ORIGIN": "https://www.instashed.com"})

        assert settings.allowed_origins == ("http://localhost:5173", "http://localhost:5174")

    def test_bad_port_falls_back_to_default(self):
        assert settings_from_env({"PORT": "eighty"}).port == 5001

    def test_empty_strings_count_as_unset(self):
        settings = settings_from_env({"GMAIL_USER": "", "GMAIL_APP_PASSWORD": "", "ADMIN_EMAIL": ""})

        assert settings.mail_user is None
        assert settings.has_mail_credentials is False
        assert settings.admin_email == DEFAULT_ADMIN_EMAIL


class TestSenderAddress:

    @pytest.mark.parametrize(
        "settings, expected",
        [
            (Settings(mail_from="forms@instashed.com", mail_user="shop@instashed.com"), "forms@instashed.com"),
            (Settings(mail_user="shop@instashed.com"), "shop@instashed.com"),
            (Settings(), DEFAULT_FROM_ADDRESS),
        ],
    )
    def test_precedence(self, settings, expected):
        assert settings.sender_address == expected

    def test_settings_are_immutable(self):
        with pytest.raises(Exception):
            Settings().environment = "production"
