"""
Tests for settings parsing and startup configuration checks.
"""

import pytest
from pydantic import ValidationError

from zitadel_rp.config import DEFAULT_SCOPES, Settings, validate_configuration


def _settings(**overrides):
    values = {
        "ZITADEL_DOMAIN": "https://zitadel.example.com",
        "ZITADEL_CLIENT_ID": "client",
        "ZITADEL_CLIENT_SECRET": "secret",
        "ZITADEL_CALLBACK_URL": "https://app.example.com/auth/callback/zitadel",
        "ZITADEL_POST_LOGOUT_URL": "https://app.example.com/auth/logout/callback",
        "SESSION_SECRET": "x" * 32,
    }
    values.update(overrides)
    return Settings(**values)


class TestSettings:

    def test_defaults(self):
        settings = _settings()

        assert settings.ZITADEL_SCOPES == DEFAULT_SCOPES
        assert settings.APP_PORT == 3000
        assert settings.HTTP_TIMEOUT_SECONDS == 10.0
        assert settings.DEFAULT_TOKEN_LIFETIME_SECONDS == 3600

    def test_default_scopes_include_zitadel_claims(self):
        scopes = _settings().scopes_list

        assert scopes[:4] == ["openid", "profile", "email", "offline_access"]
        assert "urn:zitadel:iam:org:projects:roles" in scopes

    @pytest.mark.parametrize("raw,expected", [
        ("openid profile", ["openid", "profile"]),
        ("openid,profile, email", ["openid", "profile", "email"]),
        ("  openid\tprofile\nopenid  ", ["openid", "profile"]),
        ("", []),
    ])
    def test_scopes_list(self, raw, expected):
        assert _settings(ZITADEL_SCOPES=raw).scopes_list == expected

    def test_domain_trailing_slash_is_stripped(self):
        assert _settings(ZITADEL_DOMAIN="https://zitadel.example.com/").ZITADEL_DOMAIN == "https://zitadel.example.com"

    def test_domain_must_be_a_url(self):
        with pytest.raises(ValidationError):
            _settings(ZITADEL_DOMAIN="zitadel.example.com")

    def test_short_session_secret_rejected(self):
        with pytest.raises(ValidationError):
            _settings(SESSION_SECRET="too-short")

    def test_log_level_is_normalized(self):
        assert _settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            _settings(LOG_LEVEL="verbose")


class TestValidateConfiguration:

    def test_secure_configuration_has_only_cookie_warning(self):
        status = validate_configuration(_settings())

        assert status["valid"] is True
        assert status["errors"] == []
        assert len(status["warnings"]) == 1
        assert "SESSION_HTTPS_ONLY" in status["warnings"][0]

    def test_fully_hardened_configuration_is_clean(self):
        status = validate_configuration(_settings(SESSION_HTTPS_ONLY=True))

        assert status == {
            "valid": True,
            "errors": [],
            "warnings": [],
            "scopes": _settings().scopes_list,
        }

    def test_empty_scopes_is_an_error(self):
        status = validate_configuration(_settings(ZITADEL_SCOPES=" "))

        assert status["valid"] is False
        assert status["errors"] == ["ZITADEL_SCOPES is empty"]

    def test_missing_offline_access_is_a_warning(self):
        status = validate_configuration(_settings(ZITADEL_SCOPES="openid profile"))

        assert status["valid"] is True
        assert any("offline_access" in w for w in status["warnings"])

    def test_plain_http_is_a_warning(self):
        status = validate_configuration(_settings(
            ZITADEL_DOMAIN="http://localhost:8080",
            ZITADEL_CALLBACK_URL="http://localhost:3000/auth/callback/zitadel",
        ))

        assert any("ZITADEL_DOMAIN" in w for w in status["warnings"])
        assert any("ZITADEL_CALLBACK_URL" in w for w in status["warnings"])
