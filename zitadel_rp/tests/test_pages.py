"""
Tests for the home page, the sign-in page, the health endpoint and startup checks.
"""

import logging
from unittest.mock import patch

from fastapi.testclient import TestClient

from zitadel_rp import __version__


class TestHome:

    def test_anonymous_home_offers_sign_in(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert 'action="/auth/signin/zitadel"' in response.text
        assert "/auth/logout" not in response.text

    def test_signed_in_home_greets_user(self, client, sign_in):
        sign_in()

        response = client.get("/")

        assert "Welcome back, Test User." in response.text
        assert 'action="/auth/logout"' in response.text


class TestSigninPage:

    def test_lists_zitadel(self, client):
        response = client.get("/auth/signin")

        assert response.status_code == 200
        assert "Sign in with ZITADEL" in response.text
        assert "alert" not in response.text.split("</style>")[1]

    def test_error_message_is_shown(self, client):
        response = client.get("/auth/signin", params={"error": "OAuthAccountNotLinked"})

        assert "Account Not Linked" in response.text

    def test_unknown_error_shows_default(self, client):
        response = client.get("/auth/signin", params={"error": "whatever"})

        assert "Unable to Sign in" in response.text

    def test_callback_url_is_carried_to_the_form(self, client):
        response = client.get("/auth/signin", params={"callbackUrl": "/profile"})

        assert 'action="/auth/signin/zitadel?callbackUrl=%2Fprofile"' in response.text

    def test_external_callback_url_is_dropped(self, client):
        response = client.get("/auth/signin", params={"callbackUrl": "https://evil.example.com"})

        assert "evil.example.com" not in response.text


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "service": "zitadel-rp",
            "version": __version__,
        }


class TestStartup:

    def test_configuration_problems_are_logged(self, app, caplog):
        status = {
            "valid": False,
            "errors": ["ZITADEL_SCOPES is empty"],
            "warnings": ["SESSION_HTTPS_ONLY is disabled"],
            "scopes": [],
        }

        with patch("zitadel_rp.main.validate_configuration", return_value=status) as mock_validate:
            with caplog.at_level(logging.WARNING, logger="zitadel_rp.main"):
                with TestClient(app):
                    pass

        mock_validate.assert_called_once_with(app.state.settings)
        messages = [record.getMessage() for record in caplog.records]
        assert "Configuration error: ZITADEL_SCOPES is empty" in messages
        assert "Configuration warning: SESSION_HTTPS_ONLY is disabled" in messages
