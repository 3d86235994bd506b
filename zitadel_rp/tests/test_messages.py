"""
Tests for the error message catalog.
"""

import pytest

from zitadel_rp.auth.messages import (
    AUTH_DEFAULT,
    SIGNIN_DEFAULT,
    get_message,
)


class TestSigninMessages:
    """Sign-in page category"""

    def test_account_not_linked(self):
        message = get_message("OAuthAccountNotLinked", "signin-error")
        assert message["heading"] == "Account Not Linked"
        assert "same account" in message["message"]

    def test_unknown_code_uses_default(self):
        message = get_message("unknown_code", "signin-error")
        assert message["heading"] == "Unable to Sign in"

    def test_absent_code_uses_default(self):
        assert get_message(None, "signin") == SIGNIN_DEFAULT

    @pytest.mark.parametrize("code", ["SESSIONREQUIRED", "sessionrequired", "SessionRequired"])
    def test_matching_ignores_case(self, code):
        assert get_message(code, "signin")["heading"] == "Sign-in Required"

    @pytest.mark.parametrize("code", [
        "signin", "oauthsignin", "oauthcallback",
        "oauthcreateaccount", "emailcreateaccount", "callback",
    ])
    def test_generic_signin_failures_share_a_message(self, code):
        message = get_message(code, "signin")
        assert message == {
            "heading": "Sign-in Failed",
            "message": "Try signing in with a different account.",
        }

    def test_credentials_and_email_codes_are_distinct(self):
        credentials = get_message("CredentialsSignin", "signin")
        email = get_message("EmailSignin", "signin")

        assert credentials["heading"] == "Sign-in Failed"
        assert "Check the details" in credentials["message"]
        assert email["heading"] == "Email Not Sent"

    def test_returned_dict_is_a_copy(self):
        message = get_message("unknown", "signin")
        message["heading"] = "changed"
        assert get_message("unknown", "signin")["heading"] == "Unable to Sign in"


class TestAuthMessages:
    """Error page category"""

    @pytest.mark.parametrize("code,heading", [
        ("Configuration", "Server Error"),
        ("AccessDenied", "Access Denied"),
        ("verification", "Sign-in Link Invalid"),
    ])
    def test_known_codes(self, code, heading):
        assert get_message(code, "auth-error")["heading"] == heading

    @pytest.mark.parametrize("code", [None, "", "missing_id_token", "provider_rejection", "generic_error"])
    def test_unknown_codes_use_default(self, code):
        assert get_message(code, "auth") == AUTH_DEFAULT

    def test_signin_codes_do_not_leak_into_auth_category(self):
        assert get_message("OAuthAccountNotLinked", "auth")["heading"] == "Authentication Error"
