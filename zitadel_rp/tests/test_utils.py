"""
Tests for PKCE, state and token inspection helpers.
"""

import base64
import hashlib

import jwt
import pytest

from zitadel_rp.auth.utils import (
    decode_token_without_verification,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
    safe_local_path,
    states_match,
)


class TestPKCE:

    def test_verifier_length_and_alphabet(self):
        verifier = generate_code_verifier()

        assert 43 <= len(verifier) <= 128
        assert "=" not in verifier
        assert "+" not in verifier
        assert "/" not in verifier

    def test_challenge_is_s256_of_verifier(self):
        verifier = generate_code_verifier()
        digest = hashlib.sha256(verifier.encode()).digest()
        expected = base64.urlsafe_b64encode(digest).decode().rstrip("=")

        assert generate_code_challenge(verifier) == expected

    def test_rfc7636_example(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert generate_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


class TestState:

    def test_state_is_hex_with_128_bits(self):
        state = generate_state()

        assert len(state) == 32
        int(state, 16)

    def test_entropy_never_drops_below_128_bits(self):
        assert len(generate_state(4)) == 32
        assert len(generate_state(32)) == 64

    def test_states_match(self):
        assert states_match("abc", "abc") is True

    @pytest.mark.parametrize("received,expected", [
        ("abc", "abd"),
        ("abc", "abcd"),
        ("", ""),
        (None, "abc"),
        ("abc", None),
    ])
    def test_states_do_not_match(self, received, expected):
        assert states_match(received, expected) is False


class TestDecodeToken:

    def test_claims_are_returned_without_key(self):
        token = jwt.encode({"sub": "user-9", "email": "u9@example.com"}, "k" * 32, algorithm="HS256")
        claims = decode_token_without_verification(token)

        assert claims["sub"] == "user-9"
        assert claims["email"] == "u9@example.com"

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
    def test_absent_or_malformed_token(self, token):
        assert decode_token_without_verification(token) == {}


class TestSafeLocalPath:

    @pytest.mark.parametrize("path", ["/profile", "/auth/userinfo", "/profile?tab=1"])
    def test_local_paths_are_kept(self, path):
        assert safe_local_path(path) == path

    @pytest.mark.parametrize("path", [
        None,
        "",
        "profile",
        "https://evil.example.com/",
        "//evil.example.com",
        "/\\evil.example.com",
    ])
    def test_everything_else_is_rejected(self, path):
        assert safe_local_path(path) is None
