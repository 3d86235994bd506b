"""
Shared fixtures: settings, a fake ZITADEL behind httpx.MockTransport,
and a TestClient wired to it.
"""

import time
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from zitadel_rp.config import Settings
from zitadel_rp.main import create_app


ZITADEL_DOMAIN = "https://zitadel.example.com"
TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef0123"


def make_id_token(sub: str = "user-123", **claims: Any) -> str:
    """An HS256 JWT standing in for a ZITADEL ID token."""
    now = int(time.time())
    payload = {
        "iss": ZITADEL_DOMAIN,
        "sub": sub,
        "aud": "test-client-id",
        "iat": now,
        "exp": now + 3600,
        "name": "Test User",
    }
    payload.update(claims)
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="HS256")


Reply = Tuple[int, Union[Dict[str, Any], str]]


class FakeZitadel:
    """
    Minimal ZITADEL stand-in for the token and userinfo endpoints.

    Replies are (status, body) tuples and can be swapped per test. Paths in
    ``fail_paths`` raise a connection error instead of answering.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.fail_paths: set = set()
        self.code_reply: Reply = (200, {
            "access_token": "access-token-1",
            "refresh_token": "refresh-token-1",
            "id_token": make_id_token(),
            "token_type": "Bearer",
            "expires_in": 3600,
        })
        self.refresh_reply: Reply = (200, {
            "access_token": "access-token-2",
            "token_type": "Bearer",
            "expires_in": 3600,
        })
        self.userinfo_reply: Reply = (200, {
            "sub": "user-123",
            "name": "Test User",
            "email": "test.user@example.com",
            "picture": "https://example.com/avatar.png",
        })

    @staticmethod
    def form(request: httpx.Request) -> Dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def _reply(self, reply: Reply) -> httpx.Response:
        status_code, body = reply
        if isinstance(body, dict):
            return httpx.Response(status_code, json=body)
        return httpx.Response(status_code, text=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.fail_paths:
            raise httpx.ConnectError("connection refused", request=request)

        if path == "/oauth/v2/token":
            grant_type = self.form(request).get("grant_type")
            if grant_type == "refresh_token":
                return self._reply(self.refresh_reply)
            return self._reply(self.code_reply)

        if path == "/oidc/v1/userinfo":
            return self._reply(self.userinfo_reply)

        return httpx.Response(404, json={"error": "not_found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def mock_settings():
    """Settings pointing at the fake ZITADEL"""
    return Settings(
        ZITADEL_DOMAIN=ZITADEL_DOMAIN,
        ZITADEL_CLIENT_ID="test-client-id",
        ZITADEL_CLIENT_SECRET="test-client-secret",
        ZITADEL_CALLBACK_URL="http://testserver/auth/callback/zitadel",
        ZITADEL_POST_LOGOUT_URL="http://testserver/auth/logout/callback",
        ZITADEL_SCOPES="openid profile email offline_access",
        SESSION_SECRET="test-session-secret-0123456789abcdef",
    )


@pytest.fixture
def fake_idp():
    return FakeZitadel()


@pytest.fixture
def app(mock_settings, fake_idp):
    return create_app(settings=mock_settings, transport=fake_idp.transport)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def start_signin(client):
    """POST to the sign-in endpoint and return (response, state)."""
    def _start(callback_url: Optional[str] = None):
        params = {"callbackUrl": callback_url} if callback_url else None
        response = client.post("/auth/signin/zitadel", params=params, follow_redirects=False)
        query = parse_qs(urlparse(response.headers["location"]).query)
        return response, query["state"][0]
    return _start


@pytest.fixture
def sign_in(client, start_signin):
    """Run the full sign-in handshake against the fake provider."""
    def _sign_in(callback_url: Optional[str] = None) -> httpx.Response:
        _, state = start_signin(callback_url)
        return client.get(
            "/auth/callback/zitadel",
            params={"code": "auth-code-1", "state": state},
            follow_redirects=False,
        )
    return _sign_in


@pytest.fixture
def stored_session(app):
    """Return the data of the only session held by the store ({} if none)."""
    def _stored() -> Dict[str, Any]:
        sessions = [data for data in app.state.session_store._data.values() if data]
        assert len(sessions) <= 1
        return sessions[0] if sessions else {}
    return _stored


@pytest.fixture
def update_session(app):
    """Patch the data of the only non-empty session in the store."""
    def _update(**values: Any) -> None:
        store = app.state.session_store
        session_ids = [sid for sid, data in store._data.items() if data]
        assert len(session_ids) == 1
        data = store._data[session_ids[0]]
        for key, value in values.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
    return _update
