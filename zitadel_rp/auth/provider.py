"""
Identity provider adapters.

The flow handlers depend only on the ``IdentityProvider`` protocol. Each
adapter encodes one provider's deviations from generic OAuth 2.0 / OIDC:

ZITADEL:
- Authorization endpoint: {domain}/oauth/v2/authorize (PKCE, S256)
- Token endpoint: {domain}/oauth/v2/token, client credentials sent as an
  HTTP Basic header (credentials in the body are rejected with 400)
- UserInfo endpoint: {domain}/oidc/v1/userinfo
- The scope set always contains openid, profile and email; without openid
  no ID token is issued and federated logout is impossible.
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urlencode

import httpx

from ..config import Settings
from ..models import Identity, TokenExchangeResult
from .exceptions import AuthFlowError, ProviderRejection, TransportError

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Capabilities the auth flow needs from an identity provider."""

    name: str

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        ...

    async def exchange_code(self, code: str, code_verifier: Optional[str]) -> TokenExchangeResult:
        ...

    async def fetch_user_info(self, access_token: str) -> Dict[str, Any]:
        ...

    def map_claims_to_identity(self, claims: Dict[str, Any]) -> Identity:
        ...


class ZitadelProvider:
    """
    OAuth 2.0 / OIDC adapter for a ZITADEL instance.

    Args:
        settings: Application settings (domain, client credentials, scopes)
        transport: Optional httpx transport, used by tests to stand in for
                   the identity provider
    """

    name = "zitadel"
    display_name = "ZITADEL"

    FORCED_SCOPES = ("openid", "profile", "email")

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.domain = settings.ZITADEL_DOMAIN.rstrip("/")
        self.client_id = settings.ZITADEL_CLIENT_ID
        self.client_secret = settings.ZITADEL_CLIENT_SECRET
        self.redirect_url = settings.ZITADEL_CALLBACK_URL
        self._transport = transport

    # =========================================================================
    # Endpoints
    # =========================================================================

    @property
    def authorize_url(self) -> str:
        return f"{self.domain}/oauth/v2/authorize"

    @property
    def token_url(self) -> str:
        return f"{self.domain}/oauth/v2/token"

    @property
    def userinfo_url(self) -> str:
        return f"{self.domain}/oidc/v1/userinfo"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    # =========================================================================
    # Authorization Request
    # =========================================================================

    def get_scopes(self) -> List[str]:
        """
        Configured scopes followed by any forced scope not already present.

        Returns:
            Deduplicated, order-stable list of scopes
        """
        scopes = list(self.settings.scopes_list)
        for scope in self.FORCED_SCOPES:
            if scope not in scopes:
                scopes.append(scope)
        return scopes

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """
        Build the authorization URL the browser is redirected to.

        Args:
            state: CSRF state, stored in the session for the callback
            code_challenge: S256 PKCE challenge of the stored verifier

        Returns:
            Full authorization URL
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "scope": " ".join(self.get_scopes()),
            "response_type": "code",
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }

        return f"{self.authorize_url}?{urlencode(params)}"

    # =========================================================================
    # Token Exchange
    # =========================================================================

    def _basic_auth_header(self) -> str:
        credentials = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(credentials).decode("ascii")

    async def exchange_code(self, code: str, code_verifier: Optional[str]) -> TokenExchangeResult:
        """
        Exchange an authorization code for tokens.

        Client credentials travel in the Authorization header only; the form
        body carries the grant, the code, the redirect URI and the verifier.

        Args:
            code: Authorization code from the callback
            code_verifier: PKCE verifier stored at sign-in

        Returns:
            TokenExchangeResult (id_token may be absent; the caller decides)

        Raises:
            ProviderRejection: On a non-2xx response
            TransportError: On network failure or timeout
            AuthFlowError: If the response body is not a usable token response
        """
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_url,
        }
        if code_verifier:
            payload["code_verifier"] = code_verifier

        logger.debug("Exchanging authorization code", extra={"token_url": self.token_url})

        try:
            async with self._client() as client:
                response = await client.post(
                    self.token_url,
                    data=payload,
                    headers={
                        "Authorization": self._basic_auth_header(),
                        "Content-Type": "application/x-www-form-urlencoded",
                        "Accept": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise TransportError(f"Token exchange failed: {e.__class__.__name__}") from e

        if not response.is_success:
            raise ProviderRejection(response.status_code, response.text)

        try:
            token_data = response.json()
        except ValueError as e:
            raise AuthFlowError("Token response is not valid JSON") from e

        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            raise AuthFlowError("Token response missing access_token")

        return TokenExchangeResult.from_response(token_data)

    # =========================================================================
    # UserInfo
    # =========================================================================

    async def fetch_user_info(self, access_token: str) -> Dict[str, Any]:
        """
        Call the OIDC UserInfo endpoint with bearer authentication.

        Returns:
            Raw claims dictionary

        Raises:
            ProviderRejection: On a non-2xx response
            TransportError: On network failure or timeout
        """
        logger.debug("Fetching user info", extra={"userinfo_url": self.userinfo_url})

        try:
            async with self._client() as client:
                response = await client.get(
                    self.userinfo_url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise TransportError(f"UserInfo request failed: {e.__class__.__name__}") from e

        if not response.is_success:
            raise ProviderRejection(response.status_code, response.text)

        try:
            claims = response.json()
        except ValueError as e:
            raise AuthFlowError("UserInfo response is not valid JSON") from e

        if not isinstance(claims, dict):
            raise AuthFlowError("UserInfo response is not a JSON object")

        return claims

    def map_claims_to_identity(self, claims: Dict[str, Any]) -> Identity:
        """
        Map standard OIDC claims to an Identity.

        Missing claims map to None; this never raises.
        """
        def _claim(key: str) -> Optional[str]:
            value = claims.get(key) if isinstance(claims, dict) else None
            return None if value is None else str(value)

        return Identity(
            id=_claim("sub"),
            name=_claim("name"),
            email=_claim("email"),
            avatar=_claim("picture"),
        )
