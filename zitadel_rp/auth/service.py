"""
Token lifecycle for signed-in sessions.

Handles expiry detection, silent refresh with the refresh_token grant and
construction of the federated logout URL with its CSRF state.
"""

import logging
import time
from typing import Callable, Optional
from urllib.parse import urlencode

import httpx

from ..config import Settings
from ..models import LogoutRedirect, RefreshedTokens
from .exceptions import InvalidLogoutState, RefreshFailure
from .utils import generate_state, states_match

logger = logging.getLogger(__name__)


class AuthService:
    """
    Manages ZITADEL access tokens for a session.

    Args:
        settings: Application settings
        transport: Optional httpx transport (tests)
        clock: Returns the current unix time in seconds
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.domain = settings.ZITADEL_DOMAIN.rstrip("/")
        self._transport = transport
        self._clock = clock

    @property
    def token_url(self) -> str:
        return f"{self.domain}/oauth/v2/token"

    @property
    def end_session_url(self) -> str:
        return f"{self.domain}/oidc/v1/end_session"

    def now(self) -> int:
        return int(self._clock())

    # =========================================================================
    # Expiry
    # =========================================================================

    def compute_expires_at(self, expires_in: Optional[int]) -> int:
        """
        Absolute expiry for a token lifetime given in seconds.

        Falls back to DEFAULT_TOKEN_LIFETIME_SECONDS when the provider
        omits expires_in.
        """
        if expires_in is None:
            expires_in = self.settings.DEFAULT_TOKEN_LIFETIME_SECONDS
        return self.now() + int(expires_in)

    def is_token_expired(self, expires_at: Optional[int]) -> bool:
        """
        True if there is no expiry or it has been reached.

        Args:
            expires_at: Unix timestamp in seconds, or None
        """
        if expires_at is None:
            return True

        return self.now() >= int(expires_at)

    # =========================================================================
    # Refresh
    # =========================================================================

    async def _request_refresh(self, refresh_token: str) -> RefreshedTokens:
        payload = {
            "client_id": self.settings.ZITADEL_CLIENT_ID,
            "client_secret": self.settings.ZITADEL_CLIENT_SECRET,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.token_url,
                    data=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.RequestError as e:
            raise RefreshFailure(f"Refresh request failed: {e.__class__.__name__}") from e

        if not response.is_success:
            raise RefreshFailure(f"Refresh rejected with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RefreshFailure("Refresh response is not valid JSON") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise RefreshFailure("Refresh response missing access_token")

        return RefreshedTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or refresh_token,
            expires_at=self.compute_expires_at(data.get("expires_in")),
        )

    async def refresh_access_token(self, refresh_token: str) -> Optional[RefreshedTokens]:
        """
        Refresh an expired access token using the refresh token.

        Client credentials are sent in the form body. If the provider does
        not rotate the refresh token, the previous one is kept.

        Returns:
            RefreshedTokens, or None if the refresh failed for any reason
            (the caller must re-authenticate)
        """
        try:
            refreshed = await self._request_refresh(refresh_token)
        except RefreshFailure as e:
            logger.warning(f"Token refresh failed: {e}")
            return None

        logger.info("Access token refreshed", extra={"expires_at": refreshed.expires_at})
        return refreshed

    # =========================================================================
    # Logout
    # =========================================================================

    def build_logout_url(self, id_token: str) -> LogoutRedirect:
        """
        Build the end_session URL with a fresh state for CSRF protection.

        Args:
            id_token: ID token of the current session (id_token_hint)

        Returns:
            LogoutRedirect with the URL and the state to store
        """
        state = generate_state(16)

        params = urlencode({
            "id_token_hint": id_token,
            "post_logout_redirect_uri": self.settings.ZITADEL_POST_LOGOUT_URL,
            "state": state,
        })

        return LogoutRedirect(url=f"{self.end_session_url}?{params}", state=state)

    @staticmethod
    def verify_logout_state(received: Optional[str], expected: Optional[str]) -> None:
        """
        Raises:
            InvalidLogoutState: Unless both values are present and equal
        """
        if not states_match(received, expected):
            raise InvalidLogoutState("Invalid or missing state parameter.")
