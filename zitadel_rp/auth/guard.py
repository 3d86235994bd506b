"""
Session guard for protected routes.

Ensures the user is authenticated before a protected handler runs. If no
identity is present, the client is redirected to the sign-in page with the
original URL preserved in the callbackUrl query parameter. An expired access
token is refreshed silently; if the refresh fails the whole session is
cleared and the client is sent back to sign-in.

Usage in routes:
    @router.get("/profile")
    async def profile(session: SessionContext = Depends(require_auth)):
        ...
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse

from .dependencies import get_auth_service
from .exceptions import AuthenticationRequired
from .service import AuthService
from .session import (
    ACCESS_TOKEN,
    EXPIRES_AT,
    IDENTITY,
    REFRESH_TOKEN,
    SessionContext,
    get_session,
)

logger = logging.getLogger(__name__)

SIGNIN_PATH = "/auth/signin"


def requested_url(request: Request) -> str:
    """Path and query of the current request, used as the post-sign-in target."""
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def signin_redirect_url(callback_url: Optional[str] = None) -> str:
    if not callback_url:
        return SIGNIN_PATH
    return f"{SIGNIN_PATH}?{urlencode({'callbackUrl': callback_url})}"


async def require_auth(
    request: Request,
    session: SessionContext = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionContext:
    """
    FastAPI dependency guarding a route.

    Only the stored expiry is checked; the access token itself is not
    validated. The refresh and the write-back run under the session lock,
    on data re-read after the lock was acquired, so a request that waited
    sees the tokens another request of the same session just refreshed.

    Returns:
        The SessionContext of the authenticated session

    Raises:
        AuthenticationRequired: If the user must (re-)authenticate
    """
    # Anonymous requests never take a lock
    if not session.get(IDENTITY):
        raise AuthenticationRequired(requested_url(request))

    async with session.locked():
        if not session.get(IDENTITY):
            raise AuthenticationRequired(requested_url(request))

        refresh_token = session.get(REFRESH_TOKEN)

        if auth_service.is_token_expired(session.get(EXPIRES_AT)) and refresh_token:
            refreshed = await auth_service.refresh_access_token(refresh_token)

            if refreshed is None:
                logger.warning(
                    "Refresh failed, clearing session",
                    extra={"path": request.url.path},
                )
                session.clear()
                raise AuthenticationRequired(requested_url(request))

            session.set({
                ACCESS_TOKEN: refreshed.access_token,
                REFRESH_TOKEN: refreshed.refresh_token,
                EXPIRES_AT: refreshed.expires_at,
            })

    return session


async def authentication_required_handler(
    request: Request, exc: AuthenticationRequired
) -> RedirectResponse:
    """Exception handler turning AuthenticationRequired into a sign-in redirect."""
    return RedirectResponse(url=signin_redirect_url(exc.callback_url), status_code=302)
