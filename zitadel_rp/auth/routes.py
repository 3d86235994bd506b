"""
Authentication routes for sign-in, callback, logout and user info.

This module implements the OAuth 2.0 / OIDC authorization code flow with
PKCE against the configured identity provider, and the federated logout
handshake (end_session with a CSRF state).

Every provider or network failure is caught here and turned into a
redirect carrying an opaque error code; details only go to the log.
"""

import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ..models import ErrorResponse
from ..web import templates
from .dependencies import get_auth_service, get_default_provider, get_provider
from .exceptions import (
    AuthFlowError,
    InvalidAuthorizationState,
    InvalidLogoutState,
    MissingIdToken,
    ProviderRejection,
    TransportError,
)
from .guard import require_auth
from .messages import AUTH_CATEGORY, SIGNIN_CATEGORY, get_message
from .provider import IdentityProvider
from .service import AuthService
from .session import (
    ACCESS_TOKEN,
    CALLBACK_URL,
    EXPIRES_AT,
    FLASH_ERROR,
    ID_TOKEN,
    IDENTITY,
    LOGOUT_STATE,
    OAUTH_STATE,
    PKCE_VERIFIER,
    REFRESH_TOKEN,
    SessionContext,
    get_session,
)
from .utils import (
    generate_code_challenge,
    generate_code_verifier,
    safe_local_path,
    states_match,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
)

DEFAULT_LANDING_PATH = "/profile"

LOGOUT_ERROR_REASONS = {
    InvalidLogoutState.reason: "Invalid or missing state parameter.",
}
UNKNOWN_LOGOUT_ERROR = "An unknown error occurred."


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


def _error_redirect(error_code: str) -> RedirectResponse:
    return _redirect(f"/auth/error?{urlencode({'error': error_code})}")


# =============================================================================
# Sign-in
# =============================================================================

@auth_router.get("/signin", response_class=HTMLResponse)
async def show_signin(
    request: Request,
    error: Optional[str] = Query(None, description="Error code from a failed sign-in"),
    callbackUrl: Optional[str] = Query(None, description="Where to go after sign-in"),
):
    """Display the sign-in page with the registered providers."""
    providers = [
        {
            "id": name,
            "name": getattr(provider, "display_name", name),
            "signinUrl": f"/auth/signin/{name}",
        }
        for name, provider in request.app.state.providers.items()
    ]

    message = get_message(error, SIGNIN_CATEGORY) if error else None

    return templates.render_signin(
        providers=providers,
        callback_url=safe_local_path(callbackUrl),
        message=message,
    )


@auth_router.post("/signin/{provider}", response_class=RedirectResponse)
async def redirect_to_provider(
    callbackUrl: Optional[str] = Query(None, description="Where to go after sign-in"),
    provider: IdentityProvider = Depends(get_provider),
    session: SessionContext = Depends(get_session),
):
    """
    Initiate the authorization code flow.

    Generates the PKCE verifier and the OAuth state, stores both in the
    session for the callback and redirects to the provider.
    """
    code_verifier = generate_code_verifier()
    state = secrets.token_urlsafe(32)

    session.set({
        PKCE_VERIFIER: code_verifier,
        OAUTH_STATE: state,
        CALLBACK_URL: safe_local_path(callbackUrl),
    })

    authorization_url = provider.build_authorization_url(
        state=state,
        code_challenge=generate_code_challenge(code_verifier),
    )

    logger.info("Redirecting to identity provider", extra={"provider": provider.name})

    return _redirect(authorization_url)


# =============================================================================
# Callback
# =============================================================================

@auth_router.get("/callback/{provider}", response_class=RedirectResponse)
async def handle_provider_callback(
    code: Optional[str] = Query(None, description="Authorization code"),
    state: Optional[str] = Query(None, description="State parameter for CSRF protection"),
    error: Optional[str] = Query(None, description="Error code if authentication failed"),
    error_description: Optional[str] = Query(None, description="Error description"),
    provider: IdentityProvider = Depends(get_provider),
    session: SessionContext = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Handle the OAuth callback.

    The stored verifier, state and landing path are consumed whatever the
    outcome. No session field is written unless the whole exchange
    succeeds, including the presence of an ID token.
    """
    code_verifier = session.pull(PKCE_VERIFIER)
    expected_state = session.pull(OAUTH_STATE)
    landing_path = session.pull(CALLBACK_URL)

    if error:
        logger.warning(
            "Identity provider returned an error",
            extra={"error": error, "error_description": error_description},
        )
        return _error_redirect("accessdenied" if error == "access_denied" else ProviderRejection.error_code)

    try:
        if not states_match(state, expected_state):
            raise InvalidAuthorizationState("Invalid or missing state parameter")

        if not code:
            raise AuthFlowError("Callback is missing the authorization code")

        tokens = await provider.exchange_code(code, code_verifier)

        if not tokens.id_token:
            raise MissingIdToken("Token response has no id_token")

        claims = await provider.fetch_user_info(tokens.access_token)
        identity = provider.map_claims_to_identity(claims)

    except MissingIdToken:
        logger.critical("Identity provider did not return an id_token. Check scopes.")
        return _error_redirect(MissingIdToken.error_code)

    except ProviderRejection as e:
        logger.error(
            "Identity provider rejected request",
            extra={"status": e.status_code, "body": e.body},
        )
        return _error_redirect(ProviderRejection.error_code)

    except (InvalidAuthorizationState, TransportError) as e:
        logger.warning(f"Sign-in callback failed: {e}")
        return _error_redirect(e.error_code)

    except Exception as e:
        logger.error(f"Unexpected error during authentication: {e}", exc_info=True)
        return _error_redirect(AuthFlowError.error_code)

    session.regenerate()
    session.set({
        IDENTITY: identity.model_dump(),
        ACCESS_TOKEN: tokens.access_token,
        REFRESH_TOKEN: tokens.refresh_token,
        ID_TOKEN: tokens.id_token,
        EXPIRES_AT: auth_service.compute_expires_at(tokens.expires_in),
    })

    logger.info("User signed in", extra={"provider": provider.name, "user_id": identity.id})

    return _redirect(landing_path or DEFAULT_LANDING_PATH)


@auth_router.get("/error", response_class=HTMLResponse)
async def show_error(
    error: Optional[str] = Query(None, description="Opaque error code"),
):
    """Display the authentication error page."""
    message = get_message(error, AUTH_CATEGORY)
    return templates.render_error(message["heading"], message["message"])


# =============================================================================
# Logout
# =============================================================================

@auth_router.post("/logout", response_class=RedirectResponse)
async def logout(
    session: SessionContext = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Initiate federated logout.

    Requires an ID token (id_token_hint). The generated state is stored and
    the browser is sent to the provider's end_session endpoint.
    """
    id_token = session.get(ID_TOKEN)

    if not id_token:
        session.set({FLASH_ERROR: "No valid session or ID token found"})
        return _redirect("/")

    logout_redirect = auth_service.build_logout_url(id_token)
    session.set({LOGOUT_STATE: logout_redirect.state})

    logger.info("Redirecting to end_session")

    return _redirect(logout_redirect.url)


@auth_router.get("/logout/callback", response_class=RedirectResponse)
async def logout_callback(
    state: Optional[str] = Query(None, description="State returned by the provider"),
    session: SessionContext = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Handle the post-logout redirect from the provider.

    The stored state is single use: it is removed before comparison, so a
    replayed callback always takes the error path.
    """
    expected_state = session.pull(LOGOUT_STATE)

    try:
        auth_service.verify_logout_state(state, expected_state)
    except InvalidLogoutState as e:
        logger.warning(f"Logout callback rejected: {e}")
        return _redirect(f"/auth/logout/error?{urlencode({'reason': e.reason})}")

    session.clear()
    logger.info("User signed out")

    return _redirect("/auth/logout/success")


@auth_router.get("/logout/success", response_class=HTMLResponse)
async def logout_success():
    return templates.render_logout_success()


@auth_router.get("/logout/error", response_class=HTMLResponse)
async def logout_error(
    reason: Optional[str] = Query(None, description="Reason code"),
):
    return templates.render_logout_error(LOGOUT_ERROR_REASONS.get(reason or "", UNKNOWN_LOGOUT_ERROR))


# =============================================================================
# User Info
# =============================================================================

@auth_router.get("/userinfo")
async def userinfo(
    session: SessionContext = Depends(require_auth),
    provider: IdentityProvider = Depends(get_default_provider),
):
    """
    Fetch fresh claims from the provider's UserInfo endpoint.

    Always re-fetched, never served from the session.
    """
    access_token = session.get(ACCESS_TOKEN)

    if not access_token:
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(error="No access token available").model_dump(),
        )

    try:
        claims = await provider.fetch_user_info(access_token)
    except ProviderRejection as e:
        return JSONResponse(
            status_code=e.status_code,
            content=ErrorResponse(
                error=f"UserInfo API error: {e.status_code}",
                detail=e.body,
            ).model_dump(),
        )
    except AuthFlowError as e:
        logger.error(f"UserInfo request failed: {e}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Failed to fetch user info").model_dump(),
        )

    return JSONResponse(content=claims)
