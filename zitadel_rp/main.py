"""
FastAPI Relying Party Application Factory
==========================================

This is the main entry point for the web application that delegates user
authentication to ZITADEL using the Authorization Code flow with PKCE.

Architecture:
    Browser → Relying Party (this service) → ZITADEL (authorize, token, userinfo, end_session)

Routers:
    - /             : Home page (anonymous or signed-in view)
    - /profile      : Session contents (requires sign-in)
    - /auth/*       : Sign-in, callback, error, logout handshake, userinfo
    - /health       : Health check endpoint

Environment Variables Required:
    - ZITADEL_DOMAIN: ZITADEL instance URL (e.g., "https://my-instance.zitadel.cloud")
    - ZITADEL_CLIENT_ID: OIDC client ID
    - ZITADEL_CLIENT_SECRET: OIDC client secret
    - ZITADEL_CALLBACK_URL: e.g. "http://localhost:3000/auth/callback/zitadel"
    - ZITADEL_POST_LOGOUT_URL: e.g. "http://localhost:3000/auth/logout/callback"
    - SESSION_SECRET: Secret for signing the session cookie (32+ chars)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn zitadel_rp.main:create_app --factory --reload --host 0.0.0.0 --port 3000

    Production (single worker; sessions are held in process memory):
        uvicorn zitadel_rp.main:create_app --factory --host 0.0.0.0 --port 3000
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from . import __version__
from .auth.exceptions import AuthenticationRequired
from .auth.guard import authentication_required_handler
from .auth.provider import ZitadelProvider
from .auth.routes import auth_router
from .auth.service import AuthService
from .auth.session import InMemorySessionStore
from .config import Settings, get_settings, validate_configuration
from .web import pages_router


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Validate configuration and log problems

    Shutdown tasks:
        - Log shutdown
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("zitadel_rp.main")

    status = validate_configuration(settings)
    for error in status["errors"]:
        logger.error(f"Configuration error: {error}")
    for warning in status["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    logger.info(
        "Starting relying party",
        extra={
            "zitadel_domain": settings.ZITADEL_DOMAIN,
            "scopes": status["scopes"],
            "log_level": settings.LOG_LEVEL,
        }
    )

    yield

    logger.info("Shutting down relying party")


# Create FastAPI application
def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Explicit settings (defaults to get_settings())
        transport: Optional httpx transport for all identity provider calls

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="ZITADEL Relying Party",
        description="OIDC Authorization Code + PKCE relying party for ZITADEL",
        version=__version__,
        lifespan=lifespan,
    )

    # Shared state: settings, providers, token service, session store
    zitadel = ZitadelProvider(settings, transport=transport)
    app.state.settings = settings
    app.state.providers = {zitadel.name: zitadel}
    app.state.default_provider = zitadel.name
    app.state.auth_service = AuthService(settings, transport=transport)
    app.state.session_store = InMemorySessionStore(ttl_seconds=settings.SESSION_LIFETIME_SECONDS)

    # Signed cookie carrying only the session id
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_LIFETIME_SECONDS,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )

    app.include_router(pages_router)
    app.include_router(auth_router)

    app.add_exception_handler(AuthenticationRequired, authentication_required_handler)

    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": "zitadel-rp",
            "version": __version__,
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("zitadel_rp.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if settings.LOG_LEVEL == "DEBUG" else None
            }
        )

    return app


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "zitadel_rp.main:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
