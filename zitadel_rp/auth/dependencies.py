"""
FastAPI dependencies resolving shared application state.

The token service and the provider registry are created once by the
application factory and stored on ``app.state``.
"""

from fastapi import HTTPException, Request, status

from .provider import IdentityProvider
from .service import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_provider(request: Request, provider: str) -> IdentityProvider:
    """
    Resolve the ``{provider}`` path parameter against the registered providers.

    Raises:
        HTTPException: 404 if no provider is registered under that name
    """
    providers = request.app.state.providers
    if provider not in providers:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}",
        )
    return providers[provider]


def get_default_provider(request: Request) -> IdentityProvider:
    """The provider used by endpoints without a ``{provider}`` path segment."""
    return request.app.state.providers[request.app.state.default_provider]
