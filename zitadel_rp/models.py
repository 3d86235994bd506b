"""
Data Models Module

This module defines Pydantic models for the structures that flow between
the provider adapter, the auth session service and the HTTP handlers.

Models are organized by functional area:
- Identity models (the mapped user identity)
- Token models (code exchange result, refreshed token set)
- Logout models (end-session redirect and its CSRF state)
- Error models (JSON error bodies)
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Identity Models
# ============================================================================

class Identity(BaseModel):
    """User identity mapped from the provider's UserInfo claims."""
    id: Optional[str] = Field(None, description="Subject identifier (sub)")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    avatar: Optional[str] = Field(None, description="Avatar URL (picture)")


# ============================================================================
# Token Models
# ============================================================================

class TokenExchangeResult(BaseModel):
    """
    Token endpoint response for an authorization code exchange.

    Returned alongside the identity, never persisted verbatim: the callback
    normalizes it into session fields.
    """
    access_token: str = Field(..., description="Access token for the UserInfo endpoint")
    refresh_token: Optional[str] = Field(None, description="Refresh token (requires offline_access)")
    id_token: Optional[str] = Field(None, description="OIDC ID token")
    expires_in: Optional[int] = Field(None, description="Access token lifetime in seconds")
    token_type: Optional[str] = Field(None, description="Token type, normally Bearer")

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TokenExchangeResult":
        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token"),
            id_token=data.get("id_token"),
            expires_in=data.get("expires_in"),
            token_type=data.get("token_type"),
        )


class RefreshedTokens(BaseModel):
    """Token set produced by a successful refresh_token grant."""
    access_token: str = Field(..., description="New access token")
    refresh_token: Optional[str] = Field(None, description="Rotated refresh token, or the previous one")
    expires_at: int = Field(..., description="Absolute expiry as a unix timestamp (seconds)")


# ============================================================================
# Logout Models
# ============================================================================

class LogoutRedirect(BaseModel):
    """End-session URL together with the CSRF state embedded in it."""
    url: str = Field(..., description="Provider end_session URL")
    state: str = Field(..., description="Random state to match on the logout callback")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standardized JSON error body."""
    error: str = Field(..., description="Error type or message")
    detail: Optional[Any] = Field(None, description="Upstream body or additional detail")
