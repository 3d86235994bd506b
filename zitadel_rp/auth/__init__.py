"""
Authentication Package

This package handles authentication for the relying party using ZITADEL
and OpenID Connect (OIDC).

Key responsibilities:
- Authorization code flow with PKCE (sign-in initiation and callback)
- ID token presence gate and session materialization
- Token expiry detection and silent refresh
- Federated logout with CSRF state matching
- User-facing error messages

Modules:
- routes: Public authentication endpoints (/auth/signin, /auth/callback, ...)
- provider: Identity provider protocol and the ZITADEL adapter
- service: Token lifecycle (expiry, refresh, logout URL)
- guard: Dependency protecting routes that need a signed-in user
- session: Server-side session store and per-request context
- messages: Error code to heading/message catalog
- utils: PKCE, state tokens, ID token decoding

The authentication flow:
1. Browser posts to /auth/signin/zitadel
2. User authenticates with ZITADEL
3. ZITADEL redirects to /auth/callback/zitadel with a code
4. Code is exchanged (Basic auth + PKCE), UserInfo is fetched, session is stored
5. Protected routes pass through the guard, which refreshes expired tokens
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
