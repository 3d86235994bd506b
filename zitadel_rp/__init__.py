"""
ZITADEL Relying Party
=====================

Web application that delegates user authentication to ZITADEL with the
OpenID Connect Authorization Code flow and PKCE.

Packages:
    - zitadel_rp.auth : sign-in/callback/logout handshake, token lifecycle,
                        session guard, provider adapter
    - zitadel_rp.web  : home and profile pages

Usage:
    from zitadel_rp.main import create_app
    app = create_app()
"""

__version__ = "1.0.0"
