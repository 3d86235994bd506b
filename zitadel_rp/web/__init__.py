"""
Web Package
===========

Browser-facing pages that are not part of the authentication handshake.

Main Components:
----------------
- routes.py: home page and the guarded profile page
- templates.py: inline HTML templates shared with the auth routes
"""

from .routes import pages_router

__all__ = ["pages_router"]
