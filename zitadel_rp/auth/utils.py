"""
Authentication utilities for PKCE, random state tokens and ID token inspection.

This module handles:
- Generating PKCE code verifiers and S256 challenges
- Generating CSRF state tokens
- Decoding ID token claims for display
- Checking post-login redirect targets
"""

import base64
import hashlib
import secrets
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import DecodeError


# =============================================================================
# PKCE Helper Functions
# =============================================================================

def generate_code_verifier() -> str:
    """
    Generate a cryptographically random code verifier for PKCE.

    Returns:
        Base64-URL-encoded random string (43 characters)
    """
    verifier_bytes = secrets.token_bytes(32)
    return base64.urlsafe_b64encode(verifier_bytes).decode('utf-8').rstrip('=')


def generate_code_challenge(verifier: str) -> str:
    """
    Generate code challenge from verifier using S256 method.

    Args:
        verifier: Code verifier string

    Returns:
        Base64-URL-encoded SHA256 hash of verifier
    """
    digest = hashlib.sha256(verifier.encode('utf-8')).digest()
    return base64.urlsafe_b64encode(digest).decode('utf-8').rstrip('=')


# =============================================================================
# State Tokens
# =============================================================================

def generate_state(num_bytes: int = 16) -> str:
    """
    Generate a random CSRF correlation token.

    Args:
        num_bytes: Entropy in bytes (16 bytes = 128 bits minimum)

    Returns:
        Hex string of 2 * num_bytes characters
    """
    return secrets.token_hex(max(num_bytes, 16))


def states_match(received: Optional[str], expected: Optional[str]) -> bool:
    """
    Exact, constant-time comparison of two state values.

    Both values must be present and non-empty.
    """
    if not received or not expected:
        return False
    return secrets.compare_digest(received.encode('utf-8'), expected.encode('utf-8'))


# =============================================================================
# ID Token Inspection
# =============================================================================

def decode_token_without_verification(token: Optional[str]) -> Dict[str, Any]:
    """
    Decode a JWT without verifying its signature (for display only).

    The ID token is received directly from the token endpoint over TLS and
    is only shown back to its owner; nothing is authorized on its claims.

    Args:
        token: JWT token string

    Returns:
        Decoded claims, or an empty dict if the token is absent or malformed
    """
    if not token:
        return {}
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except DecodeError:
        return {}


# =============================================================================
# Redirect Targets
# =============================================================================

def safe_local_path(path: Optional[str]) -> Optional[str]:
    """
    Accept only same-origin absolute paths as redirect targets.

    Returns:
        The path if it starts with a single '/', otherwise None
    """
    if not path:
        return None
    value = path.strip()
    if not value.startswith("/") or value.startswith("//") or "\\" in value:
        return None
    return value
