"""
Authentication error kinds.

Every failure of a provider call is converted into one of these at the
flow boundary. The ``error_code`` is the opaque value placed in the
``/auth/error?error=`` redirect; details stay in the server log.
"""

from typing import Optional


class AuthFlowError(Exception):
    """Base exception for sign-in and logout flow failures"""

    error_code = "generic_error"


class MissingIdToken(AuthFlowError):
    """The token endpoint answered without an id_token."""

    error_code = "missing_id_token"


class ProviderRejection(AuthFlowError):
    """The identity provider answered with a non-2xx status."""

    error_code = "provider_rejection"

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Provider responded with HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class TransportError(AuthFlowError):
    """Network failure or timeout while talking to the identity provider."""


class InvalidAuthorizationState(AuthFlowError):
    """OAuth state on the sign-in callback is missing or does not match."""


class InvalidLogoutState(AuthFlowError):
    """Logout callback state is missing or does not match the stored one."""

    reason = "invalid_or_missing_state"


class RefreshFailure(AuthFlowError):
    """The refresh_token grant did not produce a usable token set."""


class AuthenticationRequired(Exception):
    """
    Raised by the session guard when the request must sign in first.

    Converted into a redirect to the sign-in page, not an error page.
    """

    def __init__(self, callback_url: Optional[str] = None):
        super().__init__("Authentication required")
        self.callback_url = callback_url
