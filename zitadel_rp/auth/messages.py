"""
User-facing messages for authentication errors.

Translates provider and internal error codes into a heading and a message
for two categories: sign-in errors (shown on the sign-in page) and general
authentication errors (shown on the error page). Matching ignores case;
unknown or absent codes fall back to the category default.
"""

from typing import Dict, Optional

SIGNIN_CATEGORY = "signin"
AUTH_CATEGORY = "auth"

_CATEGORY_ALIASES = {
    "signin": SIGNIN_CATEGORY,
    "signin-error": SIGNIN_CATEGORY,
    "auth": AUTH_CATEGORY,
    "auth-error": AUTH_CATEGORY,
}

_SIGNIN_FAILED = {
    "heading": "Sign-in Failed",
    "message": "Try signing in with a different account.",
}

SIGNIN_MESSAGES: Dict[str, Dict[str, str]] = {
    "signin": _SIGNIN_FAILED,
    "oauthsignin": _SIGNIN_FAILED,
    "oauthcallback": _SIGNIN_FAILED,
    "oauthcreateaccount": _SIGNIN_FAILED,
    "emailcreateaccount": _SIGNIN_FAILED,
    "callback": _SIGNIN_FAILED,
    "oauthaccountnotlinked": {
        "heading": "Account Not Linked",
        "message": "To confirm your identity, sign in with the same account you used originally.",
    },
    "emailsignin": {
        "heading": "Email Not Sent",
        "message": "The email could not be sent.",
    },
    "credentialssignin": {
        "heading": "Sign-in Failed",
        "message": "Sign in failed. Check the details you provided are correct.",
    },
    "sessionrequired": {
        "heading": "Sign-in Required",
        "message": "Please sign in to access this page.",
    },
}

SIGNIN_DEFAULT = {
    "heading": "Unable to Sign in",
    "message": "An unexpected error occurred during sign-in. Please try again.",
}

AUTH_MESSAGES: Dict[str, Dict[str, str]] = {
    "configuration": {
        "heading": "Server Error",
        "message": "There is a problem with the server configuration. Check the server logs for more information.",
    },
    "accessdenied": {
        "heading": "Access Denied",
        "message": "You do not have permission to sign in.",
    },
    "verification": {
        "heading": "Sign-in Link Invalid",
        "message": "The sign-in link is no longer valid. It may have been used already or it may have expired.",
    },
}

AUTH_DEFAULT = {
    "heading": "Authentication Error",
    "message": "An unexpected error occurred during authentication. Please try again.",
}


def get_message(error_code: Optional[str], category: str) -> Dict[str, str]:
    """
    Look up the heading and message for an error code.

    Args:
        error_code: Code from the query string (any case), or None
        category: "signin" / "signin-error" for the sign-in page,
                  anything else selects general authentication errors

    Returns:
        {"heading": ..., "message": ...} (a fresh dict)
    """
    normalized = (error_code or "default").strip().lower()

    if _CATEGORY_ALIASES.get(category.lower()) == SIGNIN_CATEGORY:
        return dict(SIGNIN_MESSAGES.get(normalized, SIGNIN_DEFAULT))

    return dict(AUTH_MESSAGES.get(normalized, AUTH_DEFAULT))
