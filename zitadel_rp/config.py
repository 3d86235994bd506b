"""
Configuration module for the ZITADEL relying party.

This module uses Pydantic Settings to load and validate environment variables
for the identity provider (ZITADEL) connection, the session cookie, outbound
HTTP behaviour and logging.

Environment variables are loaded from .env file or system environment.
"""

import re
from functools import lru_cache
from typing import Any, Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SCOPES = (
    "openid profile email offline_access "
    "urn:zitadel:iam:user:metadata "
    "urn:zitadel:iam:user:resourceowner "
    "urn:zitadel:iam:org:projects:roles"
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provider configuration is immutable for the lifetime of the process;
    the application factory receives one instance and shares it.
    """

    # =========================================================================
    # ZITADEL / OIDC Provider Configuration
    # =========================================================================

    ZITADEL_DOMAIN: str = Field(
        ...,
        description="Base URL of the ZITADEL instance (e.g., https://my-instance.zitadel.cloud)",
        min_length=1,
    )

    ZITADEL_CLIENT_ID: str = Field(
        ...,
        description="OIDC client ID of this application",
        min_length=1,
    )

    ZITADEL_CLIENT_SECRET: str = Field(
        ...,
        description="OIDC client secret (sent as HTTP Basic credentials on code exchange)",
        min_length=1,
    )

    ZITADEL_CALLBACK_URL: str = Field(
        ...,
        description="Redirect URI registered in ZITADEL (e.g., https://app.example.com/auth/callback/zitadel)",
        min_length=1,
    )

    ZITADEL_POST_LOGOUT_URL: str = Field(
        ...,
        description="Where ZITADEL sends the browser after end_session (e.g., https://app.example.com/auth/logout/callback)",
        min_length=1,
    )

    ZITADEL_SCOPES: str = Field(
        default=DEFAULT_SCOPES,
        description="Requested scopes, separated by whitespace or commas",
    )

    # =========================================================================
    # Session Configuration
    # =========================================================================

    SESSION_SECRET: str = Field(
        ...,
        description="Secret key for signing the session cookie (must be cryptographically secure)",
        min_length=32,
    )

    SESSION_COOKIE_NAME: str = Field(
        default="zitadel_rp_session",
        description="Name of the session cookie",
    )

    SESSION_LIFETIME_SECONDS: int = Field(
        default=86400,
        description="Idle lifetime of a server-side session in seconds",
        ge=300,
        le=30 * 86400,
    )

    SESSION_HTTPS_ONLY: bool = Field(
        default=False,
        description="Mark the session cookie Secure (enable behind TLS)",
    )

    # =========================================================================
    # Token / HTTP Behaviour
    # =========================================================================

    HTTP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout applied to every outbound call to the identity provider",
        gt=0,
        le=120,
    )

    DEFAULT_TOKEN_LIFETIME_SECONDS: int = Field(
        default=3600,
        description="Access token lifetime assumed when the provider omits expires_in",
        ge=1,
    )

    # =========================================================================
    # Server / Logging Configuration
    # =========================================================================

    APP_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the web server",
    )

    APP_PORT: int = Field(
        default=3000,
        description="Port to bind the web server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def scopes_list(self) -> List[str]:
        """
        Parse ZITADEL_SCOPES into an order-stable list without duplicates.

        Returns:
            List of scope strings in the order they were configured.
        """
        scopes: List[str] = []
        for scope in re.split(r"[\s,]+", self.ZITADEL_SCOPES):
            if scope and scope not in scopes:
                scopes.append(scope)
        return scopes

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("ZITADEL_DOMAIN")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """
        Require an absolute http(s) URL and strip any trailing slash.

        Raises:
            ValueError: If the value is not an http(s) URL
        """
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ValueError(
                f"ZITADEL_DOMAIN must be an absolute URL, got: '{v}'. "
                "Expected format: 'https://my-instance.zitadel.cloud'"
            )
        return v.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        if v.upper() not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return v.upper()


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> Dict[str, Any]:
    """
    Validate critical configuration settings and return a status report.

    Called during application startup; problems are logged, not raised.

    Returns:
        Dictionary with validation status, errors and warnings.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    errors = []
    warnings = []

    if not settings.scopes_list:
        errors.append("ZITADEL_SCOPES is empty")

    if "openid" not in settings.scopes_list:
        warnings.append("ZITADEL_SCOPES does not list 'openid' (it will be added automatically)")

    if "offline_access" not in settings.scopes_list:
        warnings.append("ZITADEL_SCOPES lacks 'offline_access'; no refresh token will be issued")

    if not settings.ZITADEL_DOMAIN.startswith("https://"):
        warnings.append("ZITADEL_DOMAIN is not served over https")

    if not settings.ZITADEL_CALLBACK_URL.startswith("https://"):
        warnings.append("ZITADEL_CALLBACK_URL is not an https URL")

    if not settings.SESSION_HTTPS_ONLY:
        warnings.append("SESSION_HTTPS_ONLY is disabled (session cookie is not marked Secure)")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "scopes": settings.scopes_list,
    }
