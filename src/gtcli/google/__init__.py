"""Google OAuth authorization and API service utilities."""

from gtcli.google.callback import CallbackServer
from gtcli.google.exceptions import (
    AuthorizationDeniedError,
    AuthorizationError,
    AuthorizationTimeoutError,
    CallbackServerError,
    CredentialsNotFoundError,
    GoogleAuthError,
    InvalidRedirectError,
    MissingRefreshTokenError,
    TokenError,
)
from gtcli.google.oauth import OAuthFlow, OAuthResult, extract_code
from gtcli.google.service import ServiceCache, build_tasks_service

__all__ = [
    "OAuthFlow",
    "OAuthResult",
    "extract_code",
    "CallbackServer",
    "ServiceCache",
    "build_tasks_service",
    "GoogleAuthError",
    "CredentialsNotFoundError",
    "TokenError",
    "MissingRefreshTokenError",
    "AuthorizationError",
    "AuthorizationDeniedError",
    "InvalidRedirectError",
    "AuthorizationTimeoutError",
    "CallbackServerError",
]
