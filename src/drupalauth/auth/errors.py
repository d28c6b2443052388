"""Authentication error taxonomy.

Every error carries a ``classification`` string so UI code can branch on
the kind of failure without importing the classes.
"""

from __future__ import annotations

__all__ = [
    "AuthError",
    "AuthorizationDenied",
    "ConfigurationError",
    "InvalidCredentials",
    "NetworkError",
    "NoRefreshToken",
    "RefreshFailed",
    "StateMismatch",
    "TokenExchangeFailed",
]


class AuthError(Exception):
    """Base class for authentication failures."""

    classification = "auth_error"

    def __init__(self, message: str = "", *, status_code: int | None = None):
        super().__init__(message or self.__class__.__name__)
        self.status_code = status_code


class InvalidCredentials(AuthError):
    """Username/password rejected by the session login endpoint."""

    classification = "invalid_credentials"


class StateMismatch(AuthError):
    """Callback ``state`` missing or not the nonce we issued."""

    classification = "state_mismatch"


class TokenExchangeFailed(AuthError):
    """Authorization code could not be exchanged for tokens."""

    classification = "token_exchange_failed"


class RefreshFailed(AuthError):
    """Refresh-token grant rejected or unreachable."""

    classification = "refresh_failed"


class NetworkError(AuthError):
    """Transport-level failure talking to the backend."""

    classification = "network_error"


class NoRefreshToken(AuthError):
    """A refresh was needed but no refresh token is stored."""

    classification = "no_refresh_token"


class AuthorizationDenied(AuthError):
    """The authorization server redirected back with an ``error`` parameter."""

    classification = "authorization_denied"


class ConfigurationError(ValueError):
    """Required backend settings are missing."""
