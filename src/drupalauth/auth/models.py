# Auth data models — credential records and their storage keys.
# Created: 2026-10-18

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """OAuth access/refresh token pair.

    ``expires_at`` is always computed locally as issue time + ``expires_in``.
    """

    access_token: str
    refresh_token: str | None
    expires_at: float  # Unix timestamp

    def is_usable(self, now: float, buffer_seconds: float) -> bool:
        """True if the token will still be valid *buffer_seconds* from now."""
        return now < self.expires_at - buffer_seconds


@dataclass(frozen=True)
class SessionCredential:
    """Tokens returned by the cookie session login."""

    csrf_token: str
    logout_token: str


@dataclass(frozen=True)
class OAuthHandshakeState:
    """State that must survive the redirect to /oauth/authorize and back."""

    nonce: str
    redirect_uri: str


class StorageKeys:
    """Namespaced key names for everything kept in the CredentialStore."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.state = f"{prefix}state"
        self.redirect_uri = f"{prefix}redirect_uri"
        self.csrf_token = f"{prefix}csrf_token"
        self.logout_token = f"{prefix}logout_token"
        self.access_token = f"{prefix}access_token"
        self.refresh_token = f"{prefix}refresh_token"
        self.expires_at = f"{prefix}expires_at"
        self.login_initiated = f"{prefix}login_initiated"

    @property
    def handshake(self) -> tuple[str, ...]:
        return (self.state, self.redirect_uri, self.login_initiated)

    @property
    def session(self) -> tuple[str, ...]:
        return (self.csrf_token, self.logout_token)

    @property
    def tokens(self) -> tuple[str, ...]:
        return (self.access_token, self.refresh_token, self.expires_at)
