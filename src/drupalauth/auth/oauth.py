# OAuth Code Flow — authorization URL, code exchange and token persistence.
# Created: 2026-10-18
#
# The authorize step is a browser navigation: build_authorization_url() only
# returns the URL. Everything needed after the redirect (nonce, redirect_uri)
# is written to the credential store first.

from __future__ import annotations

import logging
import time
import urllib.parse
from collections.abc import Callable
from typing import Any

import httpx

from drupalauth.auth.errors import AuthError, NetworkError, StateMismatch, TokenExchangeFailed
from drupalauth.auth.http_utils import json_object
from drupalauth.auth.models import Credential, OAuthHandshakeState, StorageKeys
from drupalauth.auth.nonce import StateNonceGuard
from drupalauth.storage.credential_store import CredentialStore

logger = logging.getLogger(__name__)

AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
USERINFO_PATH = "/oauth/userinfo"

# Used when the token response omits expires_in
DEFAULT_EXPIRES_IN = 3600


class OAuthCodeFlowController:
    """OAuth 2.0 authorization code flow against a Drupal simple_oauth backend.

    Owns the token records in the store: ``exchange_code`` and
    ``save_token_response`` are the only writers of access/refresh tokens.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: CredentialStore,
        keys: StorageKeys,
        guard: StateNonceGuard,
        *,
        base_url: str,
        client_id: str,
        client_secret: str,
        refresh_token_ttl_days: int = 30,
        secure_only: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.http = http
        self.store = store
        self.keys = keys
        self.guard = guard
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token_ttl = refresh_token_ttl_days * 86400
        self.secure_only = secure_only
        self._clock = clock
        # Bumped whenever local auth state is wiped; token responses that
        # arrive for an older generation are dropped instead of stored.
        self.generation = 0

    # -- handshake --

    def build_authorization_url(self, redirect_uri: str, scope: str) -> str:
        """Issue a nonce, persist the handshake state and return the authorize URL.

        The caller performs the navigation.
        """
        nonce = self.guard.issue()
        self.store.set(self.keys.redirect_uri, redirect_uri, secure_only=self.secure_only)

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": scope,
            "state": nonce,
        }
        return f"{self.base_url}{AUTHORIZE_PATH}?{urllib.parse.urlencode(params)}"

    def pending_handshake(self) -> OAuthHandshakeState | None:
        nonce = self.store.get(self.keys.state)
        redirect_uri = self.store.get(self.keys.redirect_uri)
        if not nonce or not redirect_uri:
            return None
        return OAuthHandshakeState(nonce=nonce, redirect_uri=redirect_uri)

    def clear_handshake(self) -> None:
        for key in self.keys.handshake:
            self.store.remove(key)

    async def exchange_code(self, code: str, received_state: str | None) -> Credential:
        """Verify *received_state*, then exchange *code* for tokens.

        Raises:
            StateMismatch: no pending handshake or the state does not match.
                Raised before any request is sent.
            TokenExchangeFailed: the token endpoint failed or returned no
                access_token. Stored tokens are cleared.
        """
        redirect_uri = self.store.get(self.keys.redirect_uri)
        verified = self.guard.verify(received_state)
        self.store.remove(self.keys.redirect_uri)

        if not verified or not redirect_uri:
            self.clear_handshake()
            raise StateMismatch("OAuth state verification failed")

        generation = self.generation
        try:
            data = await self.request_tokens(
                {
                    "grant_type": "authorization_code",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                TokenExchangeFailed,
            )
        except TokenExchangeFailed:
            if self.generation == generation:
                self.clear_credential()
            raise

        self.ensure_current(generation, TokenExchangeFailed)
        credential = self.save_token_response(data)
        logger.info("OAuth tokens obtained via authorization code")
        return credential

    # -- token endpoint --

    async def request_tokens(
        self, form: dict[str, str], error_cls: type[AuthError]
    ) -> dict[str, Any]:
        """POST a form-encoded grant to the token endpoint.

        Any failure (transport, HTTP status, missing access_token) is raised
        as *error_cls*.
        """
        try:
            resp = await self.http.post(
                f"{self.base_url}{TOKEN_PATH}",
                data=form,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.TransportError as e:
            raise error_cls(f"Token endpoint unreachable: {e}") from e

        if resp.is_error:
            logger.warning(
                "Token endpoint returned HTTP %d for %s", resp.status_code, form["grant_type"]
            )
            raise error_cls(
                f"Token endpoint returned HTTP {resp.status_code}", status_code=resp.status_code
            )

        data = json_object(resp)
        if not data or not data.get("access_token"):
            raise error_cls("Invalid token response", status_code=resp.status_code)
        return data

    # -- token records --

    def save_token_response(self, data: dict[str, Any]) -> Credential:
        """Persist a token endpoint response and return the resulting Credential.

        ``expires_at`` is computed from the local clock. The stored refresh
        token is only replaced when the response carries a new one.
        """
        issued_at = self._clock()
        try:
            expires_in = float(data.get("expires_in", DEFAULT_EXPIRES_IN))
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN
        expires_at = issued_at + expires_in

        access_token = str(data["access_token"])
        self.store.set(
            self.keys.access_token,
            access_token,
            expires_at=expires_at,
            secure_only=self.secure_only,
        )
        self.store.set(
            self.keys.expires_at,
            repr(expires_at),
            expires_at=expires_at,
            secure_only=self.secure_only,
        )

        new_refresh = data.get("refresh_token")
        if new_refresh:
            self.store.set(
                self.keys.refresh_token,
                str(new_refresh),
                expires_at=issued_at + self.refresh_token_ttl,
                secure_only=self.secure_only,
            )

        return Credential(
            access_token=access_token,
            refresh_token=str(new_refresh) if new_refresh else self.stored_refresh_token(),
            expires_at=expires_at,
        )

    def load_credential(self) -> Credential | None:
        """Stored access token + expiry, or None if either is missing or expired."""
        access_token = self.store.get(self.keys.access_token)
        expires_at = self.store.get(self.keys.expires_at)
        if not access_token or not expires_at:
            return None
        try:
            expiry = float(expires_at)
        except ValueError:
            return None
        return Credential(
            access_token=access_token,
            refresh_token=self.stored_refresh_token(),
            expires_at=expiry,
        )

    def stored_refresh_token(self) -> str | None:
        return self.store.get(self.keys.refresh_token)

    def clear_credential(self) -> None:
        for key in self.keys.tokens:
            self.store.remove(key)

    def invalidate(self) -> None:
        """Mark token requests still in flight as stale."""
        self.generation += 1

    def ensure_current(self, generation: int, error_cls: type[AuthError]) -> None:
        if self.generation != generation:
            logger.info("Discarding token response: local auth state was cleared meanwhile")
            raise error_cls("Local auth state was cleared while the token request was pending")

    # -- resource calls --

    async def get_user_info(self, access_token: str) -> dict[str, Any]:
        """GET /oauth/userinfo with the given bearer token."""
        try:
            resp = await self.http.get(
                f"{self.base_url}{USERINFO_PATH}",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.TransportError as e:
            raise NetworkError(f"User info request failed: {e}") from e

        data = json_object(resp)
        if resp.is_error or data is None:
            raise AuthError("Failed to get user info", status_code=resp.status_code)
        return data
