# Session Authenticator — Drupal cookie login, CSRF token and logout.
# Created: 2026-10-18

from __future__ import annotations

import logging
from typing import Any

import httpx

from drupalauth.auth.errors import AuthError, InvalidCredentials, NetworkError
from drupalauth.auth.http_utils import json_object
from drupalauth.auth.models import SessionCredential, StorageKeys
from drupalauth.storage.credential_store import CredentialStore

logger = logging.getLogger(__name__)

SESSION_LOGIN_PATH = "/user/login?_format=json"
SESSION_TOKEN_PATH = "/session/token"
SESSION_USER_PATH = "/user/me?_format=json"
LOGOUT_PATH = "/user/logout"


class SessionAuthenticator:
    """Username/password login against Drupal's session endpoint.

    The backend's session cookie lands in the shared ``httpx.AsyncClient``
    cookie jar and is sent on every later call made through that client.
    The CSRF and logout tokens from the login response are persisted in the
    credential store.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: CredentialStore,
        keys: StorageKeys,
        base_url: str,
        *,
        secure_only: bool = True,
    ):
        self.http = http
        self.store = store
        self.keys = keys
        self.base_url = base_url.rstrip("/")
        self.secure_only = secure_only

    @property
    def csrf_token(self) -> str | None:
        return self.store.get(self.keys.csrf_token)

    def get_session(self) -> SessionCredential | None:
        """Return the stored session tokens, or None if not logged in."""
        csrf = self.store.get(self.keys.csrf_token)
        logout = self.store.get(self.keys.logout_token)
        if not csrf or not logout:
            return None
        return SessionCredential(csrf_token=csrf, logout_token=logout)

    async def login(self, username: str, password: str) -> SessionCredential:
        """Log in with username/password and persist the CSRF + logout tokens.

        Raises:
            InvalidCredentials: the backend rejected the login or replied
                without both tokens.
            NetworkError: the backend could not be reached.
        """
        try:
            resp = await self.http.post(
                f"{self.base_url}{SESSION_LOGIN_PATH}",
                json={"name": username, "pass": password},
            )
        except httpx.TransportError as e:
            raise NetworkError(f"Session login request failed: {e}") from e

        if resp.is_error:
            logger.info("Session login rejected for %s (HTTP %d)", username, resp.status_code)
            raise InvalidCredentials("Invalid username or password", status_code=resp.status_code)

        data = json_object(resp)
        csrf = data.get("csrf_token") if data else None
        logout = data.get("logout_token") if data else None
        if not csrf or not logout:
            raise InvalidCredentials("Invalid login response", status_code=resp.status_code)

        self.store.set(self.keys.csrf_token, csrf, secure_only=self.secure_only)
        self.store.set(self.keys.logout_token, logout, secure_only=self.secure_only)
        logger.info("Session established for %s", username)
        return SessionCredential(csrf_token=csrf, logout_token=logout)

    async def refresh_csrf_token(self) -> str:
        """Fetch a fresh CSRF token for the current session and store it."""
        try:
            resp = await self.http.get(f"{self.base_url}{SESSION_TOKEN_PATH}")
        except httpx.TransportError as e:
            raise NetworkError(f"CSRF token request failed: {e}") from e

        token = resp.text.strip()
        if resp.is_error or not token:
            raise AuthError("Failed to get CSRF token", status_code=resp.status_code)

        self.store.set(self.keys.csrf_token, token, secure_only=self.secure_only)
        logger.debug("CSRF token refreshed")
        return token

    async def get_user_info(self) -> dict[str, Any]:
        """Current user as seen through the session cookie."""
        try:
            resp = await self.http.get(f"{self.base_url}{SESSION_USER_PATH}")
        except httpx.TransportError as e:
            raise NetworkError(f"User info request failed: {e}") from e

        data = json_object(resp)
        if resp.is_error or data is None:
            raise AuthError("Failed to get user info", status_code=resp.status_code)
        return data

    async def logout(self, bearer_token: str | None = None) -> None:
        """Invalidate the server session (best effort) and drop local tokens.

        Never raises on transport or HTTP errors; the local tokens and the
        session cookie are cleared in every case.
        """
        logout_token = self.store.get(self.keys.logout_token)
        headers: dict[str, str] = {}
        if logout_token:
            headers["X-CSRF-Token"] = logout_token
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"

        try:
            if headers:
                resp = await self.http.get(f"{self.base_url}{LOGOUT_PATH}", headers=headers)
                if resp.is_error:
                    logger.warning("Server logout returned HTTP %d", resp.status_code)
        except httpx.HTTPError as e:
            logger.warning("Server logout failed: %s", e)
        finally:
            for key in self.keys.session:
                self.store.remove(key)
            self.http.cookies.clear()
