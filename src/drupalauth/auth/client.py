# Auth Client — one controller for session, OAuth and combined login.
# Created: 2026-10-18
#
# Combined flow:
#   initiate_login()  -> session login, returns /oauth/authorize URL
#   (browser navigates, backend redirects to the callback)
#   handle_callback() -> state check + code exchange
#   requests.get(...) -> bearer/CSRF-decorated calls

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

import httpx

from drupalauth.auth.decorator import AuthenticatedRequestDecorator
from drupalauth.auth.errors import (
    AuthError,
    AuthorizationDenied,
    ConfigurationError,
    StateMismatch,
)
from drupalauth.auth.models import Credential, StorageKeys
from drupalauth.auth.nonce import StateNonceGuard
from drupalauth.auth.oauth import OAuthCodeFlowController
from drupalauth.auth.phase import AuthenticationPhase, derive_phase
from drupalauth.auth.session import SessionAuthenticator
from drupalauth.auth.tokens import TokenLifecycleManager
from drupalauth.config import Settings, get_settings
from drupalauth.storage.credential_store import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)

logger = logging.getLogger(__name__)

# Minimum seconds between two non-forced status checks
STATUS_CHECK_INTERVAL = 2.0


class AuthMode(str, Enum):
    """Which login phases are active."""

    SESSION = "session"
    OAUTH = "oauth"
    COMBINED = "combined"

    @property
    def uses_session(self) -> bool:
        return self is not AuthMode.OAUTH

    @property
    def uses_oauth(self) -> bool:
        return self is not AuthMode.SESSION


def build_store(settings: Settings, clock: Callable[[], float] = time.time) -> CredentialStore:
    if settings.store_backend == "memory":
        return MemoryCredentialStore(clock)
    return FileCredentialStore(settings.resolved_store_path(), clock)


class AuthClient:
    """Entry point for UI code: login, callback, logout, status and requests.

    UI collaborators only need ``is_authenticated()``, ``phase``,
    ``last_error`` and ``requests``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: CredentialStore | None = None,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if not settings.base_url:
            raise ConfigurationError("base_url is not configured (set DRUPAL_AUTH_BASE_URL)")
        self.mode = AuthMode(settings.mode)
        if self.mode.uses_oauth and not settings.client_id:
            raise ConfigurationError("client_id is required for OAuth (set DRUPAL_AUTH_CLIENT_ID)")

        self.settings = settings
        self.keys = StorageKeys(settings.key_prefix)
        self.store = store if store is not None else build_store(settings, clock)
        self._owns_http = http is None
        self.http = http if http is not None else httpx.AsyncClient(timeout=settings.http_timeout)
        self._clock = clock

        secure = settings.secure_cookies
        self.guard = StateNonceGuard(self.store, self.keys.state, secure_only=secure)
        self.session = SessionAuthenticator(
            self.http, self.store, self.keys, settings.base_url, secure_only=secure
        )
        self.oauth = OAuthCodeFlowController(
            self.http,
            self.store,
            self.keys,
            self.guard,
            base_url=settings.base_url,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            refresh_token_ttl_days=settings.refresh_token_ttl_days,
            secure_only=secure,
            clock=clock,
        )
        self.tokens = TokenLifecycleManager(
            self.oauth,
            skew_buffer=settings.token_expiry_buffer,
            clock=clock,
            on_refresh_failure=self.clear_all,
        )
        self.requests = AuthenticatedRequestDecorator(
            self.http,
            settings.base_url,
            tokens=self.tokens if self.mode.uses_oauth else None,
            session=self.session if self.mode.uses_session else None,
        )

        self.last_error: str | None = None
        self.current_user: dict[str, Any] | None = None
        self._last_status_check: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> AuthClient:
        return cls(settings or get_settings(), **kwargs)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> AuthClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- state --

    @property
    def phase(self) -> AuthenticationPhase:
        return derive_phase(
            has_usable_token=self.tokens.is_authenticated(),
            has_refresh_token=self.tokens.has_refresh_token(),
            handshake_pending=(
                self.store.get(self.keys.state) is not None
                or self.store.get(self.keys.login_initiated) is not None
            ),
            has_session=self.session.get_session() is not None,
        )

    def is_authenticated(self) -> bool:
        if self.mode is AuthMode.SESSION:
            return self.session.get_session() is not None
        return self.tokens.is_authenticated()

    def is_login_initiated(self) -> bool:
        return self.store.get(self.keys.login_initiated) is not None

    # -- login --

    async def initiate_login(
        self,
        username: str | None = None,
        password: str | None = None,
        *,
        redirect_uri: str | None = None,
        scope: str | None = None,
    ) -> str | None:
        """Start a login and return the URL the browser must navigate to.

        Returns None in session mode, where the session login is the whole
        login. Any failure clears partial auth state before re-raising.
        """
        try:
            if self.mode.uses_session:
                if username is None or password is None:
                    raise ValueError("username and password are required for session login")
                await self.session.login(username, password)
                if self.mode is AuthMode.SESSION:
                    self.last_error = None
                    return None
                self.store.set(
                    self.keys.login_initiated,
                    "true",
                    secure_only=self.settings.secure_cookies,
                )

            url = self.oauth.build_authorization_url(
                redirect_uri or self.settings.redirect_uri,
                scope or self.settings.scope,
            )
        except AuthError as e:
            logger.warning("Login initiation failed: %s", e)
            self.last_error = e.classification
            self.clear_all()
            raise

        self.last_error = None
        return url

    async def handle_callback(
        self, code: str | None, state: str | None, error: str | None = None
    ) -> Credential:
        """Finish the handshake with the callback's ``code``/``state``/``error``.

        On any failure all local auth state is cleared and the error re-raised,
        unless a logout already cleared it while the exchange was pending.
        """
        generation = self.oauth.generation
        try:
            if error:
                raise AuthorizationDenied(f"Authentication error: {error}")
            if not code or not state:
                raise StateMismatch("Missing required OAuth parameters")
            credential = await self.oauth.exchange_code(code, state)
        except AuthError as e:
            logger.warning("OAuth callback failed (%s): %s", e.classification, e)
            self.last_error = e.classification
            if self.oauth.generation == generation:
                self.clear_all()
            raise
        finally:
            if self.oauth.generation == generation:
                self.store.remove(self.keys.login_initiated)

        self.last_error = None
        return credential

    async def handle_callback_url(self, url: str) -> Credential:
        """Parse a callback URL (``...?code=&state=&error=``) and handle it."""
        params = httpx.URL(url).params
        return await self.handle_callback(
            params.get("code"), params.get("state"), params.get("error")
        )

    # -- tokens --

    async def get_valid_access_token(self) -> str | None:
        return await self.tokens.get_valid_access_token()

    async def refresh(self) -> Credential:
        try:
            credential = await self.tokens.refresh()
        except AuthError as e:
            self.last_error = e.classification
            raise
        self.last_error = None
        return credential

    # -- user --

    async def get_user_info(self) -> dict[str, Any]:
        """Fetch the current user through whichever credential the mode uses."""
        if self.mode is AuthMode.SESSION:
            user = await self.session.get_user_info()
        else:
            token = await self.tokens.get_valid_access_token()
            if not token:
                raise AuthError("No access token")
            user = await self.oauth.get_user_info(token)
        self.current_user = user
        return user

    async def check_status(self, force: bool = False) -> dict[str, Any] | None:
        """Return the current user, or None when not authenticated.

        Repeated calls within STATUS_CHECK_INTERVAL return the cached result
        unless *force* is set.
        """
        now = self._clock()
        if (
            not force
            and self._last_status_check is not None
            and now - self._last_status_check < STATUS_CHECK_INTERVAL
        ):
            return self.current_user

        self._last_status_check = now
        if not self.is_authenticated():
            self.current_user = None
            return None

        try:
            return await self.get_user_info()
        except AuthError as e:
            logger.warning("Auth check failed: %s", e)
            self.last_error = e.classification
            self.current_user = None
            return None

    # -- logout --

    async def logout(self) -> None:
        """Log out server-side (best effort) and clear every stored record.

        Safe to call when already logged out.
        """
        bearer = None
        if self.mode.uses_oauth:
            credential = self.tokens.current()
            bearer = credential.access_token if credential else None

        if self.mode.uses_session or bearer:
            await self.session.logout(bearer_token=bearer)

        self.clear_all()
        self.current_user = None
        self._last_status_check = None
        logger.info("Logged out")

    def clear_all(self) -> None:
        """Drop handshake, session and token records plus the session cookie."""
        self.oauth.invalidate()
        self.store.remove_all_with_prefix(self.keys.prefix)
        self.http.cookies.clear()
