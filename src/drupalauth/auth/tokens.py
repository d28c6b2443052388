# Token Lifecycle — access token validity checks and refresh-token grant.
# Created: 2026-10-18

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from drupalauth.auth.errors import NoRefreshToken, RefreshFailed
from drupalauth.auth.models import Credential
from drupalauth.auth.oauth import OAuthCodeFlowController

logger = logging.getLogger(__name__)

# Seconds subtracted from expires_at so a token never expires mid-request
DEFAULT_SKEW_BUFFER = 300


class TokenLifecycleManager:
    """Hands out usable access tokens, refreshing them when needed.

    Concurrent ``refresh()`` calls share one in-flight refresh, so a rotating
    refresh token is only ever spent once.
    """

    def __init__(
        self,
        oauth: OAuthCodeFlowController,
        *,
        skew_buffer: float = DEFAULT_SKEW_BUFFER,
        clock: Callable[[], float] = time.time,
        on_refresh_failure: Callable[[], None] | None = None,
    ):
        self.oauth = oauth
        self.skew_buffer = skew_buffer
        self._clock = clock
        # Extra local state to drop when a refresh fails (e.g. the session)
        self._on_refresh_failure = on_refresh_failure
        self._inflight: asyncio.Task[Credential] | None = None

    def current(self) -> Credential | None:
        """Stored credential if it is usable right now, without refreshing."""
        credential = self.oauth.load_credential()
        if credential and credential.is_usable(self._clock(), self.skew_buffer):
            return credential
        return None

    def is_authenticated(self) -> bool:
        return self.current() is not None

    def has_refresh_token(self) -> bool:
        return self.oauth.stored_refresh_token() is not None

    async def get_valid_access_token(self) -> str | None:
        """Return a usable access token, refreshing if needed; None if impossible."""
        credential = self.current()
        if credential is not None:
            return credential.access_token

        if not self.has_refresh_token():
            return None

        try:
            return (await self.refresh()).access_token
        except (NoRefreshToken, RefreshFailed) as e:
            logger.info("No valid access token: %s", e)
            return None

    async def refresh(self) -> Credential:
        """Exchange the stored refresh token for a new credential.

        Raises:
            NoRefreshToken: nothing to refresh with. Stored tokens are cleared.
            RefreshFailed: the grant failed. Stored tokens are cleared.
        """
        # No await between the check and the assignment, so callers on the
        # same loop cannot start a second refresh.
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        # shield: a cancelled caller must not cancel the refresh others await
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> Credential:
        refresh_token = self.oauth.stored_refresh_token()
        if not refresh_token:
            self._demote()
            raise NoRefreshToken("No refresh token available")

        generation = self.oauth.generation
        try:
            data = await self.oauth.request_tokens(
                {
                    "grant_type": "refresh_token",
                    "client_id": self.oauth.client_id,
                    "client_secret": self.oauth.client_secret,
                    "refresh_token": refresh_token,
                },
                RefreshFailed,
            )
        except RefreshFailed as e:
            # Already wiped by a logout; anything stored since is a newer login
            if self.oauth.generation == generation:
                logger.warning("Token refresh failed, clearing stored tokens: %s", e)
                self._demote()
            raise

        self.oauth.ensure_current(generation, RefreshFailed)
        credential = self.oauth.save_token_response(data)
        logger.info("Access token refreshed")
        return credential

    def _demote(self) -> None:
        self.oauth.clear_credential()
        if self._on_refresh_failure is not None:
            self._on_refresh_failure()

    def seconds_left(self, credential: Credential) -> int:
        """Seconds until *credential* expires (ignores the skew buffer)."""
        return int(credential.expires_at - self._clock())
