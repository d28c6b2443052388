# Authenticated Requests — bearer/CSRF decoration with one refresh-and-retry.
# Created: 2026-10-18

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from drupalauth.auth.errors import AuthError, NetworkError, NoRefreshToken
from drupalauth.auth.http_utils import is_relative
from drupalauth.auth.session import SessionAuthenticator
from drupalauth.auth.tokens import TokenLifecycleManager

logger = logging.getLogger(__name__)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
CSRF_HEADER = "X-CSRF-Token"


@dataclass(frozen=True)
class RequestAttempt:
    """One send of a request. ``attempt`` is 0 for the original, 1 for the replay."""

    method: str
    url: str
    kwargs: dict[str, Any] = field(default_factory=dict)
    attempt: int = 0
    bearer: str | None = None  # token to use instead of looking one up

    def retried(self, bearer: str | None = None) -> RequestAttempt:
        return replace(self, attempt=self.attempt + 1, bearer=bearer)


class AuthenticatedRequestDecorator:
    """Sends requests through a shared ``httpx.AsyncClient`` with credentials attached.

    - OAuth: ``Authorization: Bearer`` when a valid access token exists.
      Without one the request goes out unauthenticated.
    - Session: ``X-CSRF-Token`` on POST/PUT/PATCH/DELETE.

    A 401 triggers one token refresh and a 403 on a CSRF-protected call one
    CSRF re-fetch; the request is then replayed once. Whatever the replay
    returns is handed back to the caller.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        *,
        tokens: TokenLifecycleManager | None = None,
        session: SessionAuthenticator | None = None,
    ):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.tokens = tokens
        self.session = session

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send *method* *url*; relative URLs are resolved against the backend root.

        Extra keyword arguments are passed to ``httpx.AsyncClient.request``.

        Raises:
            NetworkError: transport failure.
            RefreshFailed: the 401 recovery refresh failed.

        A 403 whose CSRF re-fetch is refused is returned as is.
        """
        if is_relative(url):
            url = f"{self.base_url}/{url.lstrip('/')}"
        return await self._send(RequestAttempt(method=method.upper(), url=url, kwargs=kwargs))

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def _send(self, req: RequestAttempt) -> httpx.Response:
        kwargs = dict(req.kwargs)
        headers = dict(kwargs.pop("headers", None) or {})

        bearer = req.bearer
        if bearer is None and self.tokens is not None:
            bearer = await self.tokens.get_valid_access_token()
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        csrf = None
        if self.session is not None and req.method in STATE_CHANGING_METHODS:
            csrf = self.session.csrf_token
            if csrf:
                headers[CSRF_HEADER] = csrf

        try:
            resp = await self.http.request(req.method, req.url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{req.method} {req.url} failed: {e}") from e

        if req.attempt > 0:
            return resp

        if (
            resp.status_code == 401
            and self.tokens is not None
            and self.tokens.has_refresh_token()
        ):
            logger.info("%s %s returned 401, refreshing access token", req.method, req.url)
            try:
                credential = await self.tokens.refresh()
            except NoRefreshToken:
                return resp
            await resp.aclose()
            return await self._send(req.retried(bearer=credential.access_token))

        if resp.status_code == 403 and csrf is not None and self.session is not None:
            logger.info("%s %s returned 403, re-fetching CSRF token", req.method, req.url)
            try:
                await self.session.refresh_csrf_token()
            except NetworkError:
                raise
            except AuthError as e:
                logger.warning("Could not re-fetch CSRF token: %s", e)
                return resp
            await resp.aclose()
            return await self._send(req.retried(bearer=bearer))

        return resp
