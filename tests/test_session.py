# Tests for auth/session.py
# Created: 2026-10-18

import json

import httpx
import pytest
from fakes import login_response

from drupalauth.auth.errors import AuthError, InvalidCredentials, NetworkError
from drupalauth.auth.models import SessionCredential


class TestLogin:
    async def test_login_persists_tokens(self, session, backend, store, keys):
        backend.add("POST", "/user/login", login_response("c1", "l1"))

        result = await session.login("alice", "secret")

        assert result == SessionCredential(csrf_token="c1", logout_token="l1")
        assert store.get(keys.csrf_token) == "c1"
        assert store.get(keys.logout_token) == "l1"
        assert session.get_session() == result

    async def test_login_request_shape(self, session, backend):
        backend.add("POST", "/user/login", login_response())

        await session.login("alice", "secret")

        (req,) = backend.calls("POST", "/user/login")
        assert req.url.params["_format"] == "json"
        assert json.loads(req.content) == {"name": "alice", "pass": "secret"}

    async def test_login_keeps_session_cookie(self, session, backend):
        backend.add("POST", "/user/login", login_response())
        backend.add("GET", "/user/me", httpx.Response(200, json={"name": "alice"}))

        await session.login("alice", "secret")
        await session.get_user_info()

        (req,) = backend.calls("GET", "/user/me")
        assert "SSESSabc=session-cookie" in req.headers["cookie"]

    async def test_rejected_login(self, session, backend, store, keys):
        backend.add(
            "POST", "/user/login", httpx.Response(400, json={"message": "Sorry, unrecognized"})
        )

        with pytest.raises(InvalidCredentials) as exc:
            await session.login("alice", "wrong")

        assert exc.value.status_code == 400
        assert exc.value.classification == "invalid_credentials"
        assert store.get(keys.csrf_token) is None

    async def test_response_without_tokens(self, session, backend):
        backend.add("POST", "/user/login", httpx.Response(200, json={"csrf_token": "c1"}))

        with pytest.raises(InvalidCredentials, match="Invalid login response"):
            await session.login("alice", "secret")

    async def test_non_json_response(self, session, backend):
        backend.add("POST", "/user/login", httpx.Response(200, text="<html>"))

        with pytest.raises(InvalidCredentials):
            await session.login("alice", "secret")

    async def test_transport_failure(self, session, backend):
        backend.add("POST", "/user/login", httpx.ConnectError("refused"))

        with pytest.raises(NetworkError):
            await session.login("alice", "secret")


class TestCsrfToken:
    async def test_refresh_csrf_token(self, session, backend, store, keys):
        backend.add("GET", "/session/token", httpx.Response(200, text="c2\n"))

        assert await session.refresh_csrf_token() == "c2"
        assert store.get(keys.csrf_token) == "c2"
        assert session.csrf_token == "c2"

    async def test_refresh_csrf_token_failure(self, session, backend):
        backend.add("GET", "/session/token", httpx.Response(500))

        with pytest.raises(AuthError):
            await session.refresh_csrf_token()


class TestLogout:
    async def test_logout_sends_logout_token(self, session, backend, store, keys):
        backend.add("POST", "/user/login", login_response("c1", "l1"))
        backend.add("GET", "/user/logout", httpx.Response(204))
        await session.login("alice", "secret")

        await session.logout()

        (req,) = backend.calls("GET", "/user/logout")
        assert req.headers["X-CSRF-Token"] == "l1"
        assert "SSESSabc" in req.headers["cookie"]
        assert store.get(keys.csrf_token) is None
        assert store.get(keys.logout_token) is None
        assert len(session.http.cookies) == 0

    async def test_logout_clears_even_when_server_unreachable(self, session, backend, store, keys):
        store.set(keys.csrf_token, "c1")
        store.set(keys.logout_token, "l1")
        backend.add("GET", "/user/logout", httpx.ConnectError("down"))

        await session.logout()

        assert session.get_session() is None

    async def test_logout_clears_on_server_error(self, session, backend, store, keys):
        store.set(keys.logout_token, "l1")
        backend.add("GET", "/user/logout", httpx.Response(403))

        await session.logout()

        assert store.get(keys.logout_token) is None

    async def test_logout_when_logged_out_makes_no_request(self, session, backend):
        await session.logout()
        await session.logout()
        assert backend.requests == []

    async def test_logout_with_bearer_only(self, session, backend):
        backend.add("GET", "/user/logout", httpx.Response(204))

        await session.logout(bearer_token="tok1")

        (req,) = backend.calls("GET", "/user/logout")
        assert req.headers["Authorization"] == "Bearer tok1"
        assert "X-CSRF-Token" not in req.headers
