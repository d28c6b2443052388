# Shared fixtures: fake clock, scripted Drupal backend, wired components.
# Created: 2026-10-18

from __future__ import annotations

from typing import Any

import httpx
import pytest
from fakes import BASE, PREFIX, REDIRECT_URI, FakeClock, FakeDrupal

from drupalauth.auth import AuthClient
from drupalauth.auth.models import StorageKeys
from drupalauth.auth.nonce import StateNonceGuard
from drupalauth.auth.oauth import OAuthCodeFlowController
from drupalauth.auth.session import SessionAuthenticator
from drupalauth.auth.tokens import TokenLifecycleManager
from drupalauth.config import Settings
from drupalauth.storage.credential_store import MemoryCredentialStore


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeDrupal()


@pytest.fixture
def keys():
    return StorageKeys(PREFIX)


@pytest.fixture
def store(clock):
    return MemoryCredentialStore(clock)


@pytest.fixture
def http(backend):
    # MockTransport holds no connections, so the client needs no closing
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def guard(store, keys):
    return StateNonceGuard(store, keys.state)


@pytest.fixture
def session(http, store, keys):
    return SessionAuthenticator(http, store, keys, BASE)


@pytest.fixture
def oauth(http, store, keys, guard, clock):
    return OAuthCodeFlowController(
        http,
        store,
        keys,
        guard,
        base_url=BASE,
        client_id="client",
        client_secret="secret",
        clock=clock,
    )


@pytest.fixture
def tokens(oauth, clock):
    return TokenLifecycleManager(oauth, skew_buffer=300, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        base_url=BASE,
        client_id="client",
        client_secret="secret",
        redirect_uri=REDIRECT_URI,
        store_backend="memory",
    )


@pytest.fixture
def make_client(store, http, clock):
    def _make(settings: Settings, **kwargs: Any) -> AuthClient:
        kwargs.setdefault("store", store)
        return AuthClient(settings, http=http, clock=clock, **kwargs)

    return _make


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
