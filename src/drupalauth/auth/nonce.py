"""Single-use anti-forgery ``state`` values for the OAuth redirect."""

from __future__ import annotations

import hmac
import logging
import secrets

from drupalauth.storage.credential_store import CredentialStore

logger = logging.getLogger(__name__)

# 32 bytes from the OS CSPRNG -> 43 url-safe characters
NONCE_BYTES = 32


class StateNonceGuard:
    """Issues and verifies the ``state`` nonce stored under one key."""

    def __init__(self, store: CredentialStore, key: str, *, secure_only: bool = True):
        self.store = store
        self.key = key
        self.secure_only = secure_only

    def issue(self) -> str:
        """Generate a fresh nonce, persist it and return it.

        Any previously issued nonce is overwritten, so only the most recent
        authorization request can complete.
        """
        nonce = secrets.token_urlsafe(NONCE_BYTES)
        self.store.set(self.key, nonce, secure_only=self.secure_only, same_site_strict=True)
        return nonce

    def verify(self, received: str | None) -> bool:
        """Return True iff *received* equals the stored nonce.

        The stored nonce is deleted whatever the outcome.
        """
        stored = self.store.get(self.key)
        self.store.remove(self.key)

        if not stored:
            logger.warning("OAuth state check failed: no stored nonce")
            return False

        if not received or not hmac.compare_digest(stored.encode(), received.encode()):
            logger.warning("OAuth state check failed: nonce mismatch")
            return False
        return True
