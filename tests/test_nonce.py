# Tests for auth/nonce.py
# Created: 2026-10-18

from unittest.mock import patch

from drupalauth.auth.nonce import StateNonceGuard


class TestIssue:
    def test_issue_stores_nonce(self, guard, store, keys):
        nonce = guard.issue()
        assert store.get(keys.state) == nonce

    def test_nonces_are_long_and_unique(self, guard):
        nonces = {guard.issue() for _ in range(50)}
        assert len(nonces) == 50
        assert all(len(n) >= 43 for n in nonces)

    def test_uses_secrets_module(self, guard):
        with patch("drupalauth.auth.nonce.secrets.token_urlsafe", return_value="fixed") as m:
            assert guard.issue() == "fixed"
        m.assert_called_once_with(32)

    def test_reissue_replaces_previous(self, guard):
        first = guard.issue()
        second = guard.issue()
        assert guard.verify(first) is False
        # the failed verify consumed the nonce, so the second one is gone too
        assert guard.verify(second) is False


class TestVerify:
    def test_matching_nonce(self, guard):
        nonce = guard.issue()
        assert guard.verify(nonce) is True

    def test_single_use(self, guard):
        nonce = guard.issue()
        assert guard.verify(nonce) is True
        assert guard.verify(nonce) is False

    def test_mismatch_deletes_stored_nonce(self, guard, store, keys):
        nonce = guard.issue()
        assert guard.verify("forged") is False
        assert store.get(keys.state) is None
        assert guard.verify(nonce) is False

    def test_nothing_stored(self, guard):
        assert guard.verify("anything") is False

    def test_none_or_empty_received(self, guard):
        guard.issue()
        assert guard.verify(None) is False
        guard.issue()
        assert guard.verify("") is False

    def test_non_ascii_received_does_not_raise(self, guard):
        guard.issue()
        assert guard.verify("état") is False

    def test_prefix_of_nonce_rejected(self, guard):
        nonce = guard.issue()
        assert guard.verify(nonce[:-1]) is False

    def test_survives_store_reload(self, tmp_path, clock):
        from drupalauth.storage.credential_store import FileCredentialStore

        path = tmp_path / "creds.json"
        before = StateNonceGuard(FileCredentialStore(path, clock), "drupal_auth_state")
        nonce = before.issue()

        after = StateNonceGuard(FileCredentialStore(path, clock), "drupal_auth_state")
        assert after.verify(nonce) is True
