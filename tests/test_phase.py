# Tests for auth/phase.py
# Created: 2026-10-18

import pytest

from drupalauth.auth.phase import AuthenticationPhase, derive_phase


@pytest.mark.parametrize(
    "flags, expected",
    [
        ({}, AuthenticationPhase.ANONYMOUS),
        ({"has_session": True}, AuthenticationPhase.SESSION_ESTABLISHED),
        ({"has_session": True, "handshake_pending": True}, AuthenticationPhase.HANDSHAKE_PENDING),
        ({"has_usable_token": True, "has_session": True}, AuthenticationPhase.AUTHENTICATED),
        ({"has_usable_token": True, "has_refresh_token": True}, AuthenticationPhase.AUTHENTICATED),
        ({"has_refresh_token": True}, AuthenticationPhase.EXPIRED),
        ({"has_refresh_token": True, "has_session": True}, AuthenticationPhase.EXPIRED),
        (
            {"has_refresh_token": True, "handshake_pending": True},
            AuthenticationPhase.HANDSHAKE_PENDING,
        ),
        ({"has_usable_token": True, "handshake_pending": True}, AuthenticationPhase.AUTHENTICATED),
    ],
)
def test_derive_phase(flags, expected):
    base = {
        "has_usable_token": False,
        "has_refresh_token": False,
        "handshake_pending": False,
        "has_session": False,
    }
    assert derive_phase(**{**base, **flags}) is expected


def test_phase_values_are_strings():
    assert AuthenticationPhase.HANDSHAKE_PENDING.value == "handshake_pending"
    assert AuthenticationPhase("expired") is AuthenticationPhase.EXPIRED
