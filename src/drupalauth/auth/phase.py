"""Authentication phase, derived from what is in the credential store."""

from __future__ import annotations

from enum import Enum


class AuthenticationPhase(str, Enum):
    ANONYMOUS = "anonymous"
    SESSION_ESTABLISHED = "session_established"
    HANDSHAKE_PENDING = "handshake_pending"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


def derive_phase(
    *,
    has_usable_token: bool,
    has_refresh_token: bool,
    handshake_pending: bool,
    has_session: bool,
) -> AuthenticationPhase:
    """Compute the phase from record presence; never stored on its own.

    A usable token wins over everything. A pending handshake wins over an
    expired credential because it is the newer login attempt.
    """
    if has_usable_token:
        return AuthenticationPhase.AUTHENTICATED
    if handshake_pending:
        return AuthenticationPhase.HANDSHAKE_PENDING
    if has_refresh_token:
        return AuthenticationPhase.EXPIRED
    if has_session:
        return AuthenticationPhase.SESSION_ESTABLISHED
    return AuthenticationPhase.ANONYMOUS
