from drupalauth.auth.client import AuthClient, AuthMode
from drupalauth.auth.decorator import AuthenticatedRequestDecorator
from drupalauth.auth.errors import (
    AuthError,
    AuthorizationDenied,
    ConfigurationError,
    InvalidCredentials,
    NetworkError,
    NoRefreshToken,
    RefreshFailed,
    StateMismatch,
    TokenExchangeFailed,
)
from drupalauth.auth.models import Credential, OAuthHandshakeState, SessionCredential
from drupalauth.auth.nonce import StateNonceGuard
from drupalauth.auth.oauth import OAuthCodeFlowController
from drupalauth.auth.phase import AuthenticationPhase
from drupalauth.auth.session import SessionAuthenticator
from drupalauth.auth.tokens import TokenLifecycleManager

__all__ = [
    "AuthClient",
    "AuthError",
    "AuthMode",
    "AuthenticatedRequestDecorator",
    "AuthenticationPhase",
    "AuthorizationDenied",
    "ConfigurationError",
    "Credential",
    "InvalidCredentials",
    "NetworkError",
    "NoRefreshToken",
    "OAuthCodeFlowController",
    "OAuthHandshakeState",
    "RefreshFailed",
    "SessionAuthenticator",
    "SessionCredential",
    "StateMismatch",
    "StateNonceGuard",
    "TokenExchangeFailed",
    "TokenLifecycleManager",
]
