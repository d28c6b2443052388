"""drupal-auth-bridge: session + OAuth2 code-flow authentication for Drupal backends."""

from drupalauth.auth import (
    AuthClient,
    AuthenticationPhase,
    AuthError,
    AuthMode,
    Credential,
)
from drupalauth.config import Settings, get_settings

__version__ = "0.1.0"

__all__ = [
    "AuthClient",
    "AuthError",
    "AuthMode",
    "AuthenticationPhase",
    "Credential",
    "Settings",
    "get_settings",
]
