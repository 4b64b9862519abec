"""Google OAuth and API authentication utilities."""

from google_connect.google.api import GoogleApi
from google_connect.google.exceptions import (
    AuthorizationRequired,
    CredentialsNotFoundError,
    GoogleAuthError,
    MissingConfigurationError,
    TokenError,
)
from google_connect.google.oauth import GoogleOAuth
from google_connect.google.service_account import GoogleServiceAccount
from google_connect.google.token_store import (
    CacheTokenStore,
    MemoryCache,
    SessionTokenStore,
    TokenStore,
    config_fingerprint,
)

__all__ = [
    "GoogleApi",
    "GoogleOAuth",
    "GoogleServiceAccount",
    "TokenStore",
    "SessionTokenStore",
    "CacheTokenStore",
    "MemoryCache",
    "config_fingerprint",
    "GoogleAuthError",
    "MissingConfigurationError",
    "CredentialsNotFoundError",
    "TokenError",
    "AuthorizationRequired",
]
