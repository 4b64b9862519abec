"""Google API client factory.

``GoogleApi`` holds the default client configuration of an application and
creates configured client handles on demand. Authorization works in two modes:

- Web OAuth: requests access to the user's data and works through a token
  kept in a session or cache store.
- Service account: works as the application's own Google identity. Users
  share their documents with the service account email to grant access.

Example:
    >>> api = GoogleApi(
    ...     client_config={"client_id": "...", "client_secret": "..."},
    ...     scopes=["sheets", "drive_file"],
    ...     token_store=CacheTokenStore(MemoryCache()),
    ... )
    >>> client = api.get_client(redirect_uri="https://example.com/callback")
    >>> if not client.is_access_token_expired():
    ...     sheets = client.build_service("sheets", "v4")
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from authlib.common.errors import AuthlibBaseError

from google_connect.config import load_client_config
from google_connect.google.exceptions import (
    CredentialsNotFoundError,
    MissingConfigurationError,
)
from google_connect.google.oauth import GoogleOAuth, load_client_secrets
from google_connect.google.service_account import GoogleServiceAccount, is_service_account_info
from google_connect.google.token_store import Token, TokenStore, config_fingerprint

logger = logging.getLogger(__name__)

# Client configuration keys understood by GoogleOAuth
OAUTH_OPTIONS = (
    "client_id",
    "client_secret",
    "redirect_uri",
    "access_type",
    "prompt",
    "include_granted_scopes",
    "application_name",
)


def load_auth_config(auth_config: str | Path | Mapping | None) -> dict[str, Any] | None:
    """Load auth configuration from a JSON file path or a dict."""
    if auth_config is None or isinstance(auth_config, Mapping):
        return dict(auth_config) if auth_config else None

    path = Path(auth_config).expanduser()
    if not path.exists():
        raise CredentialsNotFoundError(str(path))

    with open(path) as f:
        return json.load(f)


class GoogleApi:
    """Factory for configured Google API client handles."""

    def __init__(
        self,
        client_config: Mapping[str, Any] | None = None,
        auth_config: str | Path | Mapping | None = None,
        scopes: list[str] | None = None,
        token_store: TokenStore | None = None,
    ):
        """Initialize the factory.

        Args:
            client_config: Default client options (client_id, client_secret,
                redirect_uri, access_type, prompt, include_granted_scopes,
                application_name, scopes). Merged over the environment defaults.
            auth_config: Path to a credentials JSON downloaded from the Google
                Cloud Console, or its parsed contents. Either OAuth client
                secrets ("web"/"installed") or a service account key.
            scopes: Requested scopes; override "scopes" in client_config.
            token_store: Default store for OAuth tokens.

        Raises:
            MissingConfigurationError: If no credentials are configured.
        """
        config = load_client_config()
        config.update(client_config or {})
        if scopes:
            config["scopes"] = list(scopes)

        self.auth_config = load_auth_config(auth_config)
        self.token_store = token_store

        if self.auth_config and not self.is_service_account:
            secrets = load_client_secrets(self.auth_config)
            config.setdefault("client_id", secrets.get("client_id"))
            config.setdefault("client_secret", secrets.get("client_secret"))

        if not self.is_service_account and not (
            config.get("client_id") and config.get("client_secret")
        ):
            raise MissingConfigurationError(
                "auth_config",
                "Either auth_config or client_id and client_secret must be configured",
            )

        self.client_config = config
        self._token_key = config_fingerprint(GoogleApi.__name__, self.client_config, self.auth_config)

    @property
    def is_service_account(self) -> bool:
        """True when auth_config holds a service account key."""
        return is_service_account_info(self.auth_config)

    @property
    def token_key(self) -> str:
        """Store key identifying this factory's default configuration."""
        return self._token_key

    def get_token(self, token_store: TokenStore | None = None) -> Token | None:
        """Read the stored token for this configuration."""
        store = token_store or self.token_store
        if store is None:
            return None
        return store.get(self.token_key)

    def save_token(self, token: Token | None, token_store: TokenStore | None = None) -> None:
        """Store (or clear, for an invalid token) the token for this configuration."""
        store = token_store or self.token_store
        if store is not None:
            store.put(self.token_key, token)

    def get_client(
        self, token_store: TokenStore | None = None, **overrides: Any
    ) -> GoogleOAuth | GoogleServiceAccount:
        """Create and configure a Google API client handle.

        Args:
            token_store: Store to read/refresh the token from. Defaults to the
                factory's store.
            **overrides: Client options overriding the defaults for this call.

        Returns:
            GoogleServiceAccount for service account configuration, otherwise a
            GoogleOAuth handle with the stored token attached and refreshed.
        """
        config = {**self.client_config, **overrides}
        scopes = config.pop("scopes", None)

        if self.is_service_account:
            return GoogleServiceAccount(key_info=self.auth_config, scopes=scopes)

        ignored = sorted(set(config) - set(OAUTH_OPTIONS))
        if ignored:
            logger.debug(f"Ignoring unknown client options: {ignored}")

        client = GoogleOAuth(
            scopes=scopes,
            **{key: config[key] for key in OAUTH_OPTIONS if key in config},
        )

        store = token_store or self.token_store
        if store is None:
            return client

        token = store.get(self.token_key)
        if token:
            client.set_access_token(token)

        if client.is_access_token_expired() and client.refresh_token:
            try:
                store.put(self.token_key, client.fetch_access_token_with_refresh_token())
            except AuthlibBaseError as e:
                logger.warning(f"Token refresh rejected, discarding stored token: {e}")
                store.delete(self.token_key)
                client.set_access_token(None)

        # Later refreshes, e.g. while building a service, go back to the store
        client.on_token_refresh = lambda refreshed: store.put(self.token_key, refreshed)
        return client
