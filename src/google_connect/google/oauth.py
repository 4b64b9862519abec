"""Google OAuth client handle using Authlib.

This module provides the per-request OAuth 2.0 web client for Google APIs:
- Consent URL creation with offline access and incremental scopes
- Authorization-code exchange and refresh-token exchange
- Token expiry checks on the stored token record
- Google API service creation (Sheets, Drive, etc.)

Tokens are plain dicts (see ``google_connect.google.token_store``). The handle
never persists them itself; the client factory and the redirect flow decide
where they go.
"""

import json
import logging
import time
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from google_connect.google.exceptions import (
    CredentialsNotFoundError,
    MissingConfigurationError,
    TokenError,
)
from google_connect.google.scopes import resolve_scopes

logger = logging.getLogger(__name__)

# Seconds subtracted from the lifetime so a token is refreshed before it lapses
EXPIRY_LEEWAY = 30


def load_client_secrets(source: str | Path | Mapping) -> dict[str, Any]:
    """Load OAuth client secrets from a downloaded JSON file or its contents.

    Args:
        source: Path to credentials.json, or the parsed dict.

    Returns:
        The inner "web" or "installed" section.
    """
    if isinstance(source, Mapping):
        creds = dict(source)
    else:
        path = Path(source)
        if not path.exists():
            raise CredentialsNotFoundError(str(path))
        with open(path) as f:
            creds = json.load(f)

    # Handle both web and installed app credential formats
    if "web" in creds:
        return dict(creds["web"])
    if "installed" in creds:
        return dict(creds["installed"])
    raise ValueError("Invalid credentials.json format. Expected 'installed' or 'web' key.")


class GoogleOAuth:
    """Google OAuth web client handle using Authlib.

    Example:
        >>> auth = GoogleOAuth(
        ...     client_id="xxx.apps.googleusercontent.com",
        ...     client_secret="secret",
        ...     scopes=["sheets", "drive_file"],
        ...     redirect_uri="https://example.com/google/oauth/callback",
        ... )
        >>> if auth.is_access_token_expired():
        ...     url = auth.get_authorization_url()
        >>> token = auth.fetch_access_token_with_auth_code(code)
        >>> sheets = auth.build_service("sheets", "v4")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        scopes: list[str] | str | None = None,
        redirect_uri: str | None = None,
        access_type: str | None = "offline",
        prompt: str | None = None,
        include_granted_scopes: bool | None = None,
        application_name: str | None = None,
        token: dict[str, Any] | None = None,
        on_token_refresh: Callable[[dict[str, Any]], None] | None = None,
    ):
        """Initialize the OAuth handle.

        Args:
            client_id: OAuth client ID.
            client_secret: OAuth client secret.
            scopes: Scope names (e.g., ["sheets", "drive"]) or full URLs.
            redirect_uri: Callback URL registered for the client.
            access_type: "offline" to receive a refresh token.
            prompt: Consent screen behaviour, e.g. "select_account consent".
            include_granted_scopes: Ask for incremental authorization.
            application_name: Sent as the User-Agent of token requests.
            token: Previously stored token to attach.
            on_token_refresh: Called with the new token after every refresh.

        Raises:
            MissingConfigurationError: If client id or secret is missing.
        """
        if not client_id or not client_secret:
            raise MissingConfigurationError(
                "client_id", "OAuth client_id and client_secret are required"
            )

        self.client_id = client_id
        self.client_secret = client_secret
        self.required_scopes = resolve_scopes(scopes)
        self.access_type = access_type
        self.prompt = prompt
        self.include_granted_scopes = include_granted_scopes
        self.application_name = application_name

        self.session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.required_scopes) or None,
            redirect_uri=redirect_uri,
            token_endpoint=self.TOKEN_URL,
            token_endpoint_auth_method="client_secret_post",
        )
        if application_name:
            self.session.headers["User-Agent"] = application_name

        self._token: dict[str, Any] | None = None
        self._state: str | None = None
        self.last_refresh: datetime | None = None
        self.refresh_count = 0
        self.on_token_refresh = on_token_refresh

        if token:
            self.set_access_token(token)

    @classmethod
    def from_client_secrets(cls, source: str | Path | Mapping, **kwargs: Any) -> "GoogleOAuth":
        """Create a handle from a downloaded OAuth client secrets file."""
        app_creds = load_client_secrets(source)
        kwargs.setdefault("client_id", app_creds.get("client_id"))
        kwargs.setdefault("client_secret", app_creds.get("client_secret"))
        redirect_uris = app_creds.get("redirect_uris") or []
        if redirect_uris:
            kwargs.setdefault("redirect_uri", redirect_uris[0])
        return cls(**kwargs)

    # =========================================================================
    # Token handling
    # =========================================================================

    @staticmethod
    def _stamp(token: Mapping[str, Any]) -> dict[str, Any]:
        """Copy a token obtained from Google and add "created" when omitted."""
        stamped = dict(token)
        if not stamped.get("created"):
            stamped["created"] = int(time.time())
        return stamped

    @property
    def token(self) -> dict[str, Any] | None:
        """The attached token record."""
        return self._token

    def set_access_token(self, token: Mapping[str, Any] | None) -> None:
        """Attach a token record as stored (or detach with None).

        A record without "created" is taken as created at 0, so a lifetime
        makes it expired.
        """
        if not token:
            self._token = None
            self.session.token = None
            return

        self._token = dict(token)

        session_token = dict(self._token)
        expires_in = session_token.get("expires_in")
        if expires_in:
            session_token["expires_at"] = int(session_token.get("created") or 0) + int(expires_in)
        self.session.token = session_token

    @property
    def refresh_token(self) -> str | None:
        """Refresh token of the attached token, if any."""
        if not self._token:
            return None
        return self._token.get("refresh_token")

    @property
    def redirect_uri(self) -> str | None:
        return self.session.redirect_uri

    @redirect_uri.setter
    def redirect_uri(self, value: str | None) -> None:
        self.session.redirect_uri = value

    def is_access_token_expired(self) -> bool:
        """Check whether the attached token is missing or (nearly) expired.

        Returns:
            True if there is no usable access token.
        """
        token = self._token
        if not token or not token.get("access_token"):
            return True

        expires_in = token.get("expires_in")
        if expires_in:
            expires_at = int(token.get("created") or 0) + int(expires_in)
        else:
            expires_at = token.get("expires_at")

        # Tokens without lifetime information are treated as fresh
        if not expires_at:
            return False

        return expires_at - EXPIRY_LEEWAY < time.time()

    def fetch_access_token_with_refresh_token(
        self, refresh_token: str | None = None
    ) -> dict[str, Any]:
        """Exchange a refresh token for a new access token.

        Google does not return the refresh token again, so the old one is kept
        in the new record.

        Args:
            refresh_token: Token to use. Defaults to the attached one.

        Returns:
            The new token record, also attached to this handle.
        """
        refresh_token = refresh_token or self.refresh_token
        if not refresh_token:
            raise TokenError("No refresh token available")

        logger.info("Refreshing access token")
        token = self._stamp(
            self.session.refresh_token(self.TOKEN_URL, refresh_token=refresh_token)
        )
        token.setdefault("refresh_token", refresh_token)
        token.pop("expires_at", None)

        self.set_access_token(token)
        self.last_refresh = datetime.now()
        self.refresh_count += 1
        if self.on_token_refresh is not None:
            self.on_token_refresh(self._token)
        return self._token

    def fetch_access_token_with_auth_code(self, code: str) -> dict[str, Any]:
        """Complete the authorization flow by exchanging a code.

        Args:
            code: Authorization code from the OAuth callback.

        Returns:
            The fetched token record, also attached to this handle.
        """
        token = self._stamp(self.session.fetch_token(self.TOKEN_URL, code=code))
        token.pop("expires_at", None)

        self.set_access_token(token)
        logger.info(f"Token fetched with scopes: {token.get('scope', '')}")
        return self._token

    def get_authorization_url(self, state: str | None = None) -> str:
        """Start the OAuth authorization flow.

        Args:
            state: CSRF state. Generated when omitted; see ``state``.

        Returns:
            Consent page URL for the user to visit.
        """
        params: dict[str, str] = {}
        if self.access_type:
            params["access_type"] = self.access_type
        if self.prompt:
            params["prompt"] = self.prompt
        if self.include_granted_scopes:
            params["include_granted_scopes"] = "true"

        authorization_url, state = self.session.create_authorization_url(
            self.AUTHORIZE_URL, state=state, **params
        )

        self._state = state
        return authorization_url

    @property
    def state(self) -> str | None:
        """State of the last generated authorization URL."""
        return self._state

    # =========================================================================
    # Google API access
    # =========================================================================

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object with current token.

        Raises:
            TokenError: If not authorized or token refresh fails.
        """
        if self.is_access_token_expired():
            if not self.refresh_token:
                raise TokenError("Not authorized or token expired")

            logger.info("Token expired, refreshing...")
            try:
                self.fetch_access_token_with_refresh_token()
            except AuthlibBaseError as e:
                raise TokenError(f"Failed to refresh token: {e}") from e

        return GoogleCredentials(
            token=self._token["access_token"],
            refresh_token=self._token.get("refresh_token"),
            token_uri=self.TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.required_scopes or None,
        )

    def build_service(self, service_name: str = "sheets", version: str = "v4"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service (e.g., 'sheets', 'drive').
            version: API version (e.g., 'v4').

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds, cache_discovery=False)

    def revoke_token(self) -> None:
        """Revoke the attached token at Google and detach it."""
        if not self._token:
            logger.warning("No token to revoke")
            return

        token = self._token.get("refresh_token") or self._token.get("access_token")
        try:
            self.session.post(self.REVOKE_URL, params={"token": token}, withhold_token=True)
        except Exception as e:
            logger.warning(f"Failed to revoke token remotely: {e}")

        self.set_access_token(None)
        logger.info("Token revoked successfully")

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the attached token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        if not self._token:
            return {"status": "no_token"}

        token = self._token
        expires_in = token.get("expires_in")
        if expires_in:
            remaining = int(token.get("created") or 0) + int(expires_in) - time.time()
            expires_str = str(timedelta(seconds=int(max(0, remaining))))
        else:
            expires_str = "unknown"

        return {
            "status": "expired" if self.is_access_token_expired() else "valid",
            "scopes": token.get("scope", "").split(),
            "expires_in": expires_str,
            "has_refresh_token": bool(token.get("refresh_token")),
            "refresh_count": self.refresh_count,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }
