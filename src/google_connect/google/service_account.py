"""Google Service Account authentication.

Service accounts are used for server-to-server authentication without user
interaction. The service account acts as its own identity and can access:
- Resources explicitly shared with the service account email
- Spreadsheets it creates itself
- Google Workspace resources (if domain-wide delegation is configured)

Example:
    >>> auth = GoogleServiceAccount(
    ...     key_path="service_account_key.json",
    ...     scopes=["sheets", "drive_file"]
    ... )
    >>> sheets = auth.build_service("sheets", "v4")
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build

from google_connect.google.exceptions import (
    CredentialsNotFoundError,
    GoogleAuthError,
    MissingConfigurationError,
)
from google_connect.google.scopes import resolve_scopes

logger = logging.getLogger(__name__)


def is_service_account_info(info: Any) -> bool:
    """Check whether parsed JSON looks like a service account key."""
    return isinstance(info, Mapping) and info.get("type") == "service_account"


class GoogleServiceAccount:
    """Google Service Account authentication.

    Uses a service account key file (or its parsed contents) for
    server-to-server authentication. No user interaction required.

    Note: To access user data, the user must share those resources with the
    service account email address.
    """

    def __init__(
        self,
        key_path: str | Path | None = None,
        scopes: list[str] | str | None = None,
        key_info: Mapping[str, Any] | None = None,
    ):
        """Initialize service account authentication.

        Args:
            key_path: Path to service account JSON key file.
            scopes: Scope names (e.g., ["sheets", "drive"]) or full URLs.
                   If None, defaults to ["sheets", "drive_file"].
            key_info: Parsed key file contents, used instead of key_path.

        Raises:
            MissingConfigurationError: If neither key_path nor key_info is given.
            CredentialsNotFoundError: If key file not found.
            GoogleAuthError: If key data is invalid.
        """
        self.key_path = Path(key_path) if key_path else None

        # Resolve scope names to full URLs
        self.scopes = resolve_scopes(scopes or ["sheets", "drive_file"])

        if key_info is None:
            if self.key_path is None:
                raise MissingConfigurationError("key_path", "Service account key is required")
            if not self.key_path.exists():
                raise CredentialsNotFoundError(str(self.key_path))

            try:
                with open(self.key_path) as f:
                    key_info = json.load(f)
            except json.JSONDecodeError as e:
                raise GoogleAuthError(f"Invalid JSON in key file: {e}") from e

        if not is_service_account_info(key_info):
            raise GoogleAuthError(
                f"Invalid key data: expected type 'service_account', "
                f"got '{key_info.get('type')}'"
            )

        self.client_email = key_info.get("client_email", "")
        self.project_id = key_info.get("project_id", "")

        # Create credentials
        self._credentials = service_account.Credentials.from_service_account_info(
            dict(key_info),
            scopes=self.scopes,
        )

        logger.info(f"Service account initialized: {self.client_email}")
        logger.info(f"Scopes: {self.scopes}")

    @property
    def credentials(self):
        """Get the service account credentials."""
        return self._credentials

    @property
    def email(self) -> str:
        """Get the service account email address.

        Share your Google resources with this email to grant access.
        """
        return self.client_email

    def build_service(self, service_name: str = "sheets", version: str = "v4"):
        """Build a Google API service with service account credentials.

        Args:
            service_name: Name of the service (e.g., 'sheets', 'drive').
            version: API version (e.g., 'v4', 'v3').

        Returns:
            Google API service object.
        """
        return build(service_name, version, credentials=self._credentials, cache_discovery=False)

    def with_subject(self, subject_email: str) -> "GoogleServiceAccount":
        """Create credentials that impersonate a user (requires domain-wide delegation).

        Args:
            subject_email: Email of the user to impersonate.

        Returns:
            New GoogleServiceAccount instance with delegated credentials.
        """
        delegated_credentials = self._credentials.with_subject(subject_email)

        new_instance = object.__new__(GoogleServiceAccount)
        new_instance.key_path = self.key_path
        new_instance.scopes = self.scopes
        new_instance.client_email = self.client_email
        new_instance.project_id = self.project_id
        new_instance._credentials = delegated_credentials

        logger.info(f"Created delegated credentials for: {subject_email}")
        return new_instance

    def get_info(self) -> dict:
        """Get information about the service account.

        Returns:
            Dictionary with service account details.
        """
        return {
            "type": "service_account",
            "email": self.client_email,
            "project_id": self.project_id,
            "scopes": self.scopes,
            "key_path": str(self.key_path) if self.key_path else None,
        }
