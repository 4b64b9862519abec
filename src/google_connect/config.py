"""Centralized credential configuration.

Credentials are stored in the google-connect repo root by default:
    .env                              - client id/secret, redirect URI, session secret
    google/credentials.json           - Google OAuth client credentials
    google/service_account_key.json   - Google service account key

This module auto-loads the .env file on import, so the default client
configuration is available to every google-connect module.

Recognized environment variables:
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI,
    GOOGLE_APPLICATION_NAME, GOOGLE_SCOPES (comma separated),
    GOOGLE_ACCESS_TYPE, GOOGLE_PROMPT, GOOGLE_INCLUDE_GRANTED_SCOPES,
    GOOGLE_CONNECT_SECRET_KEY
"""

import os
from pathlib import Path
from typing import Any

# Repository root (where this package is installed from)
# __file__ is src/google_connect/config.py, so 3 levels up
REPO_ROOT = Path(__file__).parent.parent.parent
GOOGLE_DIR = REPO_ROOT / "google"

# Credential file paths
ENV_FILE = REPO_ROOT / ".env"
GOOGLE_CREDENTIALS = GOOGLE_DIR / "credentials.json"
GOOGLE_SERVICE_ACCOUNT = GOOGLE_DIR / "service_account_key.json"

DEFAULT_APPLICATION_NAME = "google-connect"
DEFAULT_ACCESS_TYPE = "offline"
DEFAULT_PROMPT = "select_account consent"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Only set if not already in environment (env vars take precedence)
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def ensure_google_dir() -> Path:
    """Create google credentials directory if it doesn't exist.

    Returns:
        Path to google directory.
    """
    GOOGLE_DIR.mkdir(parents=True, exist_ok=True)
    return GOOGLE_DIR


def parse_scopes(scope_str: str | None) -> list[str]:
    """Parse comma-separated scopes, dropping blanks."""
    if not scope_str:
        return []
    return [s.strip() for s in scope_str.split(",") if s.strip()]


def load_client_config() -> dict[str, Any]:
    """Build the default client configuration from environment variables.

    Only keys with a value are included, so the result can be merged under
    explicit configuration without clobbering it.

    Returns:
        Flat client configuration dictionary.
    """
    config: dict[str, Any] = {
        "application_name": os.environ.get("GOOGLE_APPLICATION_NAME", DEFAULT_APPLICATION_NAME),
        "access_type": os.environ.get("GOOGLE_ACCESS_TYPE", DEFAULT_ACCESS_TYPE),
        "prompt": os.environ.get("GOOGLE_PROMPT", DEFAULT_PROMPT),
    }

    optional = {
        "client_id": os.environ.get("GOOGLE_CLIENT_ID"),
        "client_secret": os.environ.get("GOOGLE_CLIENT_SECRET"),
        "redirect_uri": os.environ.get("GOOGLE_REDIRECT_URI"),
    }
    config.update({key: value for key, value in optional.items() if value})

    scopes = parse_scopes(os.environ.get("GOOGLE_SCOPES"))
    if scopes:
        config["scopes"] = scopes

    granted = os.environ.get("GOOGLE_INCLUDE_GRANTED_SCOPES")
    if granted is not None:
        config["include_granted_scopes"] = granted.strip().lower() in _TRUE_VALUES

    return config


def get_secret_key() -> str | None:
    """Get the session signing key for the redirect-flow app."""
    return os.environ.get("GOOGLE_CONNECT_SECRET_KEY")


def get_credential_status() -> dict:
    """Get status of all configured credentials.

    Returns:
        Dictionary with credential status.
    """
    return {
        "repo_root": str(REPO_ROOT),
        "env_file": ENV_FILE.exists(),
        "google": {
            "credentials": GOOGLE_CREDENTIALS.exists(),
            "service_account": GOOGLE_SERVICE_ACCOUNT.exists(),
            "client_id": bool(os.environ.get("GOOGLE_CLIENT_ID")),
            "client_secret": bool(os.environ.get("GOOGLE_CLIENT_SECRET")),
            "redirect_uri": bool(os.environ.get("GOOGLE_REDIRECT_URI")),
        },
        "web": {
            "secret_key": bool(get_secret_key()),
        },
    }


# Auto-load .env from repo root on import
_loaded = _load_env_file(ENV_FILE)
