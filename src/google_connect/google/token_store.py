"""Token persistence in a user session or a shared cache.

A token is the dict returned by Google's token endpoint, stamped with the
time it was obtained:

    {
        "access_token": "ya29...",
        "expires_in": 3599,
        "scope": "https://www.googleapis.com/auth/spreadsheets",
        "token_type": "Bearer",
        "created": 1567627251,
        "refresh_token": "1//0g...",
    }

A token carrying an ``error`` key is invalid. Stores never hand one back and
treat writing one as clearing the slot.

Example:
    >>> store = CacheTokenStore(MemoryCache())
    >>> key = config_fingerprint({"client_id": "abc"})
    >>> store.put(key, token)
    >>> store.get(key)["access_token"]
    'ya29...'
"""

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from threading import RLock
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Token = dict[str, Any]


def is_valid_token(token: Token | None) -> bool:
    """Check that a token is non-empty and carries no error."""
    return bool(token) and not token.get("error")


def config_fingerprint(*parts: Any) -> str:
    """Derive a stable store key from client configuration.

    Args:
        *parts: JSON-serializable configuration pieces (dicts, paths, lists).

    Returns:
        Hex SHA-256 digest of the canonical JSON encoding.
    """
    payload = json.dumps(parts, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class TokenStore(ABC):
    """Abstract base class for token storage."""

    @abstractmethod
    def _read(self, key: str) -> Token | None:
        """Read the raw stored value."""
        pass

    @abstractmethod
    def _write(self, key: str, token: Token) -> None:
        """Write a validated token."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove any token stored under the key."""
        pass

    def get(self, key: str) -> Token | None:
        """Get the token stored under the key.

        Returns:
            The token, or None when nothing valid is stored.
        """
        token = self._read(key)
        if not token:
            return None

        if token.get("error"):
            logger.warning(f"Discarding stored token with error: {token.get('error')}")
            self.delete(key)
            return None

        return token

    def put(self, key: str, token: Token | None) -> None:
        """Store a token under the key, or clear the key for an invalid token."""
        if not is_valid_token(token):
            self.delete(key)
            return

        self._write(key, dict(token))


class SessionTokenStore(TokenStore):
    """Token store backed by a per-user session mapping.

    Tokens live under ``session[namespace]["tokens"][key]`` so the session
    can hold tokens for several client configurations at once.
    """

    def __init__(self, session: MutableMapping, namespace: str = "google_connect") -> None:
        self.session = session
        self.namespace = namespace

    def _data(self) -> dict[str, Any]:
        return dict(self.session.get(self.namespace) or {})

    def _read(self, key: str) -> Token | None:
        return (self._data().get("tokens") or {}).get(key)

    def _write(self, key: str, token: Token) -> None:
        data = self._data()
        tokens = dict(data.get("tokens") or {})
        tokens[key] = token
        data["tokens"] = tokens
        # Reassign so cookie-backed sessions notice the change
        self.session[self.namespace] = data

    def delete(self, key: str) -> None:
        data = self._data()
        tokens = dict(data.get("tokens") or {})
        if tokens.pop(key, None) is None:
            return
        data["tokens"] = tokens
        self.session[self.namespace] = data


class Cache(Protocol):
    """Minimal cache backend interface."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache with per-entry expiry."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Any, float | None]] = {}
        self._lock = RLock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class CacheTokenStore(TokenStore):
    """Token store backed by a shared cache.

    Entries expire together with the access token (``expires_in``). Tokens
    without ``expires_in`` are cached with no expiry.
    """

    def __init__(self, cache: Cache, prefix: str = "google_connect:token:") -> None:
        self.cache = cache
        self.prefix = prefix

    def _read(self, key: str) -> Token | None:
        return self.cache.get(self.prefix + key)

    def _write(self, key: str, token: Token) -> None:
        ttl = token.get("expires_in")
        self.cache.set(self.prefix + key, token, ttl=float(ttl) if ttl else None)

    def delete(self, key: str) -> None:
        self.cache.delete(self.prefix + key)
