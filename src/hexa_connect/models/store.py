"""
Storage providers - Key/value persistence for encrypted wallet records.

Records are grouped in scopes (one per identity). Every provider only
ever sees encrypted blobs and attestation records, never plaintext keys.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from hexa_connect.utils import set_secure_permissions

logger = logging.getLogger(__name__)


SECRET_KEY = "hexa-secret"
PRIVATE_KEY_KEY = "hexa-private-key"
DEFAULT_SCOPE = "default"


class StorageProvider(ABC):
    """Interface for the persistent key/value backend."""

    @abstractmethod
    def initialize(self, scope: Optional[str] = None) -> None:
        """Bind the provider to a scope (None = default scope)."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Get a value from the current scope, or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value in the current scope."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a value from the current scope (no-op if absent)."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every value in the current scope."""

    def get_backup(self) -> str:
        """
        Get the encrypted private key record for export.

        Raises:
            LookupError: if no private key is stored
        """
        value = self.get_item(PRIVATE_KEY_KEY)
        if value is None:
            raise LookupError("No private key stored")
        return value

    def is_existing_private_key_stored(self) -> bool:
        """Check whether the current scope holds an encrypted private key."""
        return self.get_item(PRIVATE_KEY_KEY) is not None


class MemoryStorage(StorageProvider):
    """Storage that lives as long as the process (like sessionStorage)."""

    def __init__(self):
        self.scope = DEFAULT_SCOPE
        self._data: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def initialize(self, scope: Optional[str] = None) -> None:
        with self._lock:
            self.scope = scope or DEFAULT_SCOPE

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(self.scope, {}).get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._data.setdefault(self.scope, {})[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._data.get(self.scope, {}).pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.pop(self.scope, None)

    def keys(self) -> list[str]:
        """Keys in the current scope."""
        with self._lock:
            return list(self._data.get(self.scope, {}).keys())


class JsonFileStorage(StorageProvider):
    """
    Storage backed by a single JSON file.

    The file is rewritten atomically on every change and kept at mode 0600.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.scope = DEFAULT_SCOPE
        self._data: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        """Load records from disk."""
        if not self.path.exists():
            return
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            scopes = data.get("scopes", {})
            self._data = {
                scope: {k: v for k, v in items.items() if isinstance(v, str)}
                for scope, items in scopes.items()
                if isinstance(items, dict)
            }
        except (json.JSONDecodeError, AttributeError, OSError) as e:
            logger.warning(f"Failed to load storage file {self.path}: {e}")
            self._data = {}

    def _save(self) -> None:
        """Save records to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix('.tmp')
        with open(temp_path, "w") as f:
            json.dump({"version": 1, "scopes": self._data}, f, indent=2)
        temp_path.replace(self.path)
        set_secure_permissions(self.path)

    def initialize(self, scope: Optional[str] = None) -> None:
        with self._lock:
            self.scope = scope or DEFAULT_SCOPE

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(self.scope, {}).get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._data.setdefault(self.scope, {})[key] = value
            self._save()

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._data.get(self.scope, {})
            if key in items:
                del items[key]
                self._save()

    def clear(self) -> None:
        with self._lock:
            if self.scope in self._data:
                del self._data[self.scope]
                self._save()
