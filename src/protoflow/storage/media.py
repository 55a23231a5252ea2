"""Raw key/value media behind the session store.

A medium stores text values under text keys and signals every failure with
StorageUnavailableError. It never interprets values: JSON encoding, defaults
and failure tolerance belong to SessionStore.
"""

from typing import Optional, Protocol

from protoflow.errors import StorageUnavailableError


class StorageMedium(Protocol):
    """Protocol for session storage backends."""

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value or None if the key is absent."""

    def set_item(self, key: str, value: str) -> None:
        """Store value under key."""

    def remove_item(self, key: str) -> None:
        """Remove key; removing an absent key is not an error."""


class InMemoryMedium(StorageMedium):
    """Store session entries in local memory.

    Useful for tests or when the session does not need to outlive the
    process. ``quota_bytes`` caps the total size of stored keys and values
    (UTF-8) and ``available`` switches the whole medium off, which lets tests
    exercise full and disabled storage.
    """

    def __init__(self, *, quota_bytes: Optional[int] = None, available: bool = True) -> None:
        self._items: dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.available = available

    def _check_available(self, key: str) -> None:
        if not self.available:
            raise StorageUnavailableError("Session storage is not available", key=key)

    def _size_with(self, key: str, value: str) -> int:
        items = {**self._items, key: value}
        return sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in items.items())

    # ------------------------------------------------------------------
    def get_item(self, key: str) -> Optional[str]:
        self._check_available(key)
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_available(key)
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageUnavailableError(
                "Session storage quota exceeded", key=key, quota_bytes=self.quota_bytes
            )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._check_available(key)
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        """Return stored keys (test and debugging helper)."""
        return sorted(self._items)
