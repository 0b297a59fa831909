"""Abstract key/value storage consumed by the snapshot store."""

from abc import ABC, abstractmethod
from collections.abc import Sequence


class StorageQuotaExceededError(Exception):
    """Raised when a write would exceed the storage quota."""


class KeyValueStorage(ABC):
    """String key/value storage, possibly quota-limited.

    Implementations may raise on any call; callers are expected to degrade
    gracefully.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value for a key, or None if it is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key. Removing a missing key is a no-op."""

    @abstractmethod
    async def keys(self) -> Sequence[str]:
        """Return all stored keys."""
