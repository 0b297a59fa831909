"""In-process storage backend."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from spa_test_runner.storage.base import KeyValueStorage, StorageQuotaExceededError


@dataclass(kw_only=True)
class InMemoryStorage(KeyValueStorage):
    """Dictionary-backed storage with an optional size quota."""

    max_bytes: int | None = None
    _items: dict[str, str] = field(default_factory=dict, repr=False)

    async def get(self, key: str) -> str | None:
        return self._items.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            previous = len(self._items.get(key, ""))
            used = sum(len(k) + len(v) for k, v in self._items.items())
            projected = used - previous + len(value) + (0 if previous else len(key))
            if projected > self.max_bytes:
                raise StorageQuotaExceededError(
                    f"Storing '{key}' would exceed quota of {self.max_bytes} bytes"
                )
        self._items[key] = value

    async def remove(self, key: str) -> None:
        self._items.pop(key, None)

    async def keys(self) -> Sequence[str]:
        return list(self._items)
