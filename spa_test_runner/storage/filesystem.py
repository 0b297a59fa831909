"""Storage backend writing one file per key, surviving process restarts."""

import asyncio
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote

from spa_test_runner.storage.base import KeyValueStorage

SUFFIX = ".json"


@dataclass(frozen=True, kw_only=True)
class FileStorage(KeyValueStorage):
    """Store each key as a file inside a directory.

    Keys are percent-encoded into file names so any string is a valid key.
    Blocking file I/O runs in a worker thread.
    """

    root: Path

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}{SUFFIX}"

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self._path(key), value)

    def _write(self, path: Path, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    async def keys(self) -> Sequence[str]:
        return await asyncio.to_thread(self._list_keys)

    def _list_keys(self) -> Sequence[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            unquote(path.name.removesuffix(SUFFIX))
            for path in self.root.iterdir()
            if path.is_file()
            and path.name.endswith(SUFFIX)
            and not path.name.startswith(".")
        )
