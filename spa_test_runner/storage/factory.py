"""Create storage backends from configuration."""

from spa_test_runner.models.config import StorageConfig
from spa_test_runner.storage.base import KeyValueStorage
from spa_test_runner.storage.filesystem import FileStorage
from spa_test_runner.storage.memory import InMemoryStorage


def create_storage(config: StorageConfig) -> KeyValueStorage:
    """Build the storage backend selected by the configuration.

    Raises:
        ValueError: If the filesystem backend is selected without a path

    """
    if config.backend == "filesystem":
        if config.path is None:
            raise ValueError("Filesystem storage requires a path")
        return FileStorage(root=config.path)
    return InMemoryStorage(max_bytes=config.max_bytes)
