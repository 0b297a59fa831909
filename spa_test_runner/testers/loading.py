"""Loading of testers from entry points."""

from collections.abc import Callable, Sequence
from importlib.metadata import entry_points

from spa_test_runner.models.config import RunConfig
from spa_test_runner.testers.base import Tester

ENTRY_POINT_GROUP = "spa_test_runner.testers"

type TesterFactory = Callable[[RunConfig], Tester]


class TesterNotFoundError(Exception):
    """Raised when a tester is not found."""


def load_tester(key: str, config: RunConfig) -> Tester:
    """Load a tester by key and build it for the given configuration.

    Args:
        key: The tester key as registered in pyproject.toml (e.g., "endpoints")
        config: Configuration of the run the tester takes part in

    Returns:
        The tester instance

    Raises:
        TesterNotFoundError: If no tester with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            factory: TesterFactory = entry.load()
            return factory(config)

    available = [e.name for e in entries]
    raise TesterNotFoundError(
        f"Tester '{key}' not found. Available testers: {available}"
    )


def load_testers(keys: Sequence[str], config: RunConfig) -> Sequence[Tester]:
    """Load several testers, preserving the order of the keys."""
    return [load_tester(key, config) for key in keys]
