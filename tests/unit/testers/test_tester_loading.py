"""Tests for tester loading module."""

import pytest

from spa_test_runner.models.config import RunConfig
from spa_test_runner.testers.endpoints import EndpointTester
from spa_test_runner.testers.loading import (
    TesterNotFoundError,
    load_tester,
    load_testers,
)


def test_load_tester_returns_tester() -> None:
    """Loads the built-in endpoint tester by key."""
    tester = load_tester("endpoints", RunConfig())

    assert isinstance(tester, EndpointTester)


def test_load_testers_preserves_order() -> None:
    testers = load_testers(["endpoints", "endpoints"], RunConfig())

    assert len(testers) == 2


def test_load_tester_raises_for_unknown_tester() -> None:
    """Raises TesterNotFoundError for unknown key."""
    with pytest.raises(TesterNotFoundError) as exc_info:
        load_tester("unknown-tester", RunConfig())

    assert "unknown-tester" in str(exc_info.value)
    assert "Available testers" in str(exc_info.value)
