"""Tests for run context."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest

from spa_test_runner.context import RunContext, with_phase
from spa_test_runner.models.config import RunConfig
from spa_test_runner.models.readiness import ReadinessStatus
from spa_test_runner.snapshot_store import SnapshotStore
from spa_test_runner.storage.memory import InMemoryStorage
from spa_test_runner.testing.factories import (
    ResultFactory,
    offline_readiness,
    online_readiness,
)


@pytest.fixture
async def session() -> AsyncGenerator[aiohttp.ClientSession]:
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def store() -> SnapshotStore:
    return SnapshotStore(InMemoryStorage())


def make_context(
    session: aiohttp.ClientSession,
    store: SnapshotStore,
    *,
    readiness: ReadinessStatus | None = None,
    sink: Mock | None = None,
    capture: Mock | None = None,
) -> RunContext:
    return RunContext(
        config=RunConfig(),
        store=store,
        readiness=readiness or online_readiness(),
        http=session,
        sink=sink or Mock(),
        capture=capture,
    )


def test_with_phase_keeps_existing_phase() -> None:
    result = ResultFactory.build(phase="data")

    assert with_phase(result, "screens").phase == "data"
    assert with_phase(ResultFactory.build(), "screens").phase == "screens"


async def test_report_stamps_phase(
    session: aiohttp.ClientSession, store: SnapshotStore
) -> None:
    """Reported results carry the phase of the context."""
    sink = Mock()
    context = make_context(session, store, sink=sink).for_phase("screens")

    context.report(ResultFactory.build(name="Home"))

    (reported,) = sink.call_args.args
    assert reported.name == "Home"
    assert reported.phase == "screens"


async def test_offline_mode(
    session: aiohttp.ClientSession, store: SnapshotStore
) -> None:
    assert make_context(session, store, readiness=offline_readiness()).offline_mode
    assert not make_context(session, store).offline_mode


async def test_capture_evidence_without_capture(
    session: aiohttp.ClientSession, store: SnapshotStore
) -> None:
    context = make_context(session, store)

    assert await context.capture_evidence("Home") is None


async def test_capture_evidence_stores_snapshot(
    session: aiohttp.ClientSession, store: SnapshotStore
) -> None:
    """Captured artifacts are stored as evidence snapshots."""
    capture = Mock()
    capture.capture = AsyncMock(return_value="image-data")
    context = make_context(session, store, capture=capture)

    snapshot_id = await context.capture_evidence("Home", target="#app")

    assert snapshot_id is not None
    snapshot = await store.get_snapshot(snapshot_id)
    assert snapshot is not None
    assert snapshot.owner == "Home_evidence"
    assert isinstance(snapshot.data, dict)
    assert snapshot.data["target"] == "#app"
    capture.capture.assert_awaited_once_with("#app")


async def test_capture_evidence_failure_returns_none(
    session: aiohttp.ClientSession, store: SnapshotStore
) -> None:
    capture = Mock()
    capture.capture = AsyncMock(side_effect=RuntimeError("no display"))
    context = make_context(session, store, capture=capture)

    assert await context.capture_evidence("Home") is None
