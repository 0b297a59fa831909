"""Tests for phase orchestrator."""

import asyncio
from collections.abc import Sequence
from unittest.mock import AsyncMock, Mock, patch

import pytest

from spa_test_runner.bootstrapper import InfrastructureBootstrapper
from spa_test_runner.context import RunContext
from spa_test_runner.models.config import RunConfig
from spa_test_runner.models.readiness import ReadinessStatus
from spa_test_runner.models.result import Phase, Result
from spa_test_runner.orchestrator import (
    PHASE_ORDER,
    PhaseOrchestrator,
    RunConflictError,
)
from spa_test_runner.snapshot_store import SnapshotStore
from spa_test_runner.storage.memory import InMemoryStorage
from spa_test_runner.testers.base import Tester, tester
from spa_test_runner.testing.factories import (
    ProbeResultFactory,
    ResultFactory,
    offline_readiness,
    online_readiness,
)


def passing(phase: Phase, name: str | None = None) -> Tester:
    """Build a tester returning a single passed result."""

    async def run(context: RunContext) -> Sequence[Result]:
        return [
            Result(name=name or phase, status="passed", category="ui", detail="ok")
        ]

    return tester(phase=phase, name=name or phase)(run)


def failing(phase: Phase, error: Exception, name: str = "broken") -> Tester:
    """Build a tester raising an exception."""

    async def run(context: RunContext) -> Sequence[Result]:
        raise error

    return tester(phase=phase, name=name)(run)


@pytest.fixture
def config() -> RunConfig:
    return RunConfig(suite_name="Unit Suite", tester_timeout=1)


@pytest.fixture
def readiness() -> ReadinessStatus:
    return online_readiness()


@pytest.fixture
def bootstrapper(config: RunConfig, readiness: ReadinessStatus) -> Mock:
    mock = Mock(spec=InfrastructureBootstrapper)
    mock.config = config
    mock.capture = None
    mock.initialize.return_value = readiness
    return mock


@pytest.fixture
def store() -> SnapshotStore:
    return SnapshotStore(InMemoryStorage())


@pytest.fixture
def orchestrator(bootstrapper: Mock, store: SnapshotStore) -> PhaseOrchestrator:
    return PhaseOrchestrator(bootstrapper=bootstrapper, store=store)


async def test_runs_phases_in_order(orchestrator: PhaseOrchestrator) -> None:
    """Results appear in phase order regardless of registration order."""
    for phase in reversed(PHASE_ORDER):
        orchestrator.register(passing(phase))

    outcome = await orchestrator.run_comprehensive()

    assert [r.phase for r in outcome.results] == list(PHASE_ORDER)
    assert outcome.summary.total == len(PHASE_ORDER)
    assert outcome.summary.passed == len(PHASE_ORDER)


async def test_failing_tester_becomes_single_failed_result(
    orchestrator: PhaseOrchestrator,
) -> None:
    """A throwing tester yields one failed result and later phases still run."""
    orchestrator.register(failing("screens", RuntimeError("boom")))
    orchestrator.register(passing("data"))

    outcome = await orchestrator.run_comprehensive()

    screens = [r for r in outcome.results if r.phase == "screens"]
    assert len(screens) == 1
    assert screens[0].status == "failed"
    assert "boom" in screens[0].detail
    assert screens[0].name == "broken"
    assert [r.name for r in outcome.results if r.phase == "data"] == ["data"]


async def test_testers_within_phase_run_concurrently(
    orchestrator: PhaseOrchestrator,
) -> None:
    """Two testers waiting on each other complete only if run concurrently."""
    first_ready = asyncio.Event()
    second_ready = asyncio.Event()

    async def first(context: RunContext) -> Sequence[Result]:
        first_ready.set()
        await second_ready.wait()
        return [ResultFactory.build(name="first")]

    async def second(context: RunContext) -> Sequence[Result]:
        second_ready.set()
        await first_ready.wait()
        return [ResultFactory.build(name="second")]

    orchestrator.register(tester(phase="screens", name="first")(first))
    orchestrator.register(tester(phase="screens", name="second")(second))

    outcome = await orchestrator.run_comprehensive()

    assert [r.name for r in outcome.results] == ["first", "second"]


async def test_concurrent_run_is_rejected(orchestrator: PhaseOrchestrator) -> None:
    """A second run while one is active raises and leaves results untouched."""
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow(context: RunContext) -> Sequence[Result]:
        context.report(ResultFactory.build(name="progress"))
        started.set()
        await release.wait()
        return []

    orchestrator.register(tester(phase="screens", name="slow")(slow))

    task = asyncio.create_task(orchestrator.run_comprehensive())
    await started.wait()
    before = orchestrator.results

    with pytest.raises(RunConflictError):
        await orchestrator.run_comprehensive()
    with pytest.raises(RunConflictError):
        await orchestrator.run_phase("data")

    assert orchestrator.results == before
    assert orchestrator.is_running

    release.set()
    outcome = await task

    assert not orchestrator.is_running
    assert [r.name for r in outcome.results] == ["progress"]


async def test_network_testers_skipped_offline(
    orchestrator: PhaseOrchestrator, bootstrapper: Mock
) -> None:
    """Testers requiring the network are skipped in offline mode."""
    bootstrapper.initialize.return_value = offline_readiness()
    run = AsyncMock(return_value=[])
    orchestrator.register(
        tester(phase="connectivity", name="api", requires_network=True)(run)
    )

    outcome = await orchestrator.run_comprehensive()

    run.assert_not_awaited()
    assert len(outcome.results) == 1
    assert outcome.results[0].status == "skipped"
    assert outcome.results[0].name == "api"


async def test_slow_tester_times_out(
    orchestrator: PhaseOrchestrator, bootstrapper: Mock, config: RunConfig
) -> None:
    """A tester exceeding the timeout becomes a failed result."""
    bootstrapper.config = config.model_copy(update={"tester_timeout": 0.05})

    async def hang(context: RunContext) -> Sequence[Result]:
        await asyncio.sleep(10)
        return []

    orchestrator.register(tester(phase="data", name="hang")(hang))

    outcome = await orchestrator.run_comprehensive()

    assert len(outcome.results) == 1
    assert outcome.results[0].status == "failed"
    assert "did not complete within" in outcome.results[0].detail


async def test_invalid_tester_output_becomes_failure(
    orchestrator: PhaseOrchestrator,
) -> None:
    """Returning something other than results fails the tester."""

    async def wrong(context: RunContext) -> Sequence[Result]:
        return ["not a result"]  # type: ignore[list-item]

    orchestrator.register(tester(phase="data", name="wrong")(wrong))

    outcome = await orchestrator.run_comprehensive()

    assert outcome.results[0].status == "failed"
    assert outcome.results[0].errors[1] == "TypeError"


async def test_bootstrap_failure_becomes_suite_result(
    orchestrator: PhaseOrchestrator, bootstrapper: Mock
) -> None:
    """A top-level failure is converted into a single failed result."""
    bootstrapper.initialize.side_effect = RuntimeError("no infrastructure")
    orchestrator.register(passing("screens"))

    outcome = await orchestrator.run_comprehensive()

    assert len(outcome.results) == 1
    assert outcome.results[0].name == "Unit Suite"
    assert outcome.results[0].status == "failed"
    assert "no infrastructure" in outcome.results[0].detail
    assert not orchestrator.is_running


async def test_phase_failure_becomes_phase_result(
    orchestrator: PhaseOrchestrator,
) -> None:
    """An error outside any tester is recorded against the phase."""
    orchestrator.register(passing("screens"))

    with patch(
        "spa_test_runner.orchestrator.readiness_results",
        side_effect=RuntimeError("probe data corrupt"),
    ):
        outcome = await orchestrator.run_comprehensive()

    assert outcome.results[0].name == "Phase: infrastructure"
    assert outcome.results[0].category == "infrastructure"
    assert outcome.results[0].status == "failed"
    assert [r.name for r in outcome.results[1:]] == ["screens"]


async def test_readiness_probes_become_infrastructure_results(
    orchestrator: PhaseOrchestrator, bootstrapper: Mock
) -> None:
    """Each readiness probe is reported in the infrastructure phase."""
    bootstrapper.initialize.return_value = ReadinessStatus(
        initialized=True,
        capabilities={"api_connectivity": True},
        probes=(
            ProbeResultFactory.build(name="api_connectivity", outcome="ok"),
            ProbeResultFactory.build(name="artifact_capture", outcome="unavailable"),
            ProbeResultFactory.build(name="data_management", outcome="failed"),
        ),
    )

    outcome = await orchestrator.run_comprehensive()

    assert [(r.name, r.status) for r in outcome.results] == [
        ("Infrastructure - api_connectivity", "passed"),
        ("Infrastructure - artifact_capture", "warning"),
        ("Infrastructure - data_management", "failed"),
    ]
    assert all(r.phase == "infrastructure" for r in outcome.results)


async def test_evidence_attached_to_failures(
    orchestrator: PhaseOrchestrator, bootstrapper: Mock, store: SnapshotStore
) -> None:
    """Failed results get an evidence snapshot when capture is available."""
    capture = Mock()
    capture.capture = AsyncMock(return_value="base64-image")
    bootstrapper.capture = capture
    orchestrator.register(failing("screens", RuntimeError("boom")))

    outcome = await orchestrator.run_comprehensive()

    (evidence_id,) = outcome.results[0].evidence
    snapshot = await store.get_snapshot(evidence_id)
    assert snapshot is not None
    assert snapshot.owner == "broken_evidence"
    assert isinstance(snapshot.data, dict)
    assert snapshot.data["artifact"] == "base64-image"


async def test_results_are_stored(
    orchestrator: PhaseOrchestrator, store: SnapshotStore
) -> None:
    """The final result list is persisted under the suite name."""
    orchestrator.register(passing("screens"))

    outcome = await orchestrator.run_comprehensive()

    assert tuple(await store.get_results("Unit Suite")) == outcome.results


async def test_suite_record_is_stored(
    orchestrator: PhaseOrchestrator, store: SnapshotStore
) -> None:
    """A record of the run with its summary is kept next to the results."""
    orchestrator.register(passing("screens"))

    outcome = await orchestrator.run_comprehensive()

    suite = await store.get_suite("Unit Suite")
    assert suite is not None
    assert suite.results == tuple(outcome.results)
    assert suite.summary == outcome.summary
    assert suite.started_at == outcome.started_at
    assert suite.duration is not None


async def test_run_phase_runs_single_phase(orchestrator: PhaseOrchestrator) -> None:
    """Only testers of the requested phase run."""
    orchestrator.register(passing("screens"))
    orchestrator.register(passing("data"))

    outcome = await orchestrator.run_phase("data")

    assert [r.name for r in outcome.results] == ["data"]


async def test_new_run_resets_results(orchestrator: PhaseOrchestrator) -> None:
    """Each run starts from an empty buffer."""
    orchestrator.register(passing("screens"))

    await orchestrator.run_comprehensive()
    outcome = await orchestrator.run_comprehensive()

    assert len(outcome.results) == 1
    assert orchestrator.results == outcome.results
