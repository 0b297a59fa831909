"""Test orchestrator running testers through a fixed sequence of phases."""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

import aiohttp

from spa_test_runner.aggregator import aggregate, classify
from spa_test_runner.bootstrapper import InfrastructureBootstrapper
from spa_test_runner.context import RunContext, with_phase
from spa_test_runner.environment import detect_environment
from spa_test_runner.models.config import RunConfig
from spa_test_runner.models.readiness import ProbeResult, ReadinessStatus
from spa_test_runner.models.result import (
    Phase,
    Result,
    TestCategory,
    TestStatus,
    failed_result,
    utc_now,
)
from spa_test_runner.models.snapshot import SuiteRecord
from spa_test_runner.models.summary import RunClassification, RunSummary
from spa_test_runner.snapshot_store import SnapshotStore
from spa_test_runner.testers.base import Tester

log = logging.getLogger(__name__)

PHASE_ORDER: Sequence[Phase] = (
    "infrastructure",
    "connectivity",
    "screens",
    "data",
    "interactions",
)

PHASE_CATEGORY: Mapping[Phase, TestCategory] = {
    "infrastructure": "infrastructure",
    "connectivity": "integration",
    "screens": "ui",
    "data": "data",
    "interactions": "workflow",
}

PROBE_STATUS: Mapping[str, TestStatus] = {
    "ok": "passed",
    "unavailable": "warning",
    "failed": "failed",
}


class RunConflictError(Exception):
    """Raised when a run is requested while another one is active."""


@dataclass(frozen=True, kw_only=True)
class RunOutcome:
    """Everything produced by one orchestrated run."""

    suite_name: str
    results: Sequence[Result]
    summary: RunSummary
    classification: RunClassification
    readiness: ReadinessStatus
    started_at: datetime
    finished_at: datetime

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


def readiness_results(readiness: ReadinessStatus) -> Sequence[Result]:
    """Convert readiness probes into infrastructure results."""
    return [_probe_result(probe) for probe in readiness.probes]


def _probe_result(probe: ProbeResult) -> Result:
    status = PROBE_STATUS[probe.outcome]
    return Result(
        name=f"Infrastructure - {probe.name}",
        status=status,
        category="infrastructure",
        severity="medium" if status == "failed" else None,
        detail=probe.detail,
        duration=probe.duration,
    )


class PhaseOrchestrator:
    """Runs registered testers phase by phase and collects their results.

    Phases run strictly one after another; testers within a phase run
    concurrently. Failures are converted into results so a run always ends
    with a complete result set. Only one run may be active at a time.
    """

    def __init__(
        self,
        *,
        bootstrapper: InfrastructureBootstrapper,
        store: SnapshotStore,
        testers: Sequence[Tester] = (),
    ) -> None:
        self._bootstrapper = bootstrapper
        self._store = store
        self._testers: list[Tester] = list(testers)
        self._results: list[Result] = []
        self._active = False

    @property
    def config(self) -> RunConfig:
        return self._bootstrapper.config

    @property
    def testers(self) -> Sequence[Tester]:
        return tuple(self._testers)

    @property
    def is_running(self) -> bool:
        return self._active

    @property
    def results(self) -> Sequence[Result]:
        """Results collected so far by the current or last run."""
        return tuple(self._results)

    def register(self, tester: Tester) -> None:
        """Add a tester to the registration list."""
        self._testers.append(tester)
        log.info("Registered tester %s for phase %s", tester.name, tester.phase)

    async def run_comprehensive(self) -> RunOutcome:
        """Run every phase in order and return the collected outcome.

        Raises:
            RunConflictError: If another run is active; nothing is changed

        """
        self._begin()
        try:
            return await self._execute(PHASE_ORDER)
        finally:
            self._active = False

    async def run_phase(self, phase: Phase) -> RunOutcome:
        """Run a single phase with the same guarantees as a full run.

        Raises:
            RunConflictError: If another run is active; nothing is changed

        """
        self._begin()
        try:
            return await self._execute((phase,))
        finally:
            self._active = False

    def _begin(self) -> None:
        if self._active:
            raise RunConflictError("A test run is already in progress")
        self._active = True
        self._results = []

    async def _execute(self, phases: Sequence[Phase]) -> RunOutcome:
        config = self.config
        started_at = utc_now()
        readiness = ReadinessStatus()
        log.info("Starting %s (%d phase(s))", config.suite_name, len(phases))

        try:
            readiness = await self._bootstrapper.initialize()
            async with aiohttp.ClientSession() as session:
                context = RunContext(
                    config=config,
                    store=self._store,
                    readiness=readiness,
                    http=session,
                    sink=self._results.append,
                    capture=self._bootstrapper.capture,
                )
                for index, phase in enumerate(phases):
                    if index and config.settle_delay:
                        await asyncio.sleep(config.settle_delay)
                    await self._run_phase(context.for_phase(phase))
        except Exception as e:
            log.error("Test run failed: %s", e, exc_info=e)
            self._results.append(failed_result(config.suite_name, e, "workflow"))

        results = tuple(self._results)
        summary = aggregate(results)
        classification = classify(summary)
        await self._store.store_results(config.suite_name, results)

        finished_at = utc_now()
        await self._store.store_suite(
            SuiteRecord(
                name=config.suite_name,
                description=f"{len(phases)} phase(s) against {config.base_url}",
                results=results,
                started_at=started_at,
                finished_at=finished_at,
                summary=summary,
                environment=detect_environment(config.base_url),
            )
        )
        log.info(
            "Testing completed in %.1fs: %d/%d passed (%.1f%%), status=%s",
            (finished_at - started_at).total_seconds(),
            summary.passed,
            summary.total,
            summary.pass_rate,
            classification.status,
        )
        return RunOutcome(
            suite_name=config.suite_name,
            results=results,
            summary=summary,
            classification=classification,
            readiness=readiness,
            started_at=started_at,
            finished_at=finished_at,
        )

    async def _run_phase(self, context: RunContext) -> None:
        """Run all testers of a phase, converting any error into a result."""
        phase = context.phase
        assert phase is not None
        testers = [t for t in self._testers if t.phase == phase]
        log.info("Phase %s: dispatching %d tester(s)", phase, len(testers))

        try:
            if phase == "infrastructure":
                for result in readiness_results(context.readiness):
                    context.report(result)

            outcomes = await asyncio.gather(
                *(self._invoke(tester, context) for tester in testers),
                return_exceptions=True,
            )
            for tester, outcome in zip(testers, outcomes, strict=True):
                for result in self._process_outcome(tester, outcome, phase):
                    context.report(await self._attach_evidence(result, context))
        except Exception as e:
            log.error("Phase %s failed: %s", phase, e, exc_info=e)
            context.report(
                failed_result(f"Phase: {phase}", e, PHASE_CATEGORY[phase], phase=phase)
            )

    async def _invoke(self, tester: Tester, context: RunContext) -> Sequence[Result]:
        if tester.requires_network and context.offline_mode:
            log.info("Skipping %s: API not accessible", tester.name)
            return [
                Result(
                    name=tester.name,
                    status="skipped",
                    category=tester.category,
                    detail="Skipped: API not accessible (offline mode)",
                )
            ]

        timeout = self.config.tester_timeout
        start = time.perf_counter()
        try:
            async with asyncio.timeout(timeout):
                results = list(await tester.run(context))
        except TimeoutError:
            raise TimeoutError(
                f"Tester {tester.name} did not complete within {timeout} seconds"
            ) from None

        for result in results:
            if not isinstance(result, Result):
                raise TypeError(
                    f"Tester {tester.name} returned {type(result).__name__}, "
                    "expected Result"
                )

        log.info(
            "Tester completed: name=%s results=%d duration=%.1fs",
            tester.name,
            len(results),
            time.perf_counter() - start,
        )
        return results

    def _process_outcome(
        self,
        tester: Tester,
        outcome: Sequence[Result] | BaseException,
        phase: Phase,
    ) -> Sequence[Result]:
        if isinstance(outcome, Exception):
            log.error("Tester %s failed: %s", tester.name, outcome, exc_info=outcome)
            return [failed_result(tester.name, outcome, tester.category, phase=phase)]
        if isinstance(outcome, BaseException):
            raise outcome
        return [with_phase(result, phase) for result in outcome]

    async def _attach_evidence(self, result: Result, context: RunContext) -> Result:
        if (
            result.status != "failed"
            or result.evidence
            or not context.config.screenshot_on_failure
            or not context.readiness.capabilities.get("artifact_capture", False)
        ):
            return result

        evidence_id = await context.capture_evidence(result.name)
        if evidence_id is None:
            return result
        return result.model_copy(update={"evidence": (evidence_id,)})
