"""Context handed to every tester invocation."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import aiohttp

from spa_test_runner.capture import ArtifactCapture
from spa_test_runner.environment import detect_environment
from spa_test_runner.models.config import RunConfig
from spa_test_runner.models.readiness import ReadinessStatus
from spa_test_runner.models.result import Phase, Result, utc_now
from spa_test_runner.snapshot_store import SnapshotStore

log = logging.getLogger(__name__)


def with_phase(result: Result, phase: Phase | None) -> Result:
    """Return the result stamped with a phase unless it already has one."""
    if result.phase is not None or phase is None:
        return result
    return result.model_copy(update={"phase": phase})


@dataclass(frozen=True, kw_only=True)
class RunContext:
    """Everything a tester may use while the current run is active.

    Testers report into the run through :meth:`report` in addition to the
    results they return, so independently written modules never need a
    global handle on the orchestrator or the store.
    """

    config: RunConfig
    store: SnapshotStore
    readiness: ReadinessStatus
    http: aiohttp.ClientSession = field(repr=False)
    sink: Callable[[Result], None] = field(repr=False)
    capture: ArtifactCapture | None = field(default=None, repr=False)
    phase: Phase | None = None

    @property
    def offline_mode(self) -> bool:
        return self.readiness.offline_mode

    def for_phase(self, phase: Phase) -> "RunContext":
        """Return a copy of the context bound to a phase."""
        return replace(self, phase=phase)

    def report(self, result: Result) -> None:
        """Append a result to the current run."""
        self.sink(with_phase(result, self.phase))

    async def capture_evidence(
        self, name: str, target: str | None = None
    ) -> str | None:
        """Capture an artifact and store it as an evidence snapshot.

        Returns:
            The snapshot id, or None if capture is unavailable or failed

        """
        if self.capture is None:
            return None

        try:
            async with asyncio.timeout(self.config.probe_timeout):
                artifact = await self.capture.capture(target)
        except Exception as e:
            log.warning("Evidence capture for %s failed: %s", name, e)
            return None

        if not artifact:
            return None

        return await self.store.create_snapshot(
            f"{name}_evidence",
            {"artifact": artifact, "target": target, "captured_at": utc_now()},
            detect_environment(self.config.base_url),
        )
