"""Infrastructure readiness probes run before a test run."""

import asyncio
import logging
import ssl
import sys
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import timedelta

import aiohttp

from spa_test_runner.capture import ArtifactCapture
from spa_test_runner.environment import detect_environment
from spa_test_runner.models.config import RunConfig
from spa_test_runner.models.readiness import HealthReport, ProbeResult, ReadinessStatus
from spa_test_runner.models.snapshot import CleanupTask, EnvironmentInfo
from spa_test_runner.snapshot_store import SnapshotStore

log = logging.getLogger(__name__)

MIN_PYTHON = (3, 12)
DEGRADED_HEALTH_RATIO = 0.7
INFRASTRUCTURE_CLEANUP_TASK_ID = "infrastructure_cleanup"

type ProbeCheck = Callable[[], Awaitable[str]]


def describe_environment(environment: EnvironmentInfo) -> str:
    return (
        f"{environment.os} {environment.os_release}, "
        f"Python {environment.python_version}"
    )


class ProbeUnavailableError(Exception):
    """Raised by a probe when the capability it checks is not present."""


class InfrastructureBootstrapper:
    """Checks that the test infrastructure is usable before a run.

    Probes are independent: each one is awaited under a bounded timeout and
    its failure is recorded without skipping the remaining probes.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        config: RunConfig | None = None,
        capture: ArtifactCapture | None = None,
    ) -> None:
        self._store = store
        self._config = config or RunConfig()
        self._capture = capture
        self._status = ReadinessStatus()

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def status(self) -> ReadinessStatus:
        return self._status

    @property
    def capture(self) -> ArtifactCapture | None:
        return self._capture

    def update_config(self, **updates: object) -> None:
        """Replace selected configuration fields."""
        self._config = self._config.model_copy(update=updates)
        log.info("Test configuration updated: %s", ", ".join(sorted(updates)))

    async def initialize(self, config: RunConfig | None = None) -> ReadinessStatus:
        """Run every readiness probe and return a fresh readiness record.

        ``initialized`` is true once the sequence has run, whatever the
        individual probe outcomes were.
        """
        if config is not None:
            self._config = config

        log.info("Initializing test infrastructure...")
        probes = [await self._run_probe(name, check) for name, check in self._probes()]
        self._register_cleanup()

        self._status = ReadinessStatus(
            initialized=True,
            capabilities={probe.name: probe.ok for probe in probes},
            errors=tuple(
                f"{probe.name}: {probe.detail}" for probe in probes if not probe.ok
            ),
            probes=tuple(probes),
        )
        self._log_status(self._status)
        return self._status

    async def reinitialize(self) -> ReadinessStatus:
        log.info("Reinitializing test infrastructure...")
        return await self.initialize()

    async def perform_health_check(self) -> HealthReport:
        """Re-run the lightweight probes and classify overall health."""
        checks: dict[str, bool] = {}
        issues: list[str] = []

        for name, check in self._health_probes():
            probe = await self._run_probe(name, check)
            checks[name] = probe.ok
            if not probe.ok:
                issues.append(f"{name}: {probe.detail}")

        passed = sum(checks.values())
        if passed == len(checks):
            overall = "healthy"
        elif passed >= len(checks) * DEGRADED_HEALTH_RATIO:
            overall = "degraded"
        else:
            overall = "unhealthy"

        log.info("Health check: %s (%d/%d checks passed)", overall, passed, len(checks))
        return HealthReport(overall=overall, checks=checks, issues=tuple(issues))

    async def prepare_test_environment(self, test_name: str) -> str:
        """Snapshot the environment and configuration for a named test.

        Initializes the infrastructure first if that has not happened yet.

        Returns:
            Id of the environment snapshot

        """
        if not self._status.initialized:
            await self.initialize()

        environment = detect_environment(self._config.base_url)
        snapshot_id = await self._store.create_snapshot(
            f"{test_name}_environment",
            {
                "test_name": test_name,
                "config": self._config.model_dump(mode="json"),
                "status": self._status.model_dump(mode="json"),
            },
            environment,
        )
        log.info("Test environment prepared for %s", test_name)
        return snapshot_id

    async def cleanup(self) -> None:
        """Run all registered cleanup tasks."""
        log.info("Cleaning up test infrastructure...")
        await self._store.execute_all_cleanup_tasks()

    def _probes(self) -> Sequence[tuple[str, ProbeCheck]]:
        return [
            ("environment_detection", self._check_environment),
            ("data_management", self._check_data_management),
            ("api_connectivity", self._check_api),
            ("artifact_capture", self._check_capture),
            ("runtime_features", self._check_runtime_features),
        ]

    def _health_probes(self) -> Sequence[tuple[str, ProbeCheck]]:
        return [
            ("environment_detection", self._detect_environment),
            ("artifact_capture", self._check_capture),
            ("data_management", self._check_statistics),
            ("api_connectivity", self._check_api),
        ]

    async def _run_probe(self, name: str, check: ProbeCheck) -> ProbeResult:
        start = time.perf_counter()
        try:
            async with asyncio.timeout(self._config.probe_timeout):
                detail = await check()
        except ProbeUnavailableError as e:
            log.warning("Probe %s unavailable: %s", name, e)
            return ProbeResult(
                name=name,
                outcome="unavailable",
                detail=str(e),
                duration=time.perf_counter() - start,
            )
        except TimeoutError:
            log.warning("Probe %s timed out", name)
            return ProbeResult(
                name=name,
                outcome="unavailable",
                detail=f"Timed out after {self._config.probe_timeout}s",
                duration=time.perf_counter() - start,
            )
        except Exception as e:
            log.warning("Probe %s failed: %s", name, e)
            return ProbeResult(
                name=name,
                outcome="failed",
                detail=str(e) or type(e).__name__,
                duration=time.perf_counter() - start,
            )

        return ProbeResult(
            name=name, outcome="ok", detail=detail, duration=time.perf_counter() - start
        )

    async def _detect_environment(self) -> str:
        environment = detect_environment(self._config.base_url)
        return describe_environment(environment)

    async def _check_environment(self) -> str:
        environment = detect_environment(self._config.base_url)
        await self._store.create_snapshot(
            "environment_info", environment.model_dump(mode="json"), environment
        )
        return describe_environment(environment)

    async def _check_data_management(self) -> str:
        await self._store.verify_persistence()

        environment = detect_environment(self._config.base_url)
        payload = {"test": "infrastructure_setup"}
        snapshot_id = await self._store.create_snapshot(
            "infrastructure_test", payload, environment
        )
        snapshot = await self._store.get_snapshot(snapshot_id)
        await self._store.delete_snapshot(snapshot_id)
        if snapshot is None or snapshot.data != payload:
            raise RuntimeError("Snapshot round trip returned different data")
        return "Snapshot round trip succeeded"

    async def _check_statistics(self) -> str:
        statistics = await self._store.get_data_statistics()
        return f"{statistics.snapshots} snapshot(s), {statistics.storage_bytes} bytes"

    async def _check_api(self) -> str:
        url = self._config.api_endpoint(self._config.health_path)
        async with (
            aiohttp.ClientSession() as session,
            session.get(url) as response,
        ):
            if response.status >= 400:
                raise RuntimeError(f"API not accessible: HTTP {response.status}")
            return f"API reachable at {url} ({response.status})"

    async def _check_capture(self) -> str:
        if self._capture is None:
            raise ProbeUnavailableError("No artifact capture configured")
        if not await self._capture.capture():
            raise RuntimeError("Artifact capture returned nothing")
        return "Artifact capture available"

    async def _check_runtime_features(self) -> str:
        missing = []
        if sys.version_info < MIN_PYTHON:
            missing.append("python>=%d.%d" % MIN_PYTHON)
        if not ssl.HAS_SNI:
            missing.append("ssl-sni")
        if missing:
            raise RuntimeError(f"Missing runtime features: {', '.join(missing)}")
        return f"Python {sys.version.split()[0]} supports all required features"

    def _register_cleanup(self) -> None:
        max_age = timedelta(seconds=self._config.max_data_age)

        async def _cleanup() -> None:
            await self._store.cleanup_old_data(max_age)

        self._store.register_cleanup_task(
            CleanupTask(
                id=INFRASTRUCTURE_CLEANUP_TASK_ID,
                description="Clean up test infrastructure data",
                action=_cleanup,
                priority="medium",
            )
        )

    def _log_status(self, status: ReadinessStatus) -> None:
        log.info("Test infrastructure status:")
        for name, available in status.capabilities.items():
            log.info("  %s %s", "✓" if available else "✗", name)
        if status.offline_mode:
            log.warning("API not accessible, network-dependent testers will be skipped")
        for error in status.errors:
            log.warning("  Issue: %s", error)
