"""Models describing infrastructure readiness and health."""

from typing import Literal

from pydantic import computed_field

from spa_test_runner.models.base import Model

type ProbeOutcome = Literal["ok", "failed", "unavailable"]
type HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class ProbeResult(Model):
    """Outcome of a single readiness probe."""

    name: str
    outcome: ProbeOutcome
    detail: str
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome == "ok"


class ReadinessStatus(Model):
    """Readiness of the test infrastructure for one bootstrap attempt.

    ``initialized`` only says the probe sequence ran; individual
    capabilities may still be unavailable.
    """

    initialized: bool = False
    capabilities: dict[str, bool] = {}
    errors: tuple[str, ...] = ()
    probes: tuple[ProbeResult, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def offline_mode(self) -> bool:
        """Whether network-dependent work should be skipped."""
        return not self.capabilities.get("api_connectivity", False)


class HealthReport(Model):
    """Result of a lightweight health check."""

    overall: HealthStatus
    checks: dict[str, bool]
    issues: tuple[str, ...] = ()
