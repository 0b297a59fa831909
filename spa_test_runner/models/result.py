"""Models for tester results and the shared status vocabulary."""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Literal

from pydantic import Field

from spa_test_runner.models.base import Model, UtcDatetime

type TestStatus = Literal["passed", "failed", "warning", "skipped"]
type TestCategory = Literal[
    "ui",
    "integration",
    "data",
    "performance",
    "security",
    "workflow",
    "infrastructure",
]
type Severity = Literal["critical", "high", "medium", "low"]
type Phase = Literal[
    "infrastructure", "connectivity", "screens", "data", "interactions"
]

TEST_STATUSES: Sequence[TestStatus] = ("passed", "failed", "warning", "skipped")
TEST_CATEGORIES: Sequence[TestCategory] = (
    "ui",
    "integration",
    "data",
    "performance",
    "security",
    "workflow",
    "infrastructure",
)
SEVERITIES: Sequence[Severity] = ("critical", "high", "medium", "low")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class Result(Model):
    """Outcome of a single check performed by a tester.

    Results are frozen; the orchestrator derives a stamped copy (phase,
    evidence) before appending and never touches a Result afterwards.
    """

    __test__ = False

    name: str = Field(..., description="Human-readable check name")
    status: TestStatus = Field(..., description="Check outcome")
    category: TestCategory = Field(..., description="Area the check belongs to")
    detail: str = Field(..., description="Explanation of the outcome")
    severity: Severity | None = Field(
        default=None, description="Impact of a failure, if classified"
    )
    duration: float = Field(
        default=0.0, ge=0.0, description="Execution time in seconds (0 if unmeasured)"
    )
    timestamp: UtcDatetime = Field(default_factory=utc_now)
    errors: tuple[str, ...] = Field(default=(), description="Raw error messages")
    evidence: tuple[str, ...] = Field(
        default=(), description="Snapshot ids of captured evidence"
    )
    phase: Phase | None = Field(
        default=None, description="Phase that produced the result"
    )


def failed_result(
    name: str,
    error: BaseException,
    category: TestCategory,
    *,
    severity: Severity | None = "high",
    phase: Phase | None = None,
    duration: float = 0.0,
) -> Result:
    """Build the synthetic failure recorded when a tester or phase raises."""
    message = str(error) or type(error).__name__
    return Result(
        name=name,
        status="failed",
        category=category,
        severity=severity,
        detail=f"Test failed with error: {message}",
        duration=duration,
        errors=(message, type(error).__name__),
        phase=phase,
    )
