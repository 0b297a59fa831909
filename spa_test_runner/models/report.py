"""Measurements and evidence attached to reports next to the results."""

from collections.abc import Sequence
from typing import Literal

from pydantic import Field

from spa_test_runner.models.base import Model, UtcDatetime
from spa_test_runner.models.result import Result, TestStatus, utc_now

type BenchmarkStatus = Literal["pass", "warning", "fail"]
type CompatibilityStatus = Literal["supported", "partial", "unsupported"]


class PerformanceBenchmark(Model):
    """A measured metric compared against its threshold."""

    metric: str
    value: float
    unit: str = ""
    threshold: float
    status: BenchmarkStatus
    category: str = Field(default="General", description="Heading to group under")


class BrowserCompatibility(Model):
    """Support level of the application in one browser and platform."""

    browser: str
    version: str
    platform: str
    status: CompatibilityStatus
    issues: tuple[str, ...] = ()
    results: tuple[Result, ...] = Field(
        default=(), description="Results gathered in this browser"
    )


class VisualEvidence(Model):
    """Screenshots and recordings captured for a test."""

    test_name: str
    screenshots: tuple[str, ...] = ()
    recordings: tuple[str, ...] = ()
    timestamp: UtcDatetime = Field(default_factory=utc_now)
    status: TestStatus


class ReportAttachments(Model):
    """Everything a report renders besides the results themselves."""

    benchmarks: tuple[PerformanceBenchmark, ...] = ()
    compatibility: tuple[BrowserCompatibility, ...] = ()
    evidence: tuple[VisualEvidence, ...] = ()


def evidence_from_results(results: Sequence[Result]) -> tuple[VisualEvidence, ...]:
    """Collect the evidence snapshot ids attached to results."""
    return tuple(
        VisualEvidence(
            test_name=result.name,
            screenshots=result.evidence,
            timestamp=result.timestamp,
            status=result.status,
        )
        for result in results
        if result.evidence
    )
