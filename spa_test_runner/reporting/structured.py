"""Machine-readable JSON report."""

from collections.abc import Sequence
from datetime import datetime

from pydantic import Field

from spa_test_runner.models.base import Model
from spa_test_runner.models.report import (
    BrowserCompatibility,
    PerformanceBenchmark,
    ReportAttachments,
    VisualEvidence,
)
from spa_test_runner.models.result import Result
from spa_test_runner.models.summary import RunClassification, RunSummary

GENERATOR = "spa-test-runner"
FORMAT_VERSION = "1.1"


class ReportMetadata(Model):
    generator: str = GENERATOR
    format_version: str = FORMAT_VERSION
    generated_at: datetime
    suite: str | None = None


class StructuredReport(Model):
    """JSON document holding the summary and every result verbatim."""

    metadata: ReportMetadata
    summary: RunSummary
    classification: RunClassification | None = None
    results: tuple[Result, ...] = Field(default=())
    performance_benchmarks: tuple[PerformanceBenchmark, ...] = ()
    browser_compatibility: tuple[BrowserCompatibility, ...] = ()
    visual_evidence: tuple[VisualEvidence, ...] = ()


def render_structured(
    results: Sequence[Result],
    summary: RunSummary,
    *,
    generated_at: datetime,
    classification: RunClassification | None = None,
    suite: str | None = None,
    attachments: ReportAttachments | None = None,
) -> str:
    attachments = attachments or ReportAttachments()
    report = StructuredReport(
        metadata=ReportMetadata(generated_at=generated_at, suite=suite),
        summary=summary,
        classification=classification,
        results=tuple(results),
        performance_benchmarks=attachments.benchmarks,
        browser_compatibility=attachments.compatibility,
        visual_evidence=attachments.evidence,
    )
    return report.model_dump_json(indent=2)
