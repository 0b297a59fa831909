"""Report rendering entry points."""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Literal

from spa_test_runner.aggregator import aggregate, classify
from spa_test_runner.models.report import (
    BrowserCompatibility,
    PerformanceBenchmark,
    ReportAttachments,
    VisualEvidence,
)
from spa_test_runner.models.result import Result, utc_now
from spa_test_runner.models.summary import RunClassification, RunSummary
from spa_test_runner.reporting.markup import render_html
from spa_test_runner.reporting.narrative import render_narrative
from spa_test_runner.reporting.structured import render_structured
from spa_test_runner.reporting.tabular import render_tabular

log = logging.getLogger(__name__)

type ReportFormat = Literal["narrative", "tabular", "structured", "html"]

REPORT_FORMATS: Sequence[ReportFormat] = ("narrative", "tabular", "structured", "html")

FILE_EXTENSIONS: dict[ReportFormat, str] = {
    "narrative": "md",
    "tabular": "md",
    "structured": "json",
    "html": "html",
}

DEFAULT_HTML_TITLE = "Test Execution Report"


def render(
    results: Sequence[Result],
    summary: RunSummary,
    report_format: ReportFormat,
    *,
    classification: RunClassification | None = None,
    generated_at: datetime | None = None,
    suite: str | None = None,
    attachments: ReportAttachments | None = None,
) -> str:
    """Render results in one of the supported report formats.

    The html format is the narrative report converted to a standalone page.

    Raises:
        ValueError: If the format is not supported

    """
    generated_at = generated_at or utc_now()
    match report_format:
        case "narrative" | "html":
            narrative = render_narrative(
                results,
                summary,
                generated_at=generated_at,
                classification=classification,
                attachments=attachments,
            )
            if report_format == "narrative":
                return narrative
            title = f"{suite} - {DEFAULT_HTML_TITLE}" if suite else DEFAULT_HTML_TITLE
            return render_html(narrative, title=title)
        case "tabular":
            return render_tabular(summary, attachments)
        case "structured":
            return render_structured(
                results,
                summary,
                generated_at=generated_at,
                classification=classification,
                suite=suite,
                attachments=attachments,
            )
    raise ValueError(
        f"Unsupported report format '{report_format}'. "
        f"Available formats: {list(REPORT_FORMATS)}"
    )


class ReportSynthesizer:
    """Accumulates results, measurements and evidence and exports reports.

    The summary is recomputed from the accumulated results on every export.
    """

    def __init__(self, suite: str | None = None) -> None:
        self._suite = suite
        self._results: list[Result] = []
        self._benchmarks: list[PerformanceBenchmark] = []
        self._compatibility: list[BrowserCompatibility] = []
        self._evidence: list[VisualEvidence] = []

    @property
    def results(self) -> Sequence[Result]:
        return tuple(self._results)

    @property
    def attachments(self) -> ReportAttachments:
        return ReportAttachments(
            benchmarks=tuple(self._benchmarks),
            compatibility=tuple(self._compatibility),
            evidence=tuple(self._evidence),
        )

    def add_results(self, results: Sequence[Result]) -> None:
        self._results.extend(results)

    def add_benchmarks(self, benchmarks: Sequence[PerformanceBenchmark]) -> None:
        self._benchmarks.extend(benchmarks)

    def add_compatibility(self, entries: Sequence[BrowserCompatibility]) -> None:
        self._compatibility.extend(entries)

    def add_evidence(self, evidence: Sequence[VisualEvidence]) -> None:
        self._evidence.extend(evidence)

    def clear(self) -> None:
        self._results.clear()
        self._benchmarks.clear()
        self._compatibility.clear()
        self._evidence.clear()

    def summary(self) -> RunSummary:
        return aggregate(self._results)

    def export_report(
        self, report_format: ReportFormat, *, generated_at: datetime | None = None
    ) -> str:
        summary = aggregate(self._results)
        log.info(
            "Exporting %s report for %d result(s)", report_format, len(self._results)
        )
        return render(
            self._results,
            summary,
            report_format,
            classification=classify(summary),
            generated_at=generated_at,
            suite=self._suite,
            attachments=self.attachments,
        )
