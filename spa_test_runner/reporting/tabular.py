"""Markdown table report comparing measurements against thresholds."""

from collections.abc import Sequence
from typing import Literal

from spa_test_runner.models.report import (
    BenchmarkStatus,
    BrowserCompatibility,
    CompatibilityStatus,
    PerformanceBenchmark,
    ReportAttachments,
)
from spa_test_runner.models.summary import RunSummary

type Marker = Literal["pass", "warn", "fail"]

PASS_THRESHOLD = 90.0
WARN_THRESHOLD = 70.0

MARKER_ICONS: dict[Marker, str] = {"pass": "✅", "warn": "⚠️", "fail": "❌"}
BENCHMARK_ICONS: dict[BenchmarkStatus, str] = {
    "pass": "✅",
    "warning": "⚠️",
    "fail": "❌",
}
COMPATIBILITY_ICONS: dict[CompatibilityStatus, str] = {
    "supported": "✅",
    "partial": "⚠️",
    "unsupported": "❌",
}

HEADER = (
    "| Metric | Threshold | Actual | Status |",
    "|--------|-----------|--------|--------|",
)
BENCHMARK_HEADER = (
    "| Metric | Value | Threshold | Status |",
    "|--------|-------|-----------|--------|",
)
COMPATIBILITY_HEADER = (
    "| Browser | Version | Platform | Status | Issues |",
    "|---------|---------|----------|--------|--------|",
)


def marker(pass_rate: float) -> Marker:
    """Classify a pass rate: pass at 90% or more, warn at 70% or more."""
    if pass_rate >= PASS_THRESHOLD:
        return "pass"
    if pass_rate >= WARN_THRESHOLD:
        return "warn"
    return "fail"


def _row(metric: str, threshold: str, actual: str, status: Marker) -> str:
    return f"| {metric} | {threshold} | {actual} | {MARKER_ICONS[status]} {status} |"


def format_measure(value: float, unit: str) -> str:
    return f"{value:g}{unit}"


def benchmark_tables(benchmarks: Sequence[PerformanceBenchmark]) -> list[str]:
    """Render benchmarks as one table per category, in first-seen order."""
    lines: list[str] = []
    for category in dict.fromkeys(b.category for b in benchmarks):
        lines += [f"### {category}", "", *BENCHMARK_HEADER]
        lines += [
            f"| {b.metric} | {format_measure(b.value, b.unit)} "
            f"| {format_measure(b.threshold, b.unit)} "
            f"| {BENCHMARK_ICONS[b.status]} {b.status} |"
            for b in benchmarks
            if b.category == category
        ]
        lines.append("")
    return lines


def compatibility_matrix(entries: Sequence[BrowserCompatibility]) -> list[str]:
    """Render one row per browser and platform."""
    rows = [
        f"| {e.browser} | {e.version} | {e.platform} "
        f"| {COMPATIBILITY_ICONS[e.status]} {e.status} "
        f"| {', '.join(e.issues) or 'None'} |"
        for e in entries
    ]
    return [*COMPATIBILITY_HEADER, *rows, ""]


def render_tabular(
    summary: RunSummary, attachments: ReportAttachments | None = None
) -> str:
    """Render pass rates, benchmarks and browser support as markdown tables."""
    rows = [
        _row(
            f"{category} pass rate",
            f"{PASS_THRESHOLD:.0f}%",
            f"{stats.pass_rate:.1f}%",
            marker(stats.pass_rate),
        )
        for category, stats in summary.categories.items()
    ]
    rows.append(
        _row(
            "overall pass rate",
            f"{PASS_THRESHOLD:.0f}%",
            f"{summary.pass_rate:.1f}%",
            marker(summary.pass_rate),
        )
    )
    critical = summary.severity.critical
    rows.append(
        _row(
            "critical failures", "0", str(critical), "fail" if critical else "pass"
        )
    )
    lines = ["## Test Metrics", "", *HEADER, *rows, ""]

    if attachments and attachments.benchmarks:
        lines += [
            "## Performance Benchmarks",
            "",
            *benchmark_tables(attachments.benchmarks),
        ]
    if attachments and attachments.compatibility:
        lines += [
            "## Browser Compatibility Matrix",
            "",
            *compatibility_matrix(attachments.compatibility),
        ]
    return "\n".join(lines)
