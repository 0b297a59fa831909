"""Markdown narrative report."""

from collections.abc import Sequence
from datetime import datetime

from spa_test_runner.models.report import (
    BrowserCompatibility,
    PerformanceBenchmark,
    ReportAttachments,
    VisualEvidence,
)
from spa_test_runner.models.result import Result, Severity
from spa_test_runner.models.summary import RunClassification, RunSummary
from spa_test_runner.reporting.tabular import (
    benchmark_tables,
    compatibility_matrix,
    format_measure,
)

SEVERITY_ICONS: dict[Severity, str] = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🔵",
}

NO_CRITICAL_ISSUES = "✅ No critical issues found. System is stable for deployment."
BENCHMARKS_WITHIN_THRESHOLDS = (
    "✅ All performance benchmarks are within acceptable thresholds."
)
FULL_COMPATIBILITY = "✅ Full compatibility across all tested browsers and platforms."


def category_icon(pass_rate: float) -> str:
    if pass_rate >= 90:
        return "✅"
    if pass_rate >= 70:
        return "⚠️"
    return "❌"


def render_narrative(
    results: Sequence[Result],
    summary: RunSummary,
    *,
    generated_at: datetime,
    classification: RunClassification | None = None,
    attachments: ReportAttachments | None = None,
) -> str:
    """Render a human-readable markdown report.

    Args:
        results: Results in the order they were reported
        summary: Statistics computed from ``results``
        generated_at: Timestamp printed in the report header
        classification: Optional integration verdict to include
        attachments: Optional benchmarks, browser support and evidence;
            their sections and recommendations only appear when present

    Returns:
        The markdown document

    """
    lines = [
        "# Comprehensive Test Execution Report",
        "",
        f"**Generated**: {generated_at.isoformat()}",
        "",
        "## Executive Summary",
        "",
        f"- **Total Tests Executed**: {summary.total}",
        f"- **Pass Rate**: {summary.pass_rate:.1f}% "
        f"({summary.passed}/{summary.total})",
        f"- **Failed Tests**: {summary.failed}",
        f"- **Warnings**: {summary.warning}",
        f"- **Skipped Tests**: {summary.skipped}",
        f"- **Total Execution Time**: {summary.total_duration:.2f} seconds",
    ]
    if classification is not None:
        lines.append(f"- **Integration Status**: {classification.status}")

    lines += [
        "",
        "### Severity Breakdown",
        "",
        f"- **Critical**: {summary.severity.critical} issues",
        f"- **High**: {summary.severity.high} issues",
        f"- **Medium**: {summary.severity.medium} issues",
        f"- **Low**: {summary.severity.low} issues",
        "",
        "## Test Results by Category",
        "",
    ]

    for category, stats in summary.categories.items():
        lines += [
            f"### {category_icon(stats.pass_rate)} {category.upper()}",
            "",
            f"- **Total Tests**: {stats.total}",
            f"- **Passed**: {stats.passed} ({stats.pass_rate:.1f}%)",
            f"- **Failed**: {stats.failed}",
            f"- **Warnings**: {stats.warning}",
            "",
        ]
        issues = [
            r
            for r in results
            if r.category == category and r.status in {"failed", "warning"}
        ]
        for index, result in enumerate(issues, start=1):
            lines += _issue_lines(index, result)

    attachments = attachments or ReportAttachments()
    if attachments.benchmarks:
        lines += [
            "## Performance Benchmarks",
            "",
            *benchmark_tables(attachments.benchmarks),
        ]
    if attachments.compatibility:
        lines += [
            "## Browser Compatibility Matrix",
            "",
            *compatibility_matrix(attachments.compatibility),
        ]
    if attachments.evidence:
        lines += ["## Visual Evidence", "", *_evidence_lines(attachments.evidence)]

    lines += [
        "## Recommendations",
        "",
        "### High Priority",
        "",
        *_recommendations(results),
        "",
    ]
    if attachments.benchmarks:
        lines += [
            "### Performance Optimizations",
            "",
            *_benchmark_recommendations(attachments.benchmarks),
            "",
        ]
    if attachments.compatibility:
        lines += [
            "### Browser Compatibility",
            "",
            *_compatibility_recommendations(attachments.compatibility),
            "",
        ]
    return "\n".join(lines)


def _issue_lines(index: int, result: Result) -> list[str]:
    icon = SEVERITY_ICONS[result.severity] if result.severity else "⚪"
    lines = [
        f"{index}. **{result.name}** {icon} ({result.status})",
        f"   - **Details**: {result.detail}",
    ]
    if result.errors:
        lines.append(f"   - **Errors**: {', '.join(result.errors)}")
    if result.evidence:
        lines.append(f"   - **Evidence**: {', '.join(result.evidence)}")
    lines += [f"   - **Timestamp**: {result.timestamp.isoformat()}", ""]
    return lines


def _recommendations(results: Sequence[Result]) -> list[str]:
    critical = [
        r for r in results if r.status == "failed" and r.severity == "critical"
    ]
    if not critical:
        return [NO_CRITICAL_ISSUES]
    return [
        f"{index}. **{result.name}**: {result.detail}"
        for index, result in enumerate(critical, start=1)
    ]


def _evidence_lines(evidence: Sequence[VisualEvidence]) -> list[str]:
    lines: list[str] = []
    for item in evidence:
        lines.append(
            f"- **{item.test_name}** ({item.status}, {item.timestamp.isoformat()})"
        )
        if item.screenshots:
            lines.append(f"   - **Screenshots**: {', '.join(item.screenshots)}")
        if item.recordings:
            lines.append(f"   - **Recordings**: {', '.join(item.recordings)}")
    lines.append("")
    return lines


def _benchmark_recommendations(
    benchmarks: Sequence[PerformanceBenchmark],
) -> list[str]:
    slow = [b for b in benchmarks if b.status != "pass"]
    if not slow:
        return [BENCHMARKS_WITHIN_THRESHOLDS]
    return [
        f"{index}. **{b.metric}**: Current {format_measure(b.value, b.unit)}, "
        f"target <{format_measure(b.threshold, b.unit)}"
        for index, b in enumerate(slow, start=1)
    ]


def _compatibility_recommendations(
    entries: Sequence[BrowserCompatibility],
) -> list[str]:
    limited = [e for e in entries if e.status != "supported"]
    if not limited:
        return [FULL_COMPATIBILITY]
    return [
        f"{index}. **{e.browser} {e.version}** ({e.platform}): "
        f"{', '.join(e.issues) or e.status}"
        for index, e in enumerate(limited, start=1)
    ]
