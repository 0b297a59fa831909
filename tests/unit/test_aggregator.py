"""Tests for result aggregation and run classification."""

import pytest

from spa_test_runner.aggregator import aggregate, classify, pass_rate
from spa_test_runner.models.result import Result, Severity, TestCategory, TestStatus
from spa_test_runner.testing.factories import ResultFactory


def make(
    status: TestStatus,
    category: TestCategory = "ui",
    severity: Severity | None = None,
    duration: float = 0.0,
) -> Result:
    return ResultFactory.build(
        status=status, category=category, severity=severity, duration=duration
    )


def test_pass_rate_of_empty_set_is_zero() -> None:
    """Zero total never divides."""
    assert pass_rate(0, 0) == 0.0


def test_aggregate_empty_results() -> None:
    """Empty input yields an all-zero summary."""
    summary = aggregate([])

    assert summary.total == 0
    assert summary.pass_rate == 0.0
    assert summary.categories == {}
    assert summary.total_duration == 0.0


def test_aggregate_mixed_results() -> None:
    """Computes overall and per-category statistics."""
    results = [
        *(make("passed", "ui") for _ in range(6)),
        make("failed", "ui", severity="critical"),
        *(make("passed", "integration") for _ in range(3)),
    ]

    summary = aggregate(results)

    assert summary.total == 10
    assert summary.passed == 9
    assert summary.failed == 1
    assert summary.pass_rate == 90.0
    assert summary.categories["ui"].total == 7
    assert summary.categories["ui"].pass_rate == pytest.approx(600 / 7)
    assert summary.categories["integration"].pass_rate == 100.0
    assert summary.severity.critical == 1


def test_aggregate_counts_sum_to_total() -> None:
    """Status counts always add up to the total."""
    results = [
        make("passed"),
        make("failed"),
        make("warning"),
        make("skipped"),
        make("warning", "data"),
    ]

    summary = aggregate(results)

    assert (
        summary.passed + summary.failed + summary.warning + summary.skipped
        == summary.total
    )
    assert sum(c.total for c in summary.categories.values()) == summary.total


def test_aggregate_severity_counts_only_failures() -> None:
    """Severity of non-failed results is ignored."""
    results = [
        make("failed", severity="high"),
        make("warning", severity="high"),
        make("failed", severity="low"),
        make("failed"),
    ]

    summary = aggregate(results)

    assert summary.severity.high == 1
    assert summary.severity.low == 1
    assert summary.severity.critical == 0


def test_aggregate_sums_durations() -> None:
    """Total duration is the sum of result durations."""
    summary = aggregate([make("passed", duration=1.5), make("failed", duration=2.0)])

    assert summary.total_duration == pytest.approx(3.5)


def test_aggregate_is_pure() -> None:
    """Same input yields equal summaries and leaves the input untouched."""
    results = [make("passed"), make("failed", "data", severity="medium")]
    copy = list(results)

    assert aggregate(results) == aggregate(results)
    assert results == copy


def test_classify_full_integration() -> None:
    """API connectivity and real data give full integration."""
    results = [
        make("passed", "integration"),
        make("passed", "data"),
        make("failed", "data"),
    ]

    classification = classify(aggregate(results))

    assert classification.status == "full-integration"
    assert classification.api_connected
    assert classification.real_data_available


def test_classify_api_connected_without_data() -> None:
    """Connected API without enough data passes."""
    results = [make("passed", "integration"), make("failed", "data")]

    assert classify(aggregate(results)).status == "api-connected"


def test_classify_offline_mode_when_ui_works() -> None:
    """Working UI without API is offline mode."""
    results = [
        make("warning", "integration"),
        *(make("passed", "ui") for _ in range(8)),
        make("failed", "ui"),
    ]

    classification = classify(aggregate(results))

    assert classification.status == "offline-mode"
    assert classification.ui_working
    assert not classification.api_connected


def test_classify_ui_threshold_is_exclusive() -> None:
    """A UI pass rate of exactly 70% is not working."""
    results = [
        *(make("passed", "ui") for _ in range(7)),
        *(make("failed", "ui") for _ in range(3)),
    ]

    assert classify(aggregate(results)).status == "issues-detected"


def test_classify_empty_run_reports_issues() -> None:
    """No results at all is an issue."""
    assert classify(aggregate([])).status == "issues-detected"


def test_aggregate_category_pass_rates() -> None:
    """Ten results across two categories give exact percentages."""
    results = [
        *(make("passed", "ui") for _ in range(3)),
        make("failed", "ui"),
        *(make("passed", "data") for _ in range(6)),
    ]

    summary = aggregate(results)

    assert summary.pass_rate == 90.0
    assert summary.categories["ui"].pass_rate == 75.0
    assert summary.categories["data"].pass_rate == 100.0
    assert list(summary.categories) == ["ui", "data"]
