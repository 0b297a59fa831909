"""Summary statistics and run classification computed from results."""

from collections.abc import Sequence

from spa_test_runner.models.result import TEST_CATEGORIES, TEST_STATUSES, Result
from spa_test_runner.models.summary import (
    CategorySummary,
    IntegrationStatus,
    RunClassification,
    RunSummary,
    SeverityBreakdown,
)

# Thresholds used to classify a run, as percentages
REAL_DATA_PASS_RATE = 50.0
UI_WORKING_PASS_RATE = 70.0


def pass_rate(passed: int, total: int) -> float:
    """Return the pass rate as a percentage, 0 for an empty set."""
    return passed * 100 / total if total else 0.0


def aggregate(results: Sequence[Result]) -> RunSummary:
    """Compute summary statistics for a list of results.

    The computation is pure: the same input always yields an equal summary.
    """
    counts = dict.fromkeys(TEST_STATUSES, 0)
    for result in results:
        counts[result.status] += 1

    categories: dict[str, CategorySummary] = {}
    for category in TEST_CATEGORIES:
        in_category = [r for r in results if r.category == category]
        if not in_category:
            continue
        passed = sum(1 for r in in_category if r.status == "passed")
        categories[category] = CategorySummary(
            total=len(in_category),
            passed=passed,
            failed=sum(1 for r in in_category if r.status == "failed"),
            warning=sum(1 for r in in_category if r.status == "warning"),
            pass_rate=pass_rate(passed, len(in_category)),
        )

    failed = [r for r in results if r.status == "failed"]
    severity = SeverityBreakdown(
        critical=sum(1 for r in failed if r.severity == "critical"),
        high=sum(1 for r in failed if r.severity == "high"),
        medium=sum(1 for r in failed if r.severity == "medium"),
        low=sum(1 for r in failed if r.severity == "low"),
    )

    return RunSummary(
        total=len(results),
        passed=counts["passed"],
        failed=counts["failed"],
        warning=counts["warning"],
        skipped=counts["skipped"],
        pass_rate=pass_rate(counts["passed"], len(results)),
        categories=categories,
        severity=severity,
        total_duration=sum(r.duration for r in results),
    )


def classify(summary: RunSummary) -> RunClassification:
    """Derive a qualitative integration status from category pass rates.

    - API connected: at least one integration result passed.
    - Real data available: data pass rate of at least 50%.
    - UI working: ui pass rate above 70%.
    """
    integration = summary.categories.get("integration")
    data = summary.categories.get("data")
    ui = summary.categories.get("ui")

    api_connected = integration is not None and integration.passed > 0
    real_data_available = data is not None and data.pass_rate >= REAL_DATA_PASS_RATE
    ui_working = ui is not None and ui.pass_rate > UI_WORKING_PASS_RATE

    status: IntegrationStatus
    if api_connected and real_data_available:
        status = "full-integration"
    elif api_connected:
        status = "api-connected"
    elif ui_working:
        status = "offline-mode"
    else:
        status = "issues-detected"

    return RunClassification(
        status=status,
        api_connected=api_connected,
        real_data_available=real_data_available,
        ui_working=ui_working,
    )
