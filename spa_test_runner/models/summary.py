"""Models for aggregated run statistics."""

from typing import Literal

from spa_test_runner.models.base import Model
from spa_test_runner.models.result import TestCategory

type IntegrationStatus = Literal[
    "full-integration", "api-connected", "offline-mode", "issues-detected"
]


class CategorySummary(Model):
    """Counts for a single result category."""

    total: int
    passed: int
    failed: int
    warning: int
    pass_rate: float


class SeverityBreakdown(Model):
    """Failed results grouped by severity."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class RunSummary(Model):
    """Statistics derived from a list of results.

    ``pass_rate`` values are percentages in the range 0-100.
    """

    total: int
    passed: int
    failed: int
    warning: int
    skipped: int
    pass_rate: float
    categories: dict[TestCategory, CategorySummary]
    severity: SeverityBreakdown
    total_duration: float


class RunClassification(Model):
    """Qualitative verdict on how well the application is integrated."""

    status: IntegrationStatus
    api_connected: bool
    real_data_available: bool
    ui_working: bool
