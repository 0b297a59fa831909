"""Models for persisted snapshots and cleanup bookkeeping."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal

from pydantic import Field, JsonValue

from spa_test_runner.models.base import Model, UtcDatetime
from spa_test_runner.models.result import Result, utc_now
from spa_test_runner.models.summary import RunSummary

type CleanupPriority = Literal["high", "medium", "low"]

CLEANUP_PRIORITY_ORDER: dict[CleanupPriority, int] = {"high": 0, "medium": 1, "low": 2}


class EnvironmentInfo(Model):
    """Description of the machine and target a run executed against."""

    os: str
    os_release: str
    python_version: str
    machine: str
    hostname: str
    target_url: str | None = None


class Snapshot(Model):
    """A payload stored on behalf of a test, immutable once written."""

    id: str
    created_at: UtcDatetime = Field(default_factory=utc_now)
    owner: str = Field(..., description="Name of the test owning the snapshot")
    data: JsonValue = Field(default=None, description="Deep copy of the payload")
    environment: EnvironmentInfo


class StoredResults(Model):
    """Result set persisted for a suite."""

    suite: str
    stored_at: UtcDatetime = Field(default_factory=utc_now)
    results: tuple[Result, ...] = ()


class SuiteRecord(Model):
    """A completed suite run with its results and summary."""

    name: str
    description: str = ""
    results: tuple[Result, ...] = ()
    started_at: UtcDatetime
    finished_at: UtcDatetime | None = None
    stored_at: UtcDatetime = Field(default_factory=utc_now)
    summary: RunSummary
    environment: EnvironmentInfo

    @property
    def duration(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class DataStatistics(Model):
    """Observational counts for the snapshot store."""

    snapshots: int
    result_sets: int
    suites: int
    cleanup_tasks: int
    storage_bytes: int


@dataclass(frozen=True, kw_only=True)
class CleanupTask:
    """Deferred cleanup action registered with the snapshot store.

    Actions should be idempotent: a task may run again if it is
    re-registered.
    """

    id: str
    description: str
    action: Callable[[], Awaitable[None]]
    priority: CleanupPriority = "medium"
