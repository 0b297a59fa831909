"""Snapshot persistence, stored result sets and cleanup task registry."""

import json
import logging
import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from pydantic import JsonValue, ValidationError
from pydantic_core import to_jsonable_python

from spa_test_runner.models.base import Model, as_utc
from spa_test_runner.models.result import Result, utc_now
from spa_test_runner.models.snapshot import (
    CLEANUP_PRIORITY_ORDER,
    CleanupTask,
    DataStatistics,
    EnvironmentInfo,
    Snapshot,
    StoredResults,
    SuiteRecord,
)
from spa_test_runner.storage.base import KeyValueStorage

log = logging.getLogger(__name__)

SNAPSHOT_ID_PREFIX = "snapshot_"
RESULTS_KEY_PREFIX = "results_"
SUITE_KEY_PREFIX = "suite_"
EXPORT_VERSION = "1.0.0"
TIMESTAMP_FIELDS = ("created_at", "stored_at")


class DataExport(Model):
    """Serialized form of everything held by a store."""

    version: str = EXPORT_VERSION
    exported_at: datetime
    snapshots: tuple[Snapshot, ...] = ()
    results: tuple[StoredResults, ...] = ()
    suites: tuple[SuiteRecord, ...] = ()


class SnapshotStore:
    """Owns snapshots, stored results, suite records and cleanup tasks.

    Entries live in memory and are mirrored to a durable key/value layer.
    Lookups fall back to the durable layer so data written by an earlier
    process can be read back. Any failure of the durable layer is logged and
    answered with a safe default, never propagated.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key_prefix: str = "spa_test_runner_",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._prefix = key_prefix
        self._clock = clock
        self._snapshots: dict[str, Snapshot] = {}
        self._results: dict[str, StoredResults] = {}
        self._suites: dict[str, SuiteRecord] = {}
        self._cleanup_tasks: dict[str, CleanupTask] = {}

    async def verify_persistence(self) -> None:
        """Write, read back and remove a probe entry in the durable layer.

        Unlike every other operation this one lets storage errors propagate,
        so callers can tell whether persistence actually works.

        Raises:
            RuntimeError: If the value read back differs from the one written

        """
        key = f"{self._prefix}probe_{uuid.uuid4().hex}"
        value = json.dumps({"created_at": self._clock().isoformat(), "probe": True})
        await self._storage.set(key, value)
        try:
            if await self._storage.get(key) != value:
                raise RuntimeError("Persisted value could not be read back")
        finally:
            await self._storage.remove(key)

    # Snapshots

    async def create_snapshot(
        self, owner: str, payload: Any, environment: EnvironmentInfo
    ) -> str:
        """Store a deep copy of a payload and return the new snapshot id.

        Raises:
            ValueError: If the payload cannot be represented as JSON

        """
        snapshot = Snapshot(
            id=f"{SNAPSHOT_ID_PREFIX}{uuid.uuid4().hex}",
            created_at=self._clock(),
            owner=owner,
            data=self._copy_payload(payload),
            environment=environment,
        )
        self._snapshots[snapshot.id] = snapshot
        await self._write(self._snapshot_key(snapshot.id), snapshot.model_dump_json())

        log.info("Created snapshot %s for %s", snapshot.id, owner)
        return snapshot.id

    async def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        """Return a snapshot by id, loading it from storage if needed."""
        if not is_snapshot_id(snapshot_id):
            return None
        snapshot = self._snapshots.get(snapshot_id)
        if snapshot is None:
            snapshot = await self._load(self._snapshot_key(snapshot_id), Snapshot)
            if snapshot is None:
                return None
            self._snapshots[snapshot.id] = snapshot
        return snapshot.model_copy(deep=True)

    async def get_snapshots_for_owner(self, owner: str) -> Sequence[Snapshot]:
        """Return all snapshots owned by a test, oldest first."""
        for key in await self._keys(SNAPSHOT_ID_PREFIX):
            snapshot_id = key.removeprefix(self._prefix)
            if snapshot_id in self._snapshots:
                continue
            if (snapshot := await self._load(key, Snapshot)) is not None:
                self._snapshots[snapshot.id] = snapshot

        owned = [s for s in self._snapshots.values() if s.owner == owner]
        return [s.model_copy(deep=True) for s in sorted(owned, key=_created_at)]

    def get_all_snapshots(self) -> Sequence[Snapshot]:
        """Return the snapshots currently held in memory."""
        return [s.model_copy(deep=True) for s in self._snapshots.values()]

    async def delete_snapshot(self, snapshot_id: str) -> bool:
        """Delete a snapshot from memory and storage.

        Ids outside the snapshot namespace are never deleted, so result sets
        and suite records cannot be removed through this method.

        Returns:
            True if the snapshot existed in either layer, False otherwise

        """
        if not is_snapshot_id(snapshot_id):
            return False

        key = self._snapshot_key(snapshot_id)
        in_memory = self._snapshots.pop(snapshot_id, None) is not None
        in_storage = await self._read(key) is not None
        if in_storage:
            await self._delete(key)

        deleted = in_memory or in_storage
        if deleted:
            log.info("Deleted snapshot %s", snapshot_id)
        return deleted

    # Result sets

    async def store_results(self, suite: str, results: Sequence[Result]) -> None:
        """Persist the results of a suite, replacing earlier ones."""
        stored = StoredResults(
            suite=suite, stored_at=self._clock(), results=tuple(results)
        )
        self._results[suite] = stored
        await self._write(self._results_key(suite), stored.model_dump_json())
        log.info("Stored %d result(s) for %s", len(stored.results), suite)

    async def get_results(self, suite: str) -> Sequence[Result]:
        """Return stored results of a suite, or an empty sequence."""
        stored = self._results.get(suite)
        if stored is None:
            stored = await self._load(self._results_key(suite), StoredResults)
            if stored is None:
                return ()
            self._results[suite] = stored
        return stored.results

    async def get_all_results(self) -> Mapping[str, Sequence[Result]]:
        """Return the stored results of every suite, keyed by suite name."""
        for key in await self._keys(RESULTS_KEY_PREFIX):
            suite = key.removeprefix(self._prefix).removeprefix(RESULTS_KEY_PREFIX)
            if suite in self._results:
                continue
            if (stored := await self._load(key, StoredResults)) is not None:
                self._results[stored.suite] = stored

        return {suite: stored.results for suite, stored in self._results.items()}

    # Suite records

    async def store_suite(self, suite: SuiteRecord) -> None:
        """Persist a completed suite run, replacing one with the same name."""
        suite = suite.model_copy(update={"stored_at": self._clock()})
        self._suites[suite.name] = suite
        await self._write(self._suite_key(suite.name), suite.model_dump_json())
        log.info("Stored suite %s", suite.name)

    async def get_suite(self, name: str) -> SuiteRecord | None:
        """Return a suite record by name, loading it from storage if needed."""
        suite = self._suites.get(name)
        if suite is None:
            suite = await self._load(self._suite_key(name), SuiteRecord)
            if suite is None:
                return None
            self._suites[suite.name] = suite
        return suite

    async def get_all_suites(self) -> Sequence[SuiteRecord]:
        """Return every suite record, oldest run first."""
        for key in await self._keys(SUITE_KEY_PREFIX):
            name = key.removeprefix(self._prefix).removeprefix(SUITE_KEY_PREFIX)
            if name in self._suites:
                continue
            if (suite := await self._load(key, SuiteRecord)) is not None:
                self._suites[suite.name] = suite

        return sorted(self._suites.values(), key=lambda s: s.started_at)

    # Cleanup tasks

    def register_cleanup_task(self, task: CleanupTask) -> None:
        """Register a cleanup task, replacing one with the same id."""
        self._cleanup_tasks[task.id] = task
        log.info("Registered cleanup task %s: %s", task.id, task.description)

    @property
    def cleanup_tasks(self) -> Sequence[CleanupTask]:
        return list(self._cleanup_tasks.values())

    async def execute_cleanup_task(self, task_id: str) -> bool:
        """Run a single registered task.

        Returns:
            True if the task ran successfully, False if it is unknown or failed

        """
        task = self._cleanup_tasks.get(task_id)
        if task is None:
            return False
        return await self._run_cleanup_task(task)

    async def execute_all_cleanup_tasks(self) -> None:
        """Run every registered task in priority order, then clear the registry.

        A failing task does not stop the others. Tasks re-registered while the
        run is in progress stay registered.
        """
        tasks = sorted(
            self._cleanup_tasks.values(),
            key=lambda t: CLEANUP_PRIORITY_ORDER[t.priority],
        )
        log.info("Executing %d cleanup task(s)", len(tasks))

        for task in tasks:
            await self._run_cleanup_task(task)
            if self._cleanup_tasks.get(task.id) is task:
                del self._cleanup_tasks[task.id]

        log.info("Cleanup tasks completed")

    async def _run_cleanup_task(self, task: CleanupTask) -> bool:
        try:
            await task.action()
        except Exception as e:
            log.error("Cleanup task %s failed: %s", task.id, e, exc_info=e)
            return False
        log.info("Executed cleanup task %s", task.id)
        return True

    # Maintenance

    async def cleanup_old_data(
        self, max_age: timedelta, now: datetime | None = None
    ) -> int:
        """Remove entries created before ``now - max_age``.

        Stored entries whose timestamp is missing or unparsable are treated
        as old and removed. Naive timestamps are read as UTC.

        Returns:
            Number of removed entries

        """
        cutoff = as_utc(now or self._clock()) - max_age
        removed = 0

        for snapshot_id, snapshot in list(self._snapshots.items()):
            if snapshot.created_at < cutoff and await self.delete_snapshot(snapshot_id):
                removed += 1

        for suite, stored in list(self._results.items()):
            if stored.stored_at < cutoff:
                del self._results[suite]
                await self._delete(self._results_key(suite))
                removed += 1

        for name, record in list(self._suites.items()):
            if record.stored_at < cutoff:
                del self._suites[name]
                await self._delete(self._suite_key(name))
                removed += 1

        for key in await self._keys():
            if await self._is_old(key, cutoff):
                await self._delete(key)
                self._forget(key)
                removed += 1

        log.info("Cleaned up %d old data item(s)", removed)
        return removed

    async def clear_all_data(self) -> None:
        """Drop every snapshot, result set, suite record and cleanup task."""
        self._snapshots.clear()
        self._results.clear()
        self._suites.clear()
        self._cleanup_tasks.clear()
        for key in await self._keys():
            await self._delete(key)
        log.info("All test data cleared")

    async def get_data_statistics(self) -> DataStatistics:
        """Return counts and the storage footprint without side effects.

        Entries count once whether they are held in memory, stored durably
        or both.
        """
        snapshot_ids = set(self._snapshots)
        result_sets = set(self._results)
        suites = set(self._suites)
        storage_bytes = 0
        for key in await self._keys():
            name = key.removeprefix(self._prefix)
            if is_snapshot_id(name):
                snapshot_ids.add(name)
            elif name.startswith(RESULTS_KEY_PREFIX):
                result_sets.add(name.removeprefix(RESULTS_KEY_PREFIX))
            elif name.startswith(SUITE_KEY_PREFIX):
                suites.add(name.removeprefix(SUITE_KEY_PREFIX))

            value = await self._read(key)
            if value is not None:
                storage_bytes += len(value.encode("utf-8"))

        return DataStatistics(
            snapshots=len(snapshot_ids),
            result_sets=len(result_sets),
            suites=len(suites),
            cleanup_tasks=len(self._cleanup_tasks),
            storage_bytes=storage_bytes,
        )

    def export_data(self) -> str:
        """Serialize in-memory snapshots, result sets and suites to JSON."""
        export = DataExport(
            exported_at=self._clock(),
            snapshots=tuple(self._snapshots.values()),
            results=tuple(self._results.values()),
            suites=tuple(self._suites.values()),
        )
        return export.model_dump_json(indent=2)

    async def import_data(self, payload: str) -> bool:
        """Load data produced by :meth:`export_data`.

        Snapshots whose id lies outside the snapshot namespace are skipped.

        Returns:
            True on success, False if the payload is invalid

        """
        try:
            export = DataExport.model_validate_json(payload)
        except ValidationError as e:
            log.error("Failed to import test data: %s", e)
            return False

        snapshots = [s for s in export.snapshots if is_snapshot_id(s.id)]
        if len(snapshots) < len(export.snapshots):
            log.warning(
                "Skipped %d snapshot(s) with invalid ids",
                len(export.snapshots) - len(snapshots),
            )

        for snapshot in snapshots:
            self._snapshots[snapshot.id] = snapshot
            await self._write(
                self._snapshot_key(snapshot.id), snapshot.model_dump_json()
            )
        for stored in export.results:
            self._results[stored.suite] = stored
            await self._write(self._results_key(stored.suite), stored.model_dump_json())
        for suite in export.suites:
            self._suites[suite.name] = suite
            await self._write(self._suite_key(suite.name), suite.model_dump_json())

        log.info(
            "Imported %d snapshot(s), %d result set(s) and %d suite(s)",
            len(snapshots),
            len(export.results),
            len(export.suites),
        )
        return True

    # Helpers

    @staticmethod
    def _copy_payload(payload: Any) -> JsonValue:
        copied: JsonValue = json.loads(json.dumps(to_jsonable_python(payload)))
        return copied

    def _snapshot_key(self, snapshot_id: str) -> str:
        return f"{self._prefix}{snapshot_id}"

    def _results_key(self, suite: str) -> str:
        return f"{self._prefix}{RESULTS_KEY_PREFIX}{suite}"

    def _suite_key(self, name: str) -> str:
        return f"{self._prefix}{SUITE_KEY_PREFIX}{name}"

    def _forget(self, key: str) -> None:
        name = key.removeprefix(self._prefix)
        if is_snapshot_id(name):
            self._snapshots.pop(name, None)
        elif name.startswith(RESULTS_KEY_PREFIX):
            self._results.pop(name.removeprefix(RESULTS_KEY_PREFIX), None)
        elif name.startswith(SUITE_KEY_PREFIX):
            self._suites.pop(name.removeprefix(SUITE_KEY_PREFIX), None)

    async def _load[M: Model](self, key: str, model: type[M]) -> M | None:
        raw = await self._read(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            log.warning("Failed to load %s: %s", key, e)
            return None

    async def _is_old(self, key: str, cutoff: datetime) -> bool:
        raw = await self._read(key)
        if raw is None:
            return False
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return True
        if not isinstance(data, dict):
            return True

        value = next((data[f] for f in TIMESTAMP_FIELDS if data.get(f)), None)
        if not isinstance(value, str):
            return True
        try:
            timestamp = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return True
        return as_utc(timestamp) < cutoff

    async def _keys(self, kind: str = "") -> Sequence[str]:
        try:
            keys = await self._storage.keys()
        except Exception as e:
            log.warning("Failed to enumerate storage: %s", e)
            return []
        prefix = f"{self._prefix}{kind}"
        return [key for key in keys if key.startswith(prefix)]

    async def _read(self, key: str) -> str | None:
        try:
            return await self._storage.get(key)
        except Exception as e:
            log.warning("Failed to read %s from storage: %s", key, e)
            return None

    async def _write(self, key: str, value: str) -> None:
        try:
            await self._storage.set(key, value)
        except Exception as e:
            log.warning("Failed to persist %s: %s", key, e)

    async def _delete(self, key: str) -> None:
        try:
            await self._storage.remove(key)
        except Exception as e:
            log.warning("Failed to remove %s from storage: %s", key, e)


def is_snapshot_id(name: str) -> bool:
    """Return whether a name lies in the snapshot namespace."""
    return name.startswith(SNAPSHOT_ID_PREFIX) and len(name) > len(SNAPSHOT_ID_PREFIX)


def _created_at(snapshot: Snapshot) -> datetime:
    return snapshot.created_at
