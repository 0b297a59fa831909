"""CLI entry point for the comprehensive test runner."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from spa_test_runner.bootstrapper import InfrastructureBootstrapper
from spa_test_runner.config_loader import load_run_config
from spa_test_runner.environment import detect_environment
from spa_test_runner.models.config import RunConfig
from spa_test_runner.models.report import ReportAttachments, evidence_from_results
from spa_test_runner.models.result import Result
from spa_test_runner.orchestrator import PhaseOrchestrator, RunOutcome
from spa_test_runner.reporting import (
    FILE_EXTENSIONS,
    REPORT_FORMATS,
    ReportFormat,
    render,
)
from spa_test_runner.snapshot_store import SnapshotStore
from spa_test_runner.storage.factory import create_storage
from spa_test_runner.testers.loading import load_testers

DEFAULT_TESTERS = ("endpoints",)

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
    "warning": "⚠️",
    "skipped": "⏭️",
}


def log_results_summary(log: logging.Logger, outcome: RunOutcome) -> None:
    """Log a formatted summary of the run results."""
    log.info("=" * 80)
    log.info("Test Results Summary: %s", outcome.suite_name)
    log.info("=" * 80)

    for result in outcome.results:
        symbol = STATUS_SYMBOLS.get(result.status, "?")
        log.info(
            "%s [%s] %s: %s (%.2fs)",
            symbol,
            result.phase or "-",
            result.name,
            result.status,
            result.duration,
        )
        if result.status in {"failed", "warning"}:
            log.info("  Detail: %s", result.detail)

    summary = outcome.summary
    log.info(
        "Total: %d, passed: %d, failed: %d, warnings: %d, skipped: %d (%.1f%%)",
        summary.total,
        summary.passed,
        summary.failed,
        summary.warning,
        summary.skipped,
        summary.pass_rate,
    )
    log.info("Integration status: %s", outcome.classification.status)


async def build_config(
    config_path: Path | None, overrides: Mapping[str, Any]
) -> RunConfig:
    """Load the configuration file, if any, and apply CLI overrides."""
    config = await load_run_config(config_path) if config_path else RunConfig()

    updates = {k: v for k, v in overrides.items() if v is not None}
    storage_dir = updates.pop("storage_dir", None)
    if storage_dir is not None:
        updates["storage"] = config.storage.model_copy(
            update={"backend": "filesystem", "path": storage_dir}
        )
    return config.model_copy(update=updates)


async def run(
    config: RunConfig,
    output_dir: Path | None = None,
    formats: Sequence[ReportFormat] = (),
    cleanup: bool = False,
) -> int:
    """Run the comprehensive suite and return exit code."""
    log = logging.getLogger("spa_test_runner")

    store = SnapshotStore(
        create_storage(config.storage), key_prefix=config.storage.key_prefix
    )
    bootstrapper = InfrastructureBootstrapper(store=store, config=config)

    tester_keys = config.testers or DEFAULT_TESTERS
    log.info("Loading testers: %s", ", ".join(tester_keys))
    orchestrator = PhaseOrchestrator(
        bootstrapper=bootstrapper,
        store=store,
        testers=load_testers(tester_keys, config),
    )

    outcome = await orchestrator.run_comprehensive()
    log_results_summary(log, outcome)

    print(report(outcome, "structured"))

    environment = detect_environment(config.base_url)
    for report_format in formats:
        content = report(outcome, report_format)
        if output_dir is not None:
            path = write_report(output_dir, outcome.suite_name, report_format, content)
            log.info("Wrote %s report to %s", report_format, path)
        await store.create_snapshot(
            f"report_{report_format}",
            {"format": report_format, "content": content},
            environment,
        )

    if cleanup:
        await bootstrapper.cleanup()

    return 1 if has_failures(outcome.results) else 0


def report(outcome: RunOutcome, report_format: ReportFormat) -> str:
    return render(
        outcome.results,
        outcome.summary,
        report_format,
        classification=outcome.classification,
        generated_at=outcome.finished_at,
        suite=outcome.suite_name,
        attachments=ReportAttachments(evidence=evidence_from_results(outcome.results)),
    )


def write_report(
    output_dir: Path, suite_name: str, report_format: ReportFormat, content: str
) -> Path:
    """Write a rendered report and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    slug = "-".join(suite_name.lower().split()) or "report"
    path = output_dir / f"{slug}-{report_format}.{FILE_EXTENSIONS[report_format]}"
    path.write_text(content, encoding="utf-8")
    return path


def has_failures(results: Sequence[Result]) -> bool:
    return any(result.status == "failed" for result in results)


async def _main(args: argparse.Namespace) -> int:
    config = await build_config(
        args.config,
        {
            "api_url": args.api_url,
            "base_url": args.base_url,
            "testers": args.tester,
            "storage_dir": args.storage_dir,
        },
    )
    return await run(
        config,
        output_dir=args.output_dir,
        formats=args.format or (),
        cleanup=args.cleanup,
    )


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run comprehensive tests against a single-page application"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML run configuration",
    )
    parser.add_argument("--api-url", help="Base URL of the backend API")
    parser.add_argument("--base-url", help="URL of the application under test")
    parser.add_argument(
        "--tester",
        action="append",
        help="Tester key to load (repeatable, defaults to the config file)",
    )
    parser.add_argument(
        "--storage-dir",
        type=Path,
        help="Persist snapshots and results in this directory",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory to write rendered reports to",
    )
    parser.add_argument(
        "--format",
        action="append",
        choices=REPORT_FORMATS,
        help="Report format to render (repeatable)",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Run registered cleanup tasks after the run",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(_main(args))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
