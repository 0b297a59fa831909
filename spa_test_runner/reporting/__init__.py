"""Report synthesis in narrative, tabular and structured formats."""

from spa_test_runner.reporting.synthesizer import (
    FILE_EXTENSIONS,
    REPORT_FORMATS,
    ReportFormat,
    ReportSynthesizer,
    render,
)

__all__ = [
    "FILE_EXTENSIONS",
    "REPORT_FORMATS",
    "ReportFormat",
    "ReportSynthesizer",
    "render",
]
