"""Detect the environment a run executes in."""

import platform
import socket

from spa_test_runner.models.snapshot import EnvironmentInfo


def detect_environment(target_url: str | None = None) -> EnvironmentInfo:
    """Describe the current machine and the application under test."""
    return EnvironmentInfo(
        os=platform.system() or "unknown",
        os_release=platform.release() or "unknown",
        python_version=platform.python_version(),
        machine=platform.machine() or "unknown",
        hostname=socket.gethostname(),
        target_url=target_url,
    )
