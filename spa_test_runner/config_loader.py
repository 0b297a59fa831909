"""Load run configuration from YAML files."""

import asyncio
from pathlib import Path

import yaml
from pydantic import ValidationError

from spa_test_runner.models.config import RunConfig


async def load_run_config(path: Path) -> RunConfig:
    """Load and validate a run configuration file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Parsed run configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, not valid YAML or fails validation

    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = await asyncio.to_thread(path.read_text)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {path}")

    if not isinstance(data, dict):
        raise ValueError(f"Invalid run config schema in {path}: expected a mapping")

    try:
        return RunConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid run config schema in {path}: {e}") from e
