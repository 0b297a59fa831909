"""Configuration for a comprehensive test run."""

from collections.abc import Sequence
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from yarl import URL

from spa_test_runner.models.base import Model


class EndpointConfig(Model):
    """API endpoint checked by the built-in endpoint tester."""

    name: str
    path: str
    timeout: float = Field(default=5.0, gt=0, description="Seconds to wait")


class StorageConfig(BaseModel):
    """Durable storage used by the snapshot store."""

    backend: Literal["memory", "filesystem"] = "memory"
    path: Path | None = Field(
        default=None, description="Directory for the filesystem backend"
    )
    key_prefix: str = "spa_test_runner_"
    # Only enforced by the memory backend
    max_bytes: int | None = None


DEFAULT_ENDPOINTS: Sequence[EndpointConfig] = (
    EndpointConfig(name="Health Check", path="/health"),
    EndpointConfig(name="Market Stats", path="/api/v1/market/stats"),
    EndpointConfig(name="TVL History", path="/api/v1/market/tvl-history"),
)


class RunConfig(BaseModel):
    """Configuration for a comprehensive test run."""

    suite_name: str = "Comprehensive Test Suite"
    environment: Literal["development", "staging", "production"] = "development"
    base_url: str = "http://localhost:5173"
    api_url: str = "http://localhost:3001"
    health_path: str = "/health"
    endpoints: Sequence[EndpointConfig] = Field(
        default_factory=lambda: list(DEFAULT_ENDPOINTS)
    )
    tester_timeout: float = Field(default=30.0, gt=0)
    probe_timeout: float = Field(default=5.0, gt=0)
    settle_delay: float = Field(default=0.0, ge=0)
    screenshot_on_failure: bool = True
    testers: Sequence[str] = Field(
        default_factory=list, description="Entry point keys of testers to load"
    )
    storage: StorageConfig = Field(default_factory=StorageConfig)
    max_data_age: float = Field(
        default=24 * 60 * 60, gt=0, description="Retention of stored data in seconds"
    )

    def api_endpoint(self, path: str) -> URL:
        """Resolve a path below ``api_url``, keeping any path prefix it has."""
        relative = URL(path)
        url = URL(self.api_url) / relative.path.lstrip("/")
        if relative.query_string:
            url = url.with_query(relative.query_string)
        return url
