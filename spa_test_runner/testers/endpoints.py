"""Built-in tester checking that backend API endpoints respond."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

import aiohttp

from spa_test_runner.context import RunContext
from spa_test_runner.models.config import EndpointConfig, RunConfig
from spa_test_runner.models.result import Phase, Result, TestCategory, TestStatus
from spa_test_runner.testers.base import Tester

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class EndpointTester(Tester):
    """Request each configured endpoint and check for a JSON response."""

    name: str = "API Endpoints"
    phase: Phase = "connectivity"
    category: TestCategory = "integration"
    requires_network: bool = True
    endpoints: Sequence[EndpointConfig] = ()

    async def run(self, context: RunContext) -> Sequence[Result]:
        return [await self._check(context, endpoint) for endpoint in self.endpoints]

    async def _check(self, context: RunContext, endpoint: EndpointConfig) -> Result:
        name = f"API - {endpoint.name}"
        start = time.perf_counter()
        timeout = aiohttp.ClientTimeout(total=endpoint.timeout)
        url = context.config.api_endpoint(endpoint.path)

        try:
            async with context.http.get(url, timeout=timeout) as response:
                elapsed = time.perf_counter() - start
                if response.status >= 400:
                    return self._result(
                        name,
                        "warning",
                        f"{endpoint.name} error: HTTP {response.status} "
                        f"in {elapsed * 1000:.2f}ms",
                        elapsed,
                    )
                try:
                    await response.json(content_type=None)
                except ValueError:
                    return self._result(
                        name,
                        "warning",
                        f"{endpoint.name} responding but invalid JSON "
                        f"({response.status}) in {elapsed * 1000:.2f}ms",
                        elapsed,
                    )
                return self._result(
                    name,
                    "passed",
                    f"{endpoint.name} responding with valid JSON "
                    f"({response.status}) in {elapsed * 1000:.2f}ms",
                    elapsed,
                )
        except TimeoutError:
            return self._result(
                name,
                "warning",
                f"{endpoint.name} timeout after {endpoint.timeout}s",
                time.perf_counter() - start,
            )
        except aiohttp.ClientError as e:
            log.info("Endpoint %s unreachable: %s", url, e)
            return self._result(
                name,
                "warning",
                f"{endpoint.name} not available (expected if backend offline)",
                time.perf_counter() - start,
                errors=(str(e),),
            )

    def _result(
        self,
        name: str,
        status: TestStatus,
        detail: str,
        duration: float,
        errors: tuple[str, ...] = (),
    ) -> Result:
        return Result(
            name=name,
            status=status,
            category=self.category,
            detail=detail,
            duration=duration,
            errors=errors,
        )


def endpoint_tester_factory(config: RunConfig) -> EndpointTester:
    """Build the endpoint tester for a run configuration."""
    return EndpointTester(endpoints=tuple(config.endpoints))
