"""Abstract base class for pluggable testers."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from spa_test_runner.context import RunContext
from spa_test_runner.models.result import Phase, Result, TestCategory


@dataclass(frozen=True, kw_only=True)
class Tester(ABC):
    """A module that inspects the running application and emits results.

    Testers declare the phase they belong to. The orchestrator may run
    several testers of the same phase concurrently, so implementations must
    not rely on ordering relative to each other.
    """

    __test__ = False

    name: str
    phase: Phase
    category: TestCategory = "ui"
    requires_network: bool = False

    @abstractmethod
    async def run(self, context: RunContext) -> Sequence[Result]:
        """Run all checks and return their results.

        Args:
            context: Context of the current run

        Returns:
            Results in the order the checks were performed

        """


@dataclass(frozen=True, kw_only=True)
class FunctionTester(Tester):
    """Tester backed by a plain coroutine function."""

    func: Callable[[RunContext], Awaitable[Sequence[Result]]] = field(repr=False)

    async def run(self, context: RunContext) -> Sequence[Result]:
        return await self.func(context)


def tester(
    *,
    phase: Phase,
    name: str | None = None,
    category: TestCategory = "ui",
    requires_network: bool = False,
) -> Callable[[Callable[[RunContext], Awaitable[Sequence[Result]]]], FunctionTester]:
    """Turn a coroutine function into a :class:`FunctionTester`."""

    def decorate(
        func: Callable[[RunContext], Awaitable[Sequence[Result]]],
    ) -> FunctionTester:
        return FunctionTester(
            name=name or func.__name__,
            phase=phase,
            category=category,
            requires_network=requires_network,
            func=func,
        )

    return decorate
