"""Scenario definition and the per-iteration context handed to it."""

from __future__ import annotations

import asyncio
import inspect
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from echoload._internal.errors import ScenarioError
from echoload.dsl.checks import CheckResult, check

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from echoload._internal.types import CheckPredicate
    from echoload.dsl.http_client import HttpClient, Response
    from echoload.dsl.options import RunOptions


class IterationFunc(Protocol):
    """Protocol for the coroutine a virtual user runs once per loop."""

    async def __call__(self, ctx: IterationContext) -> None:
        """Run one iteration."""
        ...


def _discard_check(result: CheckResult) -> None:
    """Default check recorder."""


@dataclass
class IterationContext:
    """Everything a single iteration may touch.

    Attributes:
        client: The virtual user's own HTTP client.
        rng: Non-cryptographic random source shared by the session.
        user_id: Identifier of the virtual user running the iteration.
        iteration: Zero-based iteration counter for this virtual user.
        check_recorder: Receives one ``CheckResult`` per evaluated check.
    """

    client: HttpClient
    rng: random.Random
    user_id: int = 0
    iteration: int = 0
    check_recorder: Callable[[CheckResult], None] = field(default=_discard_check)

    def check(self, response: Response, predicates: Mapping[str, CheckPredicate]) -> bool:
        """Evaluate and record named checks against *response*.

        Args:
            response: Response to assert on.
            predicates: Check name -> predicate.

        Returns:
            True if every check passed.
        """
        return check(response, predicates, self.check_recorder)

    async def sleep(self, seconds: float) -> None:
        """Suspend this virtual user for *seconds* of wall-clock time."""
        await asyncio.sleep(seconds)


@dataclass(frozen=True)
class Scenario:
    """Complete definition of a load test scenario.

    Attributes:
        name: Human-readable name for this scenario.
        options: Stages and thresholds for the run.
        iteration: Coroutine function executed repeatedly by every
            virtual user.
        request_timeout: Per-request timeout in seconds for the clients
            created for this scenario.
    """

    name: str
    options: RunOptions
    iteration: IterationFunc
    request_timeout: float = 60.0

    def __post_init__(self) -> None:
        if not inspect.iscoroutinefunction(self.iteration):
            msg = f"Scenario {self.name!r}: iteration must be an async function"
            raise ScenarioError(msg)
