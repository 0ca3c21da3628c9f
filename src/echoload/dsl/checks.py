"""Named per-iteration assertions recorded as pass/fail metrics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from echoload._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from echoload._internal.types import CheckPredicate
    from echoload.dsl.http_client import Response

logger = get_logger("dsl.checks")


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single named check.

    Attributes:
        name: Check name, e.g. ``"status was 200"``.
        passed: Whether the predicate returned a truthy value.
    """

    name: str
    passed: bool


def _noop_recorder(result: CheckResult) -> None:
    """Default recorder that discards results."""


def check(
    response: Response,
    predicates: Mapping[str, CheckPredicate],
    recorder: Callable[[CheckResult], None] | None = None,
) -> bool:
    """Evaluate every predicate against *response* and record each outcome.

    All predicates run, in mapping order, whatever the earlier ones returned.
    A predicate that raises counts as a failed check; the exception is
    logged and never propagates to the caller.

    Args:
        response: The response to assert on.
        predicates: Check name -> predicate.
        recorder: Callback receiving one ``CheckResult`` per predicate.

    Returns:
        True if every check passed.
    """
    record = recorder or _noop_recorder
    all_passed = True
    for name, predicate in predicates.items():
        try:
            passed = bool(predicate(response))
        except Exception:
            logger.debug("Check %r raised", name, exc_info=True)
            passed = False
        record(CheckResult(name=name, passed=passed))
        all_passed = all_passed and passed
    return all_passed
