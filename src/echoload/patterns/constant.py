"""Constant pattern: hold a fixed number of virtual users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from echoload.patterns.base import (
    LoadPattern,
    _iter_tick_offsets,
    _validate_non_negative,
    _validate_positive,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


class ConstantPattern(LoadPattern):
    """Hold the same virtual user count for the whole duration.

    A count of zero is allowed so a stage can hold the run idle.

    Args:
        users: Number of concurrent virtual users. Must be >= 0.

    Raises:
        ConfigError: If *users* is negative.
    """

    def __init__(self, users: int) -> None:
        _validate_non_negative(users, "users")
        self._users = users

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, users)`` at every tick."""
        _validate_positive(duration_seconds, "duration_seconds")
        _validate_positive(tick_interval, "tick_interval")
        for elapsed in _iter_tick_offsets(duration_seconds, tick_interval):
            yield (elapsed, self._users)

    def describe(self) -> str:
        return f"Constant: {self._users} users"
