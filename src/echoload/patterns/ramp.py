"""Ramp pattern: linear interpolation between two virtual user counts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from echoload._internal.errors import ConfigError
from echoload.patterns.base import (
    LoadPattern,
    _iter_tick_offsets,
    _validate_non_negative,
    _validate_positive,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


class RampPattern(LoadPattern):
    """Linearly drive the user count from *start_users* to *end_users*.

    Between ``0`` and ``ramp_duration`` the count moves linearly; afterwards
    it holds at *end_users* for the rest of *duration_seconds*. Ramping down
    (``end_users < start_users``) is allowed.

    Args:
        start_users: Users at ``t=0``. Must be >= 0.
        end_users: Users at ``t=ramp_duration``. Must be >= 0.
        ramp_duration: Seconds over which the ramp occurs. Must be > 0.

    Raises:
        ConfigError: If any argument is out of range or the two counts
            are equal.

    Example::

        pattern = RampPattern(start_users=0, end_users=300, ramp_duration=15.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=15.0))
        assert ticks[0][1] == 0
        assert ticks[15][1] == 300
    """

    def __init__(
        self,
        start_users: int,
        end_users: int,
        ramp_duration: float,
    ) -> None:
        _validate_non_negative(start_users, "start_users")
        _validate_non_negative(end_users, "end_users")
        _validate_positive(ramp_duration, "ramp_duration")
        if start_users == end_users:
            msg = "start_users and end_users must differ; use ConstantPattern to hold"
            raise ConfigError(msg)
        self._start_users = start_users
        self._end_users = end_users
        self._ramp_duration = ramp_duration

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target_users)`` with linear interpolation.

        Args:
            duration_seconds: Total duration to generate ticks for.
            tick_interval: Seconds between ticks.

        Yields:
            ``(elapsed_seconds, target_users)`` tuples.
        """
        _validate_positive(duration_seconds, "duration_seconds")
        _validate_positive(tick_interval, "tick_interval")
        delta = self._end_users - self._start_users
        for elapsed in _iter_tick_offsets(duration_seconds, tick_interval):
            if elapsed >= self._ramp_duration:
                users = self._end_users
            else:
                users = round(self._start_users + delta * (elapsed / self._ramp_duration))
            yield (elapsed, max(users, 0))

    def describe(self) -> str:
        return f"Ramp: {self._start_users} -> {self._end_users} users over {self._ramp_duration:g}s"
