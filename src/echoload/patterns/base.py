"""Abstract base class for virtual user load patterns."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from echoload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator

# Absorbs float drift in tick * tick_interval.
_TICK_EPSILON = 1e-9


class LoadPattern(ABC):
    """How the target number of virtual users changes over time.

    Subclasses yield ``(elapsed_seconds, target_users)`` tuples at a fixed
    tick interval; the scheduler turns them into scale commands.

    Example::

        pattern = RampPattern(start_users=0, end_users=300, ramp_duration=15.0)
        for elapsed, users in pattern.iter_concurrency(duration_seconds=15.0):
            print(f"t={elapsed:.1f}s -> {users} users")
    """

    @abstractmethod
    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed_seconds, target_users)`` at each tick.

        Args:
            duration_seconds: Total duration to generate ticks for.
            tick_interval: Seconds between ticks. Defaults to 1.0.

        Yields:
            Time offset from the start and the number of virtual users
            that should be active at that moment.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description for logs and reports."""


def _validate_positive(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is not strictly positive."""
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigError(msg)


def _validate_non_negative(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is negative."""
    if value < 0:
        msg = f"{name} must be non-negative, got {value}"
        raise ConfigError(msg)


def _iter_tick_offsets(duration_seconds: float, tick_interval: float) -> Iterator[float]:
    """Yield tick offsets from ``0`` through *duration_seconds* inclusive.

    When *tick_interval* does not divide the duration, a final offset at
    exactly *duration_seconds* closes the timeline.
    """
    tick = 0
    elapsed = 0.0
    while elapsed <= duration_seconds + _TICK_EPSILON:
        yield elapsed
        tick += 1
        elapsed = tick * tick_interval
    if (tick - 1) * tick_interval < duration_seconds - _TICK_EPSILON:
        yield duration_seconds
