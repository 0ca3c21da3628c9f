"""Composite pattern: chain patterns one after another."""

from __future__ import annotations

from typing import TYPE_CHECKING

from echoload._internal.errors import ConfigError
from echoload.patterns.base import LoadPattern, _validate_positive

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class CompositePattern(LoadPattern):
    """Run several patterns back to back as one timeline.

    Each entry in *phases* is a ``(pattern, duration)`` tuple. Elapsed time
    is continuous across phases, so the boundary between two phases yields
    two ticks at the same offset: the end of one and the start of the next.

    Args:
        phases: ``(LoadPattern, duration_seconds)`` tuples. At least one;
            every duration must be > 0.

    Raises:
        ConfigError: If *phases* is empty or any duration is not positive.

    Example::

        pattern = CompositePattern(
            [
                (RampPattern(start_users=0, end_users=15, ramp_duration=30.0), 30.0),
                (ConstantPattern(users=15), 60.0),
                (RampPattern(start_users=15, end_users=0, ramp_duration=20.0), 20.0),
            ]
        )
    """

    def __init__(self, phases: Sequence[tuple[LoadPattern, float]]) -> None:
        if not phases:
            msg = "phases must contain at least one (pattern, duration) entry"
            raise ConfigError(msg)
        for i, (_pattern, duration) in enumerate(phases):
            _validate_positive(duration, f"phases[{i}] duration")
        self._phases = list(phases)

    @property
    def total_duration(self) -> float:
        """Sum of all phase durations in seconds."""
        return sum(duration for _, duration in self._phases)

    def iter_concurrency(
        self,
        duration_seconds: float,  # noqa: ARG002
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target_users)`` across all chained phases.

        *duration_seconds* is ignored; the timeline length is the sum of
        the phase durations.
        """
        _validate_positive(tick_interval, "tick_interval")
        offset = 0.0
        for pattern, phase_duration in self._phases:
            for local_elapsed, users in pattern.iter_concurrency(
                duration_seconds=phase_duration,
                tick_interval=tick_interval,
            ):
                yield (offset + local_elapsed, users)
            offset += phase_duration

    def describe(self) -> str:
        phase_descs = [
            f"  {i + 1}. {p.describe()} ({d:g}s)" for i, (p, d) in enumerate(self._phases)
        ]
        header = f"Composite: {len(self._phases)} phases, {self.total_duration:g}s total"
        return "\n".join([header, *phase_descs])
