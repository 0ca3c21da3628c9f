"""Turns a load pattern timeline into virtual user scale commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from echoload.patterns.stages import pattern_from_stages

if TYPE_CHECKING:
    from collections.abc import Iterator

    from echoload.dsl.options import RunOptions
    from echoload.patterns.base import LoadPattern

# Ticks closer together than this are the same instant.
_SAME_TICK_EPSILON = 1e-9


class ScaleDirection(Enum):
    """Direction of a virtual user scale event."""

    UP = auto()
    DOWN = auto()
    HOLD = auto()


@dataclass(frozen=True)
class ScaleCommand:
    """A request to adjust the number of active virtual users.

    Attributes:
        elapsed_seconds: Time offset from the run start.
        target_concurrency: Desired number of active virtual users.
        direction: Scaling up, down, or holding steady.
        delta: Absolute change from the previous command (always >= 0).
    """

    elapsed_seconds: float
    target_concurrency: int
    direction: ScaleDirection
    delta: int


class Scheduler:
    """Walks a pattern's timeline and emits one ScaleCommand per distinct tick.

    Chained stages meet at a shared instant: the end of one stage and the
    start of the next. Only the first command for an instant is emitted
    unless the later one changes the target.

    Args:
        pattern: The load pattern to follow.
        duration_seconds: Total run duration in seconds.
        tick_interval: Seconds between adjustments.
    """

    def __init__(
        self,
        pattern: LoadPattern,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> None:
        self.pattern = pattern
        self.duration_seconds = duration_seconds
        self.tick_interval = tick_interval

    @classmethod
    def from_options(cls, options: RunOptions, tick_interval: float = 1.0) -> Scheduler:
        """Build a scheduler that follows the ramp stages of *options*."""
        return cls(pattern_from_stages(options.stages), options.total_duration, tick_interval)

    def iter_commands(self) -> Iterator[ScaleCommand]:
        """Yield scale commands in time order, starting from zero users."""
        current = 0
        last_elapsed: float | None = None
        for elapsed, target in self.pattern.iter_concurrency(
            self.duration_seconds, self.tick_interval
        ):
            same_instant = (
                last_elapsed is not None and elapsed - last_elapsed < _SAME_TICK_EPSILON
            )
            if same_instant and target == current:
                continue

            if target > current:
                direction = ScaleDirection.UP
            elif target < current:
                direction = ScaleDirection.DOWN
            else:
                direction = ScaleDirection.HOLD

            yield ScaleCommand(
                elapsed_seconds=elapsed,
                target_concurrency=target,
                direction=direction,
                delta=abs(target - current),
            )
            current = target
            last_elapsed = elapsed
