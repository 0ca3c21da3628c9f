"""Run options: ramp stages and thresholds read once before scheduling."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from echoload._internal.errors import ConfigError, ScenarioError
from echoload.metrics.thresholds import parse_thresholds

if TYPE_CHECKING:
    from collections.abc import Mapping

    from echoload.metrics.thresholds import Threshold

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """Convert a duration string such as ``"15s"`` or ``"1m30s"`` to seconds.

    Args:
        text: One or more ``<number><unit>`` parts, unit in ms, s, m, h.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the string is empty or not a valid duration.
    """
    stripped = text.strip()
    position = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(stripped):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if not stripped or position != len(stripped):
        msg = f"Invalid duration {text!r}; expected e.g. '15s', '1m', '1m30s'"
        raise ConfigError(msg)
    return total


@dataclass(frozen=True)
class Stage:
    """One ramp stage: drive the virtual user count to *target* over *duration*.

    Attributes:
        duration: Stage length as a duration string, e.g. ``"15s"``.
        target: Virtual user count reached at the end of the stage.
    """

    duration: str
    target: int

    def __post_init__(self) -> None:
        if self.target < 0:
            msg = f"Stage target must be >= 0, got {self.target}"
            raise ConfigError(msg)
        if self.duration_seconds <= 0:
            msg = f"Stage duration must be positive, got {self.duration!r}"
            raise ConfigError(msg)

    @property
    def duration_seconds(self) -> float:
        """Stage length in seconds."""
        return parse_duration(self.duration)


@dataclass(frozen=True)
class RunOptions:
    """Static run configuration consumed by the engine before it starts.

    Attributes:
        stages: Ordered ramp stages. The first stage ramps up from zero.
        thresholds: Metric name -> threshold expressions, evaluated over
            the whole run.
    """

    stages: tuple[Stage, ...]
    thresholds: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.stages:
            msg = "Run options need at least one stage"
            raise ScenarioError(msg)
        # Fail at build time rather than after the run
        parse_thresholds(self.thresholds)
        object.__setattr__(self, "stages", tuple(self.stages))
        object.__setattr__(
            self,
            "thresholds",
            MappingProxyType({k: tuple(v) for k, v in self.thresholds.items()}),
        )

    @property
    def total_duration(self) -> float:
        """Sum of all stage durations in seconds."""
        return sum(stage.duration_seconds for stage in self.stages)

    @property
    def max_target(self) -> int:
        """Highest virtual user count any stage reaches."""
        return max(stage.target for stage in self.stages)

    def parsed_thresholds(self) -> list[Threshold]:
        """Return the thresholds as parsed ``Threshold`` objects."""
        return parse_thresholds(self.thresholds)

    def describe(self) -> str:
        """Return a one-line summary of the stages."""
        parts = [f"{stage.duration}->{stage.target}" for stage in self.stages]
        return f"Stages: {', '.join(parts)} ({self.total_duration:g}s total)"
