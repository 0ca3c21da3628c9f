"""Translate declarative ramp stages into a load pattern."""

from __future__ import annotations

from typing import TYPE_CHECKING

from echoload._internal.errors import ScenarioError
from echoload.patterns.composite import CompositePattern
from echoload.patterns.constant import ConstantPattern
from echoload.patterns.ramp import RampPattern

if TYPE_CHECKING:
    from collections.abc import Sequence

    from echoload.dsl.options import Stage
    from echoload.patterns.base import LoadPattern


def pattern_from_stages(stages: Sequence[Stage]) -> CompositePattern:
    """Build a pattern where each stage ramps from the previous target.

    The first stage starts from zero users. A stage whose target equals the
    previous one holds that count for its duration.

    Args:
        stages: Ordered ramp stages.

    Returns:
        A CompositePattern with one phase per stage.

    Raises:
        ScenarioError: If *stages* is empty.
    """
    if not stages:
        msg = "At least one stage is required"
        raise ScenarioError(msg)

    phases: list[tuple[LoadPattern, float]] = []
    current = 0
    for stage in stages:
        seconds = stage.duration_seconds
        if stage.target == current:
            phase: LoadPattern = ConstantPattern(users=current)
        else:
            phase = RampPattern(start_users=current, end_users=stage.target, ramp_duration=seconds)
        phases.append((phase, seconds))
        current = stage.target
    return CompositePattern(phases)
