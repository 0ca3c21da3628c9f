"""Virtual user load patterns.

All patterns implement :class:`LoadPattern` and yield
``(elapsed_seconds, target_users)`` tuples via :meth:`iter_concurrency`.
Ramp stages from run options are turned into a :class:`CompositePattern`
by :func:`pattern_from_stages`.
"""

from __future__ import annotations

from echoload.patterns.base import LoadPattern
from echoload.patterns.composite import CompositePattern
from echoload.patterns.constant import ConstantPattern
from echoload.patterns.ramp import RampPattern
from echoload.patterns.stages import pattern_from_stages

__all__ = [
    "CompositePattern",
    "ConstantPattern",
    "LoadPattern",
    "RampPattern",
    "pattern_from_stages",
]
