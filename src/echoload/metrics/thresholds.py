"""Run-level pass/fail assertions over aggregated metrics.

A threshold expression has the form ``<aggregation> <operator> <number>``,
for example ``p(99) < 3000`` or ``rate >= 0.95``. Expressions are parsed
when run options are built so that a typo fails the run before any virtual
user starts; they are evaluated once, after the run completes.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from echoload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from echoload._internal.types import Thresholds


class MetricKind(Enum):
    """How a built-in metric aggregates its samples."""

    TREND = auto()
    RATE = auto()
    COUNTER = auto()


METRIC_KINDS: dict[str, MetricKind] = {
    "http_req_duration": MetricKind.TREND,
    "http_req_failed": MetricKind.RATE,
    "checks": MetricKind.RATE,
    "http_reqs": MetricKind.COUNTER,
    "iterations": MetricKind.COUNTER,
}

_KIND_AGGREGATIONS: dict[MetricKind, frozenset[str]] = {
    MetricKind.TREND: frozenset({"avg", "min", "max", "med", "p"}),
    MetricKind.RATE: frozenset({"rate"}),
    MetricKind.COUNTER: frozenset({"count", "rate"}),
}

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

_EXPRESSION_RE = re.compile(
    r"^\s*(?P<agg>avg|min|max|med|count|rate|p\(\s*(?P<pct>\d+(?:\.\d+)?)\s*\))"
    r"\s*(?P<op><=|>=|==|!=|<|>)"
    r"\s*(?P<value>-?\d+(?:\.\d+)?)\s*$"
)


@dataclass(frozen=True)
class Threshold:
    """A parsed threshold expression bound to a metric.

    Attributes:
        metric: Metric name, e.g. ``"http_req_duration"``.
        source: The original expression text.
        aggregation: ``avg``, ``min``, ``max``, ``med``, ``p``, ``count``
            or ``rate``.
        percentile: Percentile for ``p(N)`` aggregations, else None.
        op: Comparison operator text.
        value: Right-hand side of the comparison.
    """

    metric: str
    source: str
    aggregation: str
    percentile: float | None
    op: str
    value: float

    def holds_for(self, actual: float) -> bool:
        """Return True if *actual* satisfies this threshold."""
        return _OPERATORS[self.op](actual, self.value)


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of evaluating one threshold at the end of a run.

    Attributes:
        threshold: The evaluated threshold.
        actual: Observed aggregated value.
        passed: Whether the threshold held.
    """

    threshold: Threshold
    actual: float
    passed: bool


def parse_threshold(metric: str, expression: str) -> Threshold:
    """Parse a single threshold expression for *metric*.

    Args:
        metric: Name of a built-in metric.
        expression: Expression such as ``"p(99) < 3000"``.

    Returns:
        The parsed Threshold.

    Raises:
        ConfigError: If the metric is unknown, the expression is malformed,
            or the aggregation does not apply to the metric's kind.
    """
    kind = METRIC_KINDS.get(metric)
    if kind is None:
        known = ", ".join(sorted(METRIC_KINDS))
        msg = f"Unknown threshold metric {metric!r}. Known metrics: {known}"
        raise ConfigError(msg)

    match = _EXPRESSION_RE.match(expression)
    if match is None:
        msg = f"Invalid threshold expression for {metric}: {expression!r}"
        raise ConfigError(msg)

    pct_text = match.group("pct")
    aggregation = "p" if pct_text is not None else match.group("agg")
    if aggregation not in _KIND_AGGREGATIONS[kind]:
        msg = (
            f"Aggregation {match.group('agg')!r} is not valid for {kind.name.lower()} "
            f"metric {metric!r}"
        )
        raise ConfigError(msg)

    percentile: float | None = None
    if pct_text is not None:
        percentile = float(pct_text)
        if not 0.0 <= percentile <= 100.0:
            msg = f"Percentile must be between 0 and 100, got {percentile} in {expression!r}"
            raise ConfigError(msg)

    return Threshold(
        metric=metric,
        source=expression.strip(),
        aggregation=aggregation,
        percentile=percentile,
        op=match.group("op"),
        value=float(match.group("value")),
    )


def parse_thresholds(thresholds: Thresholds) -> list[Threshold]:
    """Parse every expression of a ``metric -> [expressions]`` mapping.

    Args:
        thresholds: Mapping of metric name to expression list.

    Returns:
        Parsed thresholds in declaration order.

    Raises:
        ConfigError: If any expression is invalid.
    """
    if isinstance(thresholds, str) or not hasattr(thresholds, "items"):
        msg = "thresholds must map metric names to lists of expressions"
        raise ConfigError(msg)
    parsed: list[Threshold] = []
    for metric, expressions in thresholds.items():
        if isinstance(expressions, str):
            msg = f"Thresholds for {metric!r} must be a list of expressions, got a string"
            raise ConfigError(msg)
        parsed.extend(parse_threshold(metric, expression) for expression in expressions)
    return parsed


def evaluate_thresholds(
    thresholds: Iterable[Threshold],
    resolve: Callable[[str, str, float | None], float],
) -> list[ThresholdResult]:
    """Evaluate thresholds against observed metric values.

    Args:
        thresholds: Parsed thresholds.
        resolve: Callable returning the observed value for
            ``(metric, aggregation, percentile)``.

    Returns:
        One ThresholdResult per threshold, in input order.
    """
    results: list[ThresholdResult] = []
    for threshold in thresholds:
        actual = resolve(threshold.metric, threshold.aggregation, threshold.percentile)
        results.append(
            ThresholdResult(
                threshold=threshold,
                actual=actual,
                passed=threshold.holds_for(actual),
            )
        )
    return results
