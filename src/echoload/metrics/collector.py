"""In-memory metric collection for a test session."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import TYPE_CHECKING

import numpy as np

from echoload._internal.errors import ConfigError
from echoload._internal.logging import get_logger
from echoload.metrics.histogram import HdrHistogramWrapper
from echoload.metrics.models import CheckTally, MetricSnapshot

if TYPE_CHECKING:
    from echoload.dsl.checks import CheckResult
    from echoload.dsl.http_client import RequestMetric

logger = get_logger("metrics.collector")

_TICK_PERCENTILES = (50.0, 90.0, 95.0, 99.0)
_TREND_AGGREGATIONS = frozenset({"avg", "min", "max", "med", "p"})


def _compute_percentiles(
    latencies: list[float],
) -> tuple[float, float, float, float, float, float, float]:
    """Compute latency statistics for one interval.

    Args:
        latencies: Latency values in milliseconds.

    Returns:
        Tuple of (min, max, avg, p50, p90, p95, p99).
    """
    if not latencies:
        return (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    arr = np.array(latencies, dtype=np.float64)
    p50, p90, p95, p99 = np.percentile(arr, _TICK_PERCENTILES)
    return (
        float(np.min(arr)),
        float(np.max(arr)),
        float(np.mean(arr)),
        float(p50),
        float(p90),
        float(p95),
        float(p99),
    )


def _trend_value(latencies: list[float], aggregation: str, percentile: float | None) -> float:
    """Aggregate exact latencies the way thresholds compare them.

    Percentiles interpolate linearly between the recorded durations, so a
    run where every request took 2999 ms has p(99) == 2999.
    """
    if not latencies:
        return 0.0
    arr = np.array(latencies, dtype=np.float64)
    if aggregation == "avg":
        return float(np.mean(arr))
    if aggregation == "min":
        return float(np.min(arr))
    if aggregation == "max":
        return float(np.max(arr))
    if aggregation == "med":
        return float(np.percentile(arr, 50.0))
    return float(np.percentile(arr, percentile if percentile is not None else 50.0))


class MetricCollector:
    """Collects request metrics, check results and iteration counts.

    ``record`` is passed to every ``HttpClient`` as its metric callback and
    ``record_check`` to every iteration as its check recorder. ``flush``
    drains the interval buffer into a ``MetricSnapshot`` and folds it into
    the cumulative state. An HDR histogram of request durations backs the
    run summary; thresholds are judged on the exact durations.
    """

    def __init__(self) -> None:
        self._buffer: deque[RequestMetric] = deque()
        self._last_flush_time: float = time.monotonic()

        self._tick_iterations = 0
        self._tick_checks_passed = 0
        self._tick_checks_failed = 0

        self._histogram = HdrHistogramWrapper()
        self._latencies: list[float] = []
        self._total_requests = 0
        self._total_failed = 0
        self._total_iterations = 0
        self._errors_by_status: dict[int, int] = defaultdict(int)
        self._errors_by_type: dict[str, int] = defaultdict(int)
        self._checks: dict[str, CheckTally] = {}

    @property
    def pending_count(self) -> int:
        """Number of request metrics not yet flushed."""
        return len(self._buffer)

    @property
    def total_iterations(self) -> int:
        """Iterations recorded so far, flushed or not."""
        return self._total_iterations

    def record(self, metric: RequestMetric) -> None:
        """Buffer a request metric until the next flush."""
        self._buffer.append(metric)

    def record_check(self, result: CheckResult) -> None:
        """Count a check outcome, both per tick and for the whole run."""
        tally = self._checks.get(result.name)
        if tally is None:
            tally = self._checks[result.name] = CheckTally(name=result.name)
        if result.passed:
            tally.passes += 1
            self._tick_checks_passed += 1
        else:
            tally.fails += 1
            self._tick_checks_failed += 1

    def record_iteration(self) -> None:
        """Count one completed iteration."""
        self._tick_iterations += 1
        self._total_iterations += 1

    def check_tallies(self) -> dict[str, CheckTally]:
        """Return per-check tallies in first-seen order."""
        return dict(self._checks)

    def flush(self, elapsed_seconds: float, active_users: int) -> MetricSnapshot:
        """Drain the buffer and return the snapshot for this interval.

        Args:
            elapsed_seconds: Seconds elapsed since the run started.
            active_users: Current number of active virtual users.

        Returns:
            Snapshot covering everything recorded since the previous flush.
        """
        drained: list[RequestMetric] = []
        while self._buffer:
            drained.append(self._buffer.popleft())

        now = time.monotonic()
        interval = max(now - self._last_flush_time, 0.001)
        self._last_flush_time = now

        latencies = [m.latency_ms for m in drained]
        tick_errors = 0
        tick_by_status: dict[int, int] = defaultdict(int)
        tick_by_type: dict[str, int] = defaultdict(int)
        for metric in drained:
            self._histogram.record_latency_ms(metric.latency_ms)
            if not metric.failed:
                continue
            tick_errors += 1
            if metric.error is not None:
                # "ClientConnectorError: ..." -> "ClientConnectorError"
                tick_by_type[metric.error.split(":")[0].strip()] += 1
            else:
                tick_by_status[metric.status_code] += 1

        self._latencies.extend(latencies)
        self._total_requests += len(drained)
        self._total_failed += tick_errors
        for status, count in tick_by_status.items():
            self._errors_by_status[status] += count
        for error_type, count in tick_by_type.items():
            self._errors_by_type[error_type] += count

        lat_min, lat_max, lat_avg, p50, p90, p95, p99 = _compute_percentiles(latencies)
        snapshot = MetricSnapshot(
            timestamp=now,
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=len(drained),
            requests_per_second=len(drained) / interval,
            iterations=self._tick_iterations,
            latency_min=lat_min,
            latency_max=lat_max,
            latency_avg=lat_avg,
            latency_p50=p50,
            latency_p90=p90,
            latency_p95=p95,
            latency_p99=p99,
            total_errors=tick_errors,
            error_rate=tick_errors / len(drained) if drained else 0.0,
            checks_passed=self._tick_checks_passed,
            checks_failed=self._tick_checks_failed,
            errors_by_status=dict(tick_by_status),
            errors_by_type=dict(tick_by_type),
        )

        self._tick_iterations = 0
        self._tick_checks_passed = 0
        self._tick_checks_failed = 0
        return snapshot

    def get_cumulative_snapshot(self, elapsed_seconds: float, active_users: int) -> MetricSnapshot:
        """Summarize every flushed metric since the collector was created.

        Metrics still in the buffer are not included; flush first.

        Args:
            elapsed_seconds: Total elapsed seconds, used for throughput.
            active_users: Active virtual user count to report.

        Returns:
            A cumulative MetricSnapshot.
        """
        passes = sum(t.passes for t in self._checks.values())
        fails = sum(t.fails for t in self._checks.values())
        hist = self._histogram
        return MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=self._total_requests,
            requests_per_second=self._total_requests / max(elapsed_seconds, 0.001),
            iterations=self._total_iterations,
            latency_min=hist.get_min(),
            latency_max=hist.get_max(),
            latency_avg=hist.get_mean(),
            latency_p50=hist.get_percentile(50.0),
            latency_p90=hist.get_percentile(90.0),
            latency_p95=hist.get_percentile(95.0),
            latency_p99=hist.get_percentile(99.0),
            total_errors=self._total_failed,
            error_rate=self._total_failed / self._total_requests if self._total_requests else 0.0,
            checks_passed=passes,
            checks_failed=fails,
            errors_by_status=dict(self._errors_by_status),
            errors_by_type=dict(self._errors_by_type),
        )

    def metric_value(
        self,
        metric: str,
        aggregation: str,
        percentile: float | None = None,
        *,
        elapsed_seconds: float = 0.0,
    ) -> float:
        """Return the run-level value of a built-in metric aggregation.

        Args:
            metric: Metric name, e.g. ``"http_req_duration"``.
            aggregation: ``avg``, ``min``, ``max``, ``med``, ``p``,
                ``count`` or ``rate``.
            percentile: Percentile for the ``p`` aggregation.
            elapsed_seconds: Run duration, used for counter rates.

        Returns:
            The aggregated value.

        Raises:
            ConfigError: If the metric/aggregation pair is not supported.
        """
        if metric == "http_req_duration" and aggregation in _TREND_AGGREGATIONS:
            return _trend_value(self._latencies, aggregation, percentile)
        elif metric == "http_req_failed" and aggregation == "rate":
            return self._total_failed / self._total_requests if self._total_requests else 0.0
        elif metric == "checks" and aggregation == "rate":
            passes = sum(t.passes for t in self._checks.values())
            total = sum(t.total for t in self._checks.values())
            return passes / total if total else 0.0
        elif metric in ("http_reqs", "iterations"):
            count = self._total_requests if metric == "http_reqs" else self._total_iterations
            if aggregation == "count":
                return float(count)
            if aggregation == "rate":
                return count / max(elapsed_seconds, 0.001)

        msg = f"Unsupported aggregation {aggregation!r} for metric {metric!r}"
        raise ConfigError(msg)
