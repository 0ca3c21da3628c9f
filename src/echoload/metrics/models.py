"""Metric aggregation dataclasses for echoload."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from echoload.metrics.thresholds import ThresholdResult


@dataclass
class CheckTally:
    """Pass/fail counts for one named check across the run.

    Attributes:
        name: Check name.
        passes: Number of times the check passed.
        fails: Number of times the check failed.
    """

    name: str
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        """Fraction of evaluations that passed (0.0 when never evaluated)."""
        return self.passes / self.total if self.total else 0.0


@dataclass
class MetricSnapshot:
    """Point-in-time aggregated metrics, emitted every tick.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since the run started.
        active_users: Number of active virtual users.
        total_requests: Requests in this interval.
        requests_per_second: Request throughput over the interval.
        iterations: Completed iterations in this interval.
        latency_min: Minimum request duration (ms).
        latency_max: Maximum request duration (ms).
        latency_avg: Mean request duration (ms).
        latency_p50: Median request duration (ms).
        latency_p90: 90th percentile request duration (ms).
        latency_p95: 95th percentile request duration (ms).
        latency_p99: 99th percentile request duration (ms).
        total_errors: Failed requests (status 0 or >= 400).
        error_rate: Fraction of requests that failed (0.0 to 1.0).
        checks_passed: Checks that passed in this interval.
        checks_failed: Checks that failed in this interval.
        errors_by_status: Failed request count by HTTP status code.
        errors_by_type: Transport failure count by exception type.
    """

    timestamp: float
    elapsed_seconds: float
    active_users: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    iterations: int = 0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    total_errors: int = 0
    error_rate: float = 0.0
    checks_passed: int = 0
    checks_failed: int = 0
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)

    @property
    def checks_rate(self) -> float:
        """Fraction of checks that passed (0.0 when none ran)."""
        total = self.checks_passed + self.checks_failed
        return self.checks_passed / total if total else 0.0


@dataclass
class TestResult:
    """Complete result of a load test run.

    Attributes:
        scenario_name: Name of the executed scenario.
        start_time: Monotonic time when the run started.
        end_time: Monotonic time when the run completed.
        duration_seconds: Wall-clock duration of the run.
        pattern_description: Human-readable description of the stages.
        snapshots: One MetricSnapshot per tick.
        final_summary: Snapshot aggregated over the whole run.
        checks: Per-check tallies keyed by check name.
        thresholds: Threshold outcomes evaluated at the end of the run.
    """

    __test__ = False

    scenario_name: str
    start_time: float
    end_time: float
    duration_seconds: float
    pattern_description: str
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
    checks: dict[str, CheckTally] = field(default_factory=dict)
    thresholds: list[ThresholdResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True when no threshold was crossed."""
        return all(result.passed for result in self.thresholds)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable summary of the run."""
        summary = asdict(self.final_summary) if self.final_summary is not None else None
        if summary is not None:
            summary["errors_by_status"] = {
                str(status): count for status, count in summary["errors_by_status"].items()
            }
        return {
            "scenario": self.scenario_name,
            "pattern": self.pattern_description,
            "duration_seconds": self.duration_seconds,
            "passed": self.passed,
            "summary": summary,
            "checks": {
                name: {"passes": tally.passes, "fails": tally.fails, "rate": tally.pass_rate}
                for name, tally in self.checks.items()
            },
            "thresholds": [
                {
                    "metric": result.threshold.metric,
                    "expression": result.threshold.source,
                    "actual": result.actual,
                    "passed": result.passed,
                }
                for result in self.thresholds
            ],
        }
