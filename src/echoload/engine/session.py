"""Test session lifecycle management and signal handling."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from echoload._internal.errors import EngineError
from echoload._internal.logging import get_logger
from echoload.dsl.http_client import HttpClient
from echoload.dsl.scenario import IterationContext
from echoload.engine._user_utils import (
    GRACEFUL_RAMP_DOWN_SECONDS,
    GRACEFUL_STOP_SECONDS,
    make_rng,
    retire_user,
    shutdown_all_users,
)
from echoload.engine.scheduler import Scheduler
from echoload.metrics.collector import MetricCollector
from echoload.metrics.models import MetricSnapshot, TestResult
from echoload.metrics.thresholds import evaluate_thresholds

if TYPE_CHECKING:
    from collections.abc import Callable

    from echoload.dsl.scenario import Scenario

logger = get_logger("engine.session")

# Pause after an iteration raises so a broken iteration cannot spin.
_ITERATION_ERROR_BACKOFF_SECONDS = 1.0


class SessionState(Enum):
    """State machine for a test session."""

    CREATED = auto()
    STARTING = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class TestSession:
    """Runs one scenario under its ramp stages inside the current event loop.

    Coordinates the scheduler, virtual users, metric collector and signal
    handling, then evaluates the scenario's thresholds once the last stage
    has elapsed.

    State machine: CREATED -> STARTING -> RUNNING -> STOPPING -> COMPLETED
                                                  -> FAILED (on error)

    Attributes:
        scenario: The scenario being executed.
    """

    __test__ = False

    def __init__(
        self,
        scenario: Scenario,
        *,
        tick_interval: float = 1.0,
        seed: int | None = None,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        graceful_stop: float = GRACEFUL_STOP_SECONDS,
        graceful_ramp_down: float = GRACEFUL_RAMP_DOWN_SECONDS,
        handle_signals: bool = True,
    ) -> None:
        """Initialize a test session.

        Args:
            scenario: The scenario to execute.
            tick_interval: Seconds between virtual user count adjustments.
            seed: Seed for identifier generation, None for a random seed.
            on_snapshot: Optional callback invoked with every tick snapshot.
            graceful_stop: Seconds running iterations get to finish at the
                end of the run before they are cancelled.
            graceful_ramp_down: Seconds a user removed on scale-down gets
                to finish its iteration before it is cancelled.
            handle_signals: Install SIGINT/SIGTERM handlers for a graceful
                early stop. Only possible from the main thread.
        """
        self.scenario = scenario
        self._scheduler = Scheduler.from_options(scenario.options, tick_interval)
        self._duration_seconds = self._scheduler.duration_seconds
        self._thresholds = scenario.options.parsed_thresholds()
        self._on_snapshot = on_snapshot
        self._graceful_stop = graceful_stop
        self._graceful_ramp_down = graceful_ramp_down
        self._handle_signals = handle_signals

        self._state = SessionState.CREATED
        self._collector = MetricCollector()
        self._rng = make_rng(seed)
        self._user_tasks: list[tuple[int, asyncio.Task[None]]] = []
        self._retiring: list[tuple[int, asyncio.Task[None]]] = []
        self._retire_events: dict[int, asyncio.Event] = {}
        self._next_user_id = 0
        self._iteration_errors = 0
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_user_count(self) -> int:
        """Return the number of active virtual users."""
        return len(self._user_tasks)

    @property
    def collector(self) -> MetricCollector:
        return self._collector

    async def run(self) -> TestResult:
        """Execute the full session lifecycle.

        Returns:
            TestResult with snapshots, the run summary, check tallies and
            threshold outcomes.

        Raises:
            EngineError: If the session hits an unrecoverable error.
        """
        self._state = SessionState.STARTING
        logger.info(
            "Starting test session: scenario=%s, duration=%.1fs, %s",
            self.scenario.name,
            self._duration_seconds,
            self.scenario.options.describe(),
        )

        if self._handle_signals:
            self._install_signal_handlers()

        start_time = time.monotonic()
        snapshots: list[MetricSnapshot] = []

        self._state = SessionState.RUNNING

        try:
            for command in self._scheduler.iter_commands():
                if self._stop_event.is_set():
                    break

                target_time = start_time + command.elapsed_seconds
                now = time.monotonic()
                if target_time > now:
                    await asyncio.sleep(target_time - now)

                if self._stop_event.is_set():
                    break

                await self._scale_users(command.target_concurrency)

                elapsed = time.monotonic() - start_time
                snapshot = self._collector.flush(
                    elapsed_seconds=elapsed,
                    active_users=self.active_user_count,
                )
                snapshots.append(snapshot)
                if self._on_snapshot is not None:
                    self._on_snapshot(snapshot)

                logger.debug(
                    "Tick %.1fs: users=%d, rps=%.1f, p99=%.1fms, failed=%d",
                    elapsed,
                    self.active_user_count,
                    snapshot.requests_per_second,
                    snapshot.latency_p99,
                    snapshot.total_errors,
                )

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Test session failed")
            raise EngineError("Test session failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            self._user_tasks.extend(self._retiring)
            self._retiring.clear()
            self._retire_events.clear()
            await shutdown_all_users(
                self._user_tasks, self._stop_event, graceful_timeout=self._graceful_stop
            )
            if self._handle_signals:
                self._remove_signal_handlers()

        end_time = time.monotonic()
        total_duration = end_time - start_time

        # Pick up metrics from iterations that finished during shutdown
        self._collector.flush(elapsed_seconds=total_duration, active_users=0)
        final_summary = self._collector.get_cumulative_snapshot(
            elapsed_seconds=total_duration,
            active_users=0,
        )

        threshold_results = evaluate_thresholds(
            self._thresholds,
            lambda metric, agg, pct: self._collector.metric_value(
                metric, agg, pct, elapsed_seconds=total_duration
            ),
        )
        for result in threshold_results:
            if not result.passed:
                logger.warning(
                    "Threshold crossed: %s '%s' (actual %.2f)",
                    result.threshold.metric,
                    result.threshold.source,
                    result.actual,
                )

        self._state = SessionState.COMPLETED
        logger.info(
            "Test completed: duration=%.1fs, requests=%d, iterations=%d, p99=%.1fms, "
            "failed=%.2f%%, checks=%.2f%%, iteration_errors=%d",
            total_duration,
            final_summary.total_requests,
            final_summary.iterations,
            final_summary.latency_p99,
            final_summary.error_rate * 100,
            final_summary.checks_rate * 100,
            self._iteration_errors,
        )

        return TestResult(
            scenario_name=self.scenario.name,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=total_duration,
            pattern_description=self._scheduler.pattern.describe(),
            snapshots=snapshots,
            final_summary=final_summary,
            checks=self._collector.check_tallies(),
            thresholds=threshold_results,
        )

    async def stop(self) -> None:
        """Request a graceful stop; the main loop exits before the next tick."""
        if self._state == SessionState.RUNNING:
            logger.info("Graceful shutdown requested")
            self._state = SessionState.STOPPING
            self._stop_event.set()

    async def _run_virtual_user(self, user_id: int, retire_event: asyncio.Event) -> None:
        """Loop the scenario iteration until the run stops or the user retires.

        Args:
            user_id: Unique identifier for this virtual user.
            retire_event: Set when this user is removed on scale-down.
        """
        async with HttpClient(
            metric_callback=self._collector.record,
            timeout=self.scenario.request_timeout,
        ) as client:
            ctx = IterationContext(
                client=client,
                rng=self._rng,
                user_id=user_id,
                check_recorder=self._collector.record_check,
            )
            try:
                while not (self._stop_event.is_set() or retire_event.is_set()):
                    failed = False
                    try:
                        await self.scenario.iteration(ctx)
                    except asyncio.CancelledError:
                        raise
                    except Exception:
                        failed = True
                        self._iteration_errors += 1
                        logger.debug(
                            "Iteration %d failed for user %d",
                            ctx.iteration,
                            user_id,
                            exc_info=True,
                        )
                    self._collector.record_iteration()
                    ctx.iteration += 1
                    if failed:
                        with contextlib.suppress(TimeoutError):
                            await asyncio.wait_for(
                                self._stop_event.wait(),
                                timeout=_ITERATION_ERROR_BACKOFF_SECONDS,
                            )
                    else:
                        # Yield even if the iteration never awaited
                        await asyncio.sleep(0)
            except asyncio.CancelledError:
                pass

    async def _scale_users(self, target: int) -> None:
        """Start or retire virtual users so that *target* are active.

        Retired users finish their current iteration in the background and
        no longer count as active.

        Args:
            target: Desired number of active virtual users.
        """
        current = self.active_user_count

        if target > current:
            for _ in range(target - current):
                user_id = self._next_user_id
                self._next_user_id += 1
                retire_event = asyncio.Event()
                task = asyncio.create_task(
                    self._run_virtual_user(user_id, retire_event),
                    name=f"virtual-user-{user_id}",
                )
                self._user_tasks.append((user_id, task))
                self._retire_events[user_id] = retire_event

        elif target < current:
            # Newest users go first
            for _ in range(current - target):
                if self._user_tasks:
                    user_id, task = self._user_tasks.pop()
                    retire_user(
                        task,
                        self._retire_events.pop(user_id),
                        grace=self._graceful_ramp_down,
                    )
                    self._retiring.append((user_id, task))

        self._user_tasks = [(uid, t) for uid, t in self._user_tasks if not t.done()]
        self._retiring = [(uid, t) for uid, t in self._retiring if not t.done()]
        active_ids = {uid for uid, _ in self._user_tasks}
        self._retire_events = {
            uid: event for uid, event in self._retire_events.items() if uid in active_ids
        }

    def _install_signal_handlers(self) -> None:
        """Install SIGINT and SIGTERM handlers that stop the run gracefully."""
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._state = SessionState.STOPPING
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
            signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())

    def _remove_signal_handlers(self) -> None:
        """Restore default signal handling."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
