"""Top-level blocking entry point for running a scenario."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from echoload._internal.errors import EchoLoadError, EngineError
from echoload._internal.logging import get_logger, setup_logging
from echoload.engine.session import TestSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from echoload.dsl.scenario import Scenario
    from echoload.metrics.models import MetricSnapshot, TestResult

logger = get_logger("engine.runner")


class LoadTestRunner:
    """Runs a scenario to completion on a fresh event loop.

    Attributes:
        scenario: The scenario to execute.
    """

    def __init__(
        self,
        scenario: Scenario,
        *,
        tick_interval: float = 1.0,
        seed: int | None = None,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        log_level: int = logging.INFO,
        json_logs: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            scenario: The scenario to execute.
            tick_interval: Seconds between virtual user count adjustments.
            seed: Seed for identifier generation, None for a random seed.
            on_snapshot: Optional callback invoked with each MetricSnapshot.
            log_level: Logging level.
            json_logs: Emit JSON log lines instead of plain text.
        """
        self.scenario = scenario
        self._tick_interval = tick_interval
        self._seed = seed
        self._on_snapshot = on_snapshot
        self._log_level = log_level
        self._json_logs = json_logs

    def run(self) -> TestResult:
        """Execute the load test and return results.

        Blocks until every stage has elapsed or SIGINT/SIGTERM is received.

        Returns:
            TestResult containing all snapshots, the final summary and the
            threshold outcomes.

        Raises:
            EngineError: If the test fails to execute.
        """
        setup_logging(level=self._log_level, json_format=self._json_logs)

        logger.info(
            "Starting load test: scenario=%s, max_users=%d, duration=%.1fs",
            self.scenario.name,
            self.scenario.options.max_target,
            self.scenario.options.total_duration,
        )

        try:
            return asyncio.run(self._run_session())
        except EchoLoadError:
            raise
        except Exception as exc:
            logger.exception("Load test failed")
            raise EngineError("Load test failed") from exc

    async def _run_session(self) -> TestResult:
        session = TestSession(
            self.scenario,
            tick_interval=self._tick_interval,
            seed=self._seed,
            on_snapshot=self._on_snapshot,
        )
        return await session.run()
