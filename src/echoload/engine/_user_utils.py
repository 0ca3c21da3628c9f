"""Virtual user helpers shared by the test session."""

from __future__ import annotations

import asyncio
import random

from echoload._internal.logging import get_logger

logger = get_logger("engine.user_utils")

# Time running iterations get to finish once the run is over.
GRACEFUL_STOP_SECONDS = 5.0
# Time a retired user gets to finish its iteration on scale-down.
GRACEFUL_RAMP_DOWN_SECONDS = 30.0
_CANCEL_WAIT_SECONDS = 2.0


def make_rng(seed: int | None) -> random.Random:
    """Return the non-cryptographic random source for a run.

    Args:
        seed: Fixed seed for reproducible identifier sequences, or None
            to seed from the operating system.
    """
    return random.Random(seed)  # noqa: S311


async def shutdown_all_users(
    user_tasks: list[tuple[int, asyncio.Task[None]]],
    stop_event: asyncio.Event,
    *,
    graceful_timeout: float = GRACEFUL_STOP_SECONDS,
) -> None:
    """Stop every virtual user.

    Sets the stop event so users exit after their current iteration, waits
    up to *graceful_timeout* seconds, then cancels whatever is still running.

    Args:
        user_tasks: ``(user_id, task)`` tuples to shut down. Cleared on return.
        stop_event: Event the virtual users poll between iterations.
        graceful_timeout: Seconds to wait before cancelling.
    """
    stop_event.set()

    if user_tasks:
        tasks = [t for _, t in user_tasks]
        _done, pending = await asyncio.wait(tasks, timeout=graceful_timeout)

        for task in pending:
            task.cancel()

        if pending:
            logger.debug("Cancelled %d virtual users still iterating", len(pending))
            await asyncio.wait(pending, timeout=_CANCEL_WAIT_SECONDS)

    user_tasks.clear()
    logger.debug("All virtual users shut down")


def retire_user(
    task: asyncio.Task[None],
    retire_event: asyncio.Event,
    *,
    grace: float = GRACEFUL_RAMP_DOWN_SECONDS,
) -> None:
    """Ask one virtual user to leave after its current iteration.

    The user is cancelled if it is still running *grace* seconds later.

    Args:
        task: The virtual user's task.
        retire_event: Event that user polls between iterations.
        grace: Seconds before the cancel backstop fires.
    """
    retire_event.set()
    if task.done():
        return
    handle = asyncio.get_running_loop().call_later(grace, task.cancel)
    task.add_done_callback(lambda _task: handle.cancel())
