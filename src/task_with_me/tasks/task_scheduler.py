# src/task_with_me/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

Two pieces:
- due_tasks(): the pure "which tasks fire now" predicate,
- run_tick_loop(): a small polling loop that posts Tick events to the controller.

The scheduler never executes anything itself. The controller re-checks the
running set when it handles the tick, inside its single sequential step.
"""

import asyncio
import logging
from collections.abc import Callable, Collection, Iterable
from datetime import datetime

from ..core.events import Event, Tick
from .task_models import Task

logger = logging.getLogger(__name__)


def due_tasks(now: datetime, tasks: Iterable[Task], running: Collection[str]) -> list[str]:
    """
    Ids of tasks that should be dispatched at `now`.

    A task is due when:
    - it is active,
    - next_run is set and now >= next_run,
    - it is not already running.

    Order follows the input order; every due task is returned (no throttling).
    """
    out: list[str] = []
    for task in tasks:
        if not task.is_active or task.next_run is None:
            continue
        if now < task.next_run:
            continue
        if task.id in running:
            continue
        out.append(task.id)
    return out


async def run_tick_loop(
        submit: Callable[[Event], None],
        *,
        interval_seconds: Callable[[], float],
) -> None:
    """
    Post a Tick every interval_seconds().

    The interval is re-read before each wait, so a settings change applies
    from the next tick on. To stop the loop, cancel the coroutine/task.
    """
    while True:
        sleep_s = float(interval_seconds())
        await asyncio.sleep(sleep_s)
        try:
            submit(Tick())
        except Exception:
            logger.exception("Failed to submit tick")
