# tests/fakes.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

from task_with_me.core.errors import StorageIOError
from task_with_me.tasks.task_models import ExecutionResult, Task
from task_with_me.tasks.task_store import TaskStore


class FakeClock:
    """Manually advanced clock; call it to read the current time."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeCommandRunner:
    """
    Deterministic CommandRunner for controller tests.

    - Captures every task it was asked to run
    - Returns queued outcomes in order (ExecutionResult or an exception to raise)
    - Optional gate: execution blocks until the test sets it
    """

    def __init__(self, outcomes: list[ExecutionResult | Exception] | None = None) -> None:
        self.outcomes: list[ExecutionResult | Exception] = list(outcomes or [])
        self.calls: list[Task] = []
        self.gate: asyncio.Event | None = None

    async def execute(self, task: Task) -> ExecutionResult:
        self.calls.append(task)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if self.outcomes else ExecutionResult(True, "ok", 5)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class BrokenDiskStore(TaskStore):
    """TaskStore whose writes fail, for rollback tests."""

    def save_task(self, task: Task) -> None:
        raise StorageIOError("disk full")

    def delete_task(self, task_id: str) -> None:
        raise StorageIOError("read-only file system")

    def save_config(self, config) -> None:
        raise StorageIOError("permission denied")


class FlakyStore(TaskStore):
    """TaskStore whose first `failures` task saves fail, then recovers."""

    def __init__(self, data_dir, failures: int = 1) -> None:
        super().__init__(data_dir)
        self.failures = failures

    def save_task(self, task: Task) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise StorageIOError("disk full")
        super().save_task(task)
