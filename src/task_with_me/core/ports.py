# src/task_with_me/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The controller depends on Protocols instead of concrete implementations.
This keeps storage and process execution swappable and makes testing easier.
"""

from typing import Protocol

from ..tasks.task_models import Config, ExecutionLog, ExecutionResult, Task


class TaskRepo(Protocol):
    """
    Blocking document store. Methods raise AppError subclasses.

    The controller calls these from a single I/O worker thread, one at a time.
    """

    def load_tasks(self) -> list[Task]: ...
    def save_task(self, task: Task) -> None: ...
    def delete_task(self, task_id: str) -> None: ...

    def load_logs(self) -> list[ExecutionLog]: ...
    def save_logs(self, logs: list[ExecutionLog]) -> None: ...

    def load_config(self) -> Config: ...
    def save_config(self, config: Config) -> None: ...


class CommandRunner(Protocol):
    """Runs one task's command. Raises ExecutionError only on spawn failure."""

    async def execute(self, task: Task) -> ExecutionResult: ...
