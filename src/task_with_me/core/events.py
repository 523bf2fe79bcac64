# src/task_with_me/core/events.py

"""
Events consumed by the controller.

Intents come from the front-end (console, tests) or from the tick loop.
Completions are posted by background work (disk I/O, process runs) and carry
either a value or an AppError, never both.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_models import Config, ExecutionLog, ExecutionResult, Task, TaskFilter, Theme
from .errors import AppError


@dataclass(slots=True, frozen=True)
class Event:
    pass


# ---- intents ----


@dataclass(slots=True, frozen=True)
class LoadOnStartup(Event):
    pass


@dataclass(slots=True, frozen=True)
class CreateTask(Event):
    title: str
    command: str
    interval: str | int


@dataclass(slots=True, frozen=True)
class ToggleTask(Event):
    task_id: str


@dataclass(slots=True, frozen=True)
class DeleteTask(Event):
    task_id: str


@dataclass(slots=True, frozen=True)
class ExecuteTask(Event):
    task_id: str


@dataclass(slots=True, frozen=True)
class Tick(Event):
    pass


@dataclass(slots=True, frozen=True)
class SaveSettings(Event):
    """Raw user input; unparseable numbers leave the current value untouched."""

    refresh_interval: str | int | None = None
    max_logs: str | int | None = None
    theme: Theme | None = None
    log_to_file: bool | None = None


@dataclass(slots=True, frozen=True)
class SetTheme(Event):
    theme: Theme


@dataclass(slots=True, frozen=True)
class SetSearch(Event):
    query: str


@dataclass(slots=True, frozen=True)
class SetFilter(Event):
    task_filter: TaskFilter


@dataclass(slots=True, frozen=True)
class CloseNotification(Event):
    notification_id: str


@dataclass(slots=True, frozen=True)
class ClearNotifications(Event):
    pass


# ---- completions ----


@dataclass(slots=True, frozen=True)
class TasksLoaded(Event):
    tasks: list[Task] | None = None
    error: AppError | None = None


@dataclass(slots=True, frozen=True)
class LogsLoaded(Event):
    logs: list[ExecutionLog] | None = None
    error: AppError | None = None


@dataclass(slots=True, frozen=True)
class ConfigLoaded(Event):
    config: Config | None = None
    error: AppError | None = None


@dataclass(slots=True, frozen=True)
class TaskSaved(Event):
    """
    restore: copy to put back if the save failed (toggle), applied only while
        the task in memory still equals saved.
    saved: the copy handed to the store.
    created: the task did not exist before this save (create).
    Both unset means no rollback (execution completion).
    """

    task_id: str
    error: AppError | None = None
    restore: Task | None = None
    saved: Task | None = None
    created: bool = False


@dataclass(slots=True, frozen=True)
class TaskDeleted(Event):
    task_id: str
    error: AppError | None = None
    restore: Task | None = None
    index: int = 0


@dataclass(slots=True, frozen=True)
class LogsSaved(Event):
    error: AppError | None = None


@dataclass(slots=True, frozen=True)
class ConfigSaved(Event):
    config: Config
    error: AppError | None = None
    previous: Config | None = None


@dataclass(slots=True, frozen=True)
class TaskExecuted(Event):
    task_id: str
    result: ExecutionResult | None = None
    error: AppError | None = None
