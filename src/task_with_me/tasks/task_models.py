# src/task_with_me/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum


def now_local() -> datetime:
    """Timezone-aware local wall-clock time."""
    return datetime.now().astimezone()


class Theme(StrEnum):
    LIGHT = "Light"
    DARK = "Dark"

    @classmethod
    def parse(cls, raw: str | None) -> Theme | None:
        if not raw:
            return None
        for theme in cls:
            if theme.value.lower() == raw.strip().lower():
                return theme
        return None


class TaskFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(slots=True)
class Task:
    """
    A recurring shell command.

    Invariant: next_run is set iff is_active. last_output is transient and
    never written to the tasks document.
    """

    id: str
    title: str
    command: str
    interval_seconds: int
    created_at: datetime
    is_active: bool = False
    last_run: datetime | None = None
    next_run: datetime | None = None
    success_count: int = 0
    failure_count: int = 0
    last_output: str = field(default="", compare=False)

    def schedule_from(self, ts: datetime) -> None:
        self.next_run = ts + timedelta(seconds=self.interval_seconds)


@dataclass(slots=True, frozen=True)
class ExecutionLog:
    id: str
    task_id: str
    timestamp: datetime
    success: bool
    output: str
    duration_ms: int


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    success: bool
    output: str
    duration_ms: int


MIN_REFRESH_INTERVAL = 1
MIN_MAX_LOGS = 10


@dataclass(slots=True)
class Config:
    refresh_interval: int = 5
    max_logs: int = 500
    theme: Theme = Theme.DARK
    log_to_file: bool = True


def success_rate(task: Task) -> float:
    """Percentage of successful runs; 0.0 when the task never ran."""
    total = task.success_count + task.failure_count
    if total == 0:
        return 0.0
    return task.success_count / total * 100.0


def format_duration(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
