# src/task_with_me/core/state.py

from __future__ import annotations

import logging
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from ..tasks.task_models import Config, ExecutionLog, Task, TaskFilter, now_local

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 10


class NotificationLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Notification:
    id: str
    level: NotificationLevel
    message: str
    timestamp: datetime


NotificationListener = Callable[[Notification], None]


@dataclass
class AppState:
    """
    Authoritative in-process copy of tasks, logs, config and runtime sets.

    Only the controller mutates it, one event at a time. Front-ends read it
    between events.
    """

    config: Config = field(default_factory=Config)
    tasks: list[Task] = field(default_factory=list)
    logs: list[ExecutionLog] = field(default_factory=list)
    running: set[str] = field(default_factory=set)
    notifications: deque[Notification] = field(
        default_factory=lambda: deque(maxlen=MAX_NOTIFICATIONS)
    )

    search_query: str = ""
    task_filter: TaskFilter = TaskFilter.ALL

    listeners: list[NotificationListener] = field(default_factory=list)

    # ---- notifications ----

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> Notification:
        note = Notification(
            id=uuid.uuid4().hex,
            level=level,
            message=message,
            timestamp=now_local(),
        )
        # deque(maxlen) drops the oldest entry on overflow.
        self.notifications.append(note)

        if level in (NotificationLevel.WARNING, NotificationLevel.ERROR):
            logger.warning("[%s] %s", level.value, message)
        else:
            logger.info("[%s] %s", level.value, message)

        for listener in list(self.listeners):
            try:
                listener(note)
            except Exception:
                logger.exception("Notification listener failed")
        return note

    def close_notification(self, notification_id: str) -> None:
        kept = [n for n in self.notifications if n.id != notification_id]
        self.notifications.clear()
        self.notifications.extend(kept)

    # ---- tasks ----

    def find_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def task_index(self, task_id: str) -> int | None:
        for i, task in enumerate(self.tasks):
            if task.id == task_id:
                return i
        return None

    def upsert_task(self, task: Task, index: int | None = None) -> None:
        pos = self.task_index(task.id)
        if pos is not None:
            self.tasks[pos] = task
        elif index is None or index >= len(self.tasks):
            self.tasks.append(task)
        else:
            self.tasks.insert(max(0, index), task)

    def remove_task(self, task_id: str) -> tuple[Task, int] | None:
        pos = self.task_index(task_id)
        if pos is None:
            return None
        return self.tasks.pop(pos), pos

    def resolve_task_id(self, prefix: str) -> str | None:
        """Full id for an exact id or a unique id prefix."""
        prefix = prefix.strip()
        if not prefix:
            return None
        matches = [t.id for t in self.tasks if t.id.startswith(prefix)]
        if prefix in matches:
            return prefix
        return matches[0] if len(matches) == 1 else None

    def filtered_tasks(self) -> list[Task]:
        query = self.search_query.strip().lower()
        out: list[Task] = []
        for task in self.tasks:
            if query and query not in task.title.lower() and query not in task.command.lower():
                continue
            if self.task_filter == TaskFilter.ACTIVE and not task.is_active:
                continue
            if self.task_filter == TaskFilter.INACTIVE and task.is_active:
                continue
            out.append(task)
        return out

    # ---- logs ----

    def append_log(self, log: ExecutionLog) -> None:
        self.logs.append(log)
        self.trim_logs()

    def trim_logs(self) -> int:
        """Evict oldest entries (insertion order) until max_logs holds."""
        limit = max(0, int(self.config.max_logs))
        excess = len(self.logs) - limit
        if excess <= 0:
            return 0
        del self.logs[:excess]
        return excess

    def logs_for_task(self, task_id: str | None) -> list[ExecutionLog]:
        if task_id is None:
            return list(self.logs)
        return [log for log in self.logs if log.task_id == task_id]

    # ---- snapshot ----

    def overview(self) -> dict[str, int]:
        return {
            "total": len(self.tasks),
            "active": sum(1 for t in self.tasks if t.is_active),
            "running": len(self.running),
            "logs": len(self.logs),
        }
