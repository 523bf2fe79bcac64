# src/task_with_me/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.errors import SerializationError, StorageIOError
from .task_models import MIN_MAX_LOGS, MIN_REFRESH_INTERVAL, Config, ExecutionLog, Task, Theme

logger = logging.getLogger(__name__)

TASKS_FILE = "tasks.json"
LOGS_FILE = "logs.json"
CONFIG_FILE = "config.json"

# Timestamps written by other tools may carry nanoseconds; datetime keeps micros.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _require_bool(row: dict[str, Any], key: str) -> bool:
    value = row[key]
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be a boolean, got {value!r}")
    return value


def _require_int(
    row: dict[str, Any], key: str, *, minimum: int | None = 0, default: int | None = None
) -> int:
    value = row.get(key, default) if default is not None else row[key]
    # bool is an int subclass; true/false are not counts.
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


class TaskStore:
    """
    JSON document store for tasks, execution logs and config.

    Each collection lives in its own file under data_dir and is rewritten in
    full on every change (temp file + os.replace). Writers are expected to be
    serialized by the caller; there is no file locking.

    Missing files are not errors. Present-but-malformed files raise
    SerializationError and are never replaced by an empty collection.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"cannot create {self._data_dir}: {exc}") from exc
        logger.info("TaskStore ready dir=%s", self._data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ---- low-level helpers ----

    def _path(self, name: str) -> Path:
        return self._data_dir / name

    def _read_document(self, name: str) -> Any | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            raw = path.read_text("utf-8")
        except OSError as exc:
            raise StorageIOError(f"cannot read {path}: {exc}") from exc
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"{path.name}: {exc}") from exc

    def _write_document(self, name: str, data: Any) -> None:
        path = self._path(name)
        try:
            payload = json.dumps(data, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"{path.name}: {exc}") from exc

        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(payload, "utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageIOError(f"cannot write {path}: {exc}") from exc

    @staticmethod
    def _ts_to_str(ts: datetime | None) -> str | None:
        return ts.isoformat() if ts is not None else None

    @staticmethod
    def _str_to_ts(raw: Any) -> datetime | None:
        if raw is None:
            return None
        if not isinstance(raw, str):
            raise TypeError(f"timestamp must be a string, got {type(raw).__name__}")
        ts = datetime.fromisoformat(_FRACTION_RE.sub(r"\1", raw))
        # Offset-less values are read as local wall-clock time.
        return ts if ts.tzinfo is not None else ts.astimezone()

    def _task_to_dict(self, task: Task) -> dict[str, Any]:
        return {
            "id": task.id,
            "title": task.title,
            "command": task.command,
            "interval_seconds": task.interval_seconds,
            "is_active": task.is_active,
            "last_run": self._ts_to_str(task.last_run),
            "next_run": self._ts_to_str(task.next_run),
            "created_at": self._ts_to_str(task.created_at),
            "success_count": task.success_count,
            "failure_count": task.failure_count,
        }

    def _dict_to_task(self, row: dict[str, Any]) -> Task:
        created_at = self._str_to_ts(row["created_at"])
        if created_at is None:
            raise ValueError("created_at is required")
        return Task(
            id=str(row["id"]),
            title=str(row["title"]),
            command=str(row["command"]),
            interval_seconds=_require_int(row, "interval_seconds", minimum=1),
            is_active=_require_bool(row, "is_active"),
            last_run=self._str_to_ts(row.get("last_run")),
            next_run=self._str_to_ts(row.get("next_run")),
            created_at=created_at,
            success_count=_require_int(row, "success_count", default=0),
            failure_count=_require_int(row, "failure_count", default=0),
        )

    def _log_to_dict(self, log: ExecutionLog) -> dict[str, Any]:
        return {
            "id": log.id,
            "task_id": log.task_id,
            "timestamp": self._ts_to_str(log.timestamp),
            "success": log.success,
            "output": log.output,
            "duration_ms": log.duration_ms,
        }

    def _dict_to_log(self, row: dict[str, Any]) -> ExecutionLog:
        timestamp = self._str_to_ts(row["timestamp"])
        if timestamp is None:
            raise ValueError("timestamp is required")
        return ExecutionLog(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            timestamp=timestamp,
            success=_require_bool(row, "success"),
            output=str(row.get("output", "")),
            duration_ms=_require_int(row, "duration_ms", default=0),
        )

    def _parse_list(self, name: str, data: Any, convert) -> list:
        if not isinstance(data, list):
            raise SerializationError(f"{name}: expected a list, got {type(data).__name__}")
        try:
            return [convert(row) for row in data]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SerializationError(f"{name}: invalid record: {exc}") from exc

    # ---- tasks ----

    def load_tasks(self) -> list[Task]:
        data = self._read_document(TASKS_FILE)
        if data is None:
            return []
        tasks = self._parse_list(TASKS_FILE, data, self._dict_to_task)
        logger.debug("Loaded %d tasks", len(tasks))
        return tasks

    def save_task(self, task: Task) -> None:
        """Read-modify-write: replace the task with the same id or append it."""
        tasks = self.load_tasks()
        for i, existing in enumerate(tasks):
            if existing.id == task.id:
                tasks[i] = task
                break
        else:
            tasks.append(task)
        self._write_document(TASKS_FILE, [self._task_to_dict(t) for t in tasks])
        logger.debug("Task saved id=%s total=%d", task.id, len(tasks))

    def delete_task(self, task_id: str) -> None:
        if not self._path(TASKS_FILE).exists():
            return
        tasks = [t for t in self.load_tasks() if t.id != task_id]
        self._write_document(TASKS_FILE, [self._task_to_dict(t) for t in tasks])
        logger.debug("Task deleted id=%s remaining=%d", task_id, len(tasks))

    # ---- logs ----

    def load_logs(self) -> list[ExecutionLog]:
        data = self._read_document(LOGS_FILE)
        if data is None:
            return []
        return self._parse_list(LOGS_FILE, data, self._dict_to_log)

    def save_logs(self, logs: list[ExecutionLog]) -> None:
        self._write_document(LOGS_FILE, [self._log_to_dict(log) for log in logs])
        logger.debug("Logs saved total=%d", len(logs))

    # ---- config ----

    def load_config(self) -> Config:
        """Load config; a missing document is created with defaults."""
        data = self._read_document(CONFIG_FILE)
        if data is None:
            config = Config()
            self.save_config(config)
            logger.info("Created default config in %s", self._path(CONFIG_FILE))
            return config

        if not isinstance(data, dict):
            raise SerializationError(f"{CONFIG_FILE}: expected an object")
        try:
            config = Config(
                refresh_interval=_require_int(data, "refresh_interval", minimum=None),
                max_logs=_require_int(data, "max_logs", minimum=None),
                theme=Theme(data["theme"]),
                log_to_file=_require_bool(data, "log_to_file"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"{CONFIG_FILE}: invalid config: {exc}") from exc

        if config.refresh_interval < MIN_REFRESH_INTERVAL or config.max_logs < MIN_MAX_LOGS:
            logger.warning(
                "%s out of range (refresh_interval=%s max_logs=%s), clamping",
                CONFIG_FILE,
                config.refresh_interval,
                config.max_logs,
            )
            config.refresh_interval = max(MIN_REFRESH_INTERVAL, config.refresh_interval)
            config.max_logs = max(MIN_MAX_LOGS, config.max_logs)
        return config

    def save_config(self, config: Config) -> None:
        self._write_document(
            CONFIG_FILE,
            {
                "refresh_interval": config.refresh_interval,
                "max_logs": config.max_logs,
                "theme": config.theme.value,
                "log_to_file": config.log_to_file,
            },
        )
