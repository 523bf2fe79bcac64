# src/task_with_me/core/controller.py

"""
Sequential controller (single writer).

Every mutation of AppState happens in _dispatch(), one event at a time, on the
asyncio loop. Slow work is started from a handler and never awaited there:
- disk I/O runs on one dedicated worker thread, so writes hit disk in the
  order they were issued,
- commands run as child processes through the CommandRunner port.
Their results come back through the same queue as completion events.

Because the running-set check and insert happen inside one handler, a task
can never be dispatched twice concurrently.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from typing import Any, TypeVar

from ..tasks.task_models import (
    MIN_MAX_LOGS,
    MIN_REFRESH_INTERVAL,
    Config,
    ExecutionLog,
    Task,
    now_local,
)
from ..tasks.task_scheduler import due_tasks
from .errors import AppError
from .events import (
    ClearNotifications,
    CloseNotification,
    ConfigLoaded,
    ConfigSaved,
    CreateTask,
    DeleteTask,
    Event,
    ExecuteTask,
    LoadOnStartup,
    LogsLoaded,
    LogsSaved,
    SaveSettings,
    SetFilter,
    SetSearch,
    SetTheme,
    TaskDeleted,
    TaskExecuted,
    TaskSaved,
    TasksLoaded,
    Tick,
    ToggleTask,
)
from .ports import CommandRunner, TaskRepo
from .state import AppState, NotificationLevel

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConfigListener = Callable[[Config], None]
Clock = Callable[[], datetime]


def _parse_positive_int(raw: str | int) -> int | None:
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def _parse_setting(raw: str | int | None, minimum: int) -> int | None:
    """Clamp a numeric settings input; None when absent or unparseable."""
    if raw is None:
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    if value < 0:
        return None
    return max(minimum, value)


class Controller:
    def __init__(
        self,
        state: AppState,
        store: TaskRepo,
        runner: CommandRunner,
        *,
        clock: Clock = now_local,
        io_executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.state = state
        self._store = store
        self._runner = runner
        self._clock = clock
        self._io = io_executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="twm-io")

        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._pending: set[asyncio.Task[Any]] = set()
        self._config_listeners: list[ConfigListener] = []

        self._handlers: dict[type[Event], Callable[[Any], None]] = {
            LoadOnStartup: self._on_load_on_startup,
            CreateTask: self._on_create_task,
            ToggleTask: self._on_toggle_task,
            DeleteTask: self._on_delete_task,
            ExecuteTask: self._on_execute_task,
            Tick: self._on_tick,
            SaveSettings: self._on_save_settings,
            SetTheme: self._on_set_theme,
            SetSearch: self._on_set_search,
            SetFilter: self._on_set_filter,
            CloseNotification: self._on_close_notification,
            ClearNotifications: self._on_clear_notifications,
            TasksLoaded: self._on_tasks_loaded,
            LogsLoaded: self._on_logs_loaded,
            ConfigLoaded: self._on_config_loaded,
            TaskSaved: self._on_task_saved,
            TaskDeleted: self._on_task_deleted,
            LogsSaved: self._on_logs_saved,
            ConfigSaved: self._on_config_saved,
            TaskExecuted: self._on_task_executed,
        }

    # ---- public API ----

    def submit(self, event: Event) -> None:
        """Queue an event. Safe to call from handlers and coroutines on the loop."""
        self._queue.put_nowait(event)

    def add_config_listener(self, listener: ConfigListener) -> None:
        """Called with the config after every successful load or save."""
        self._config_listeners.append(listener)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def run(self) -> None:
        """Process events forever. To stop, cancel the coroutine/task."""
        logger.info("Controller loop started")
        while True:
            event = await self._queue.get()
            self._dispatch(event)

    def process_queued(self) -> int:
        """Handle every event already queued, without waiting for new ones."""
        n = 0
        while not self._queue.empty():
            self._dispatch(self._queue.get_nowait())
            n += 1
        return n

    async def run_until_idle(self) -> None:
        """Handle events until the queue is empty and no background work is left."""
        while True:
            self.process_queued()
            if not self._pending:
                if self._queue.empty():
                    return
                continue
            await asyncio.wait(set(self._pending), return_when=asyncio.FIRST_COMPLETED)

    async def aclose(self, timeout: float = 5.0) -> None:
        """
        Flush outstanding saves (bounded by timeout), then stop the I/O worker.

        Jobs still running after the timeout are cancelled and awaited, so the
        runner gets to kill their child processes.
        """
        try:
            await asyncio.wait_for(self.run_until_idle(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Shutdown: %d background jobs still running, cancelling", len(self._pending))
        jobs = list(self._pending)
        for job in jobs:
            job.cancel()
        if jobs:
            await asyncio.gather(*jobs, return_exceptions=True)
        self._io.shutdown(wait=True)
        logger.info("Controller closed")

    # ---- plumbing ----

    def _dispatch(self, event: Event) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning("No handler for event %s", type(event).__name__)
            return
        logger.debug("Handling %s", type(event).__name__)
        try:
            handler(event)
        except Exception:
            logger.exception("Handler for %s crashed", type(event).__name__)

    def _perform(
        self,
        work: Callable[[], Awaitable[T]],
        done: Callable[[T | None, AppError | None], Event],
        what: str,
    ) -> None:
        """Start `work` in the background; its outcome re-enters as done(value, error)."""

        async def _job() -> None:
            try:
                value = await work()
            except AppError as exc:
                self.submit(done(None, exc))
            except Exception as exc:
                logger.exception("Background job %s failed unexpectedly", what)
                self.submit(done(None, AppError(str(exc) or type(exc).__name__)))
            else:
                self.submit(done(value, None))

        job = asyncio.get_running_loop().create_task(_job(), name=f"twm:{what}")
        self._pending.add(job)
        job.add_done_callback(self._pending.discard)

    def _perform_io(
        self,
        fn: Callable[..., T],
        *args: Any,
        done: Callable[[T | None, AppError | None], Event],
    ) -> None:
        def work() -> Awaitable[T]:
            loop = asyncio.get_running_loop()
            return loop.run_in_executor(self._io, functools.partial(fn, *args))

        self._perform(work, done, getattr(fn, "__name__", "io"))

    def _notify_config(self, config: Config) -> None:
        for listener in list(self._config_listeners):
            try:
                listener(config)
            except Exception:
                logger.exception("Config listener failed")

    # ---- intents ----

    def _on_load_on_startup(self, _event: LoadOnStartup) -> None:
        self._perform_io(
            self._store.load_config,
            done=lambda cfg, err: ConfigLoaded(config=cfg, error=err),
        )
        self._perform_io(
            self._store.load_tasks,
            done=lambda tasks, err: TasksLoaded(tasks=tasks, error=err),
        )
        self._perform_io(
            self._store.load_logs,
            done=lambda logs, err: LogsLoaded(logs=logs, error=err),
        )

    def _on_create_task(self, event: CreateTask) -> None:
        state = self.state
        title = event.title or ""
        command = event.command or ""

        if not title.strip():
            state.notify("Task title cannot be empty", NotificationLevel.WARNING)
            return
        if not command.strip():
            state.notify("Command cannot be empty", NotificationLevel.WARNING)
            return
        interval = _parse_positive_int(event.interval)
        if interval is None:
            state.notify("Invalid interval", NotificationLevel.WARNING)
            return

        task = Task(
            id=str(uuid.uuid4()),
            title=title,
            command=command,
            interval_seconds=interval,
            created_at=self._clock(),
        )
        state.upsert_task(task)
        logger.info("Creating task %r id=%s interval=%ss", task.title, task.id, interval)
        state.notify(f"Task '{task.title}' created", NotificationLevel.SUCCESS)

        task_id = task.id
        self._perform_io(
            self._store.save_task,
            replace(task),
            done=lambda _v, err: TaskSaved(task_id=task_id, error=err, created=True),
        )

    def _on_toggle_task(self, event: ToggleTask) -> None:
        task = self.state.find_task(event.task_id)
        if task is None:
            logger.debug("Toggle for unknown task id=%s", event.task_id)
            return

        previous = replace(task)
        task.is_active = not task.is_active
        if task.is_active:
            task.schedule_from(self._clock())
        else:
            task.next_run = None

        status = "activated" if task.is_active else "paused"
        self.state.notify(f"Task '{task.title}' {status}", NotificationLevel.INFO)

        task_id = task.id
        saved = replace(task)
        self._perform_io(
            self._store.save_task,
            saved,
            done=lambda _v, err: TaskSaved(task_id=task_id, error=err, restore=previous, saved=saved),
        )

    def _on_delete_task(self, event: DeleteTask) -> None:
        removed = self.state.remove_task(event.task_id)
        restore: Task | None = None
        index = 0
        if removed is not None:
            restore, index = removed
            self.state.notify(f"Deleted task '{restore.title}'", NotificationLevel.INFO)

        task_id = event.task_id
        self._perform_io(
            self._store.delete_task,
            task_id,
            done=lambda _v, err: TaskDeleted(task_id=task_id, error=err, restore=restore, index=index),
        )

    def _on_execute_task(self, event: ExecuteTask) -> None:
        self._start_execution(event.task_id)

    def _start_execution(self, task_id: str) -> None:
        state = self.state
        if task_id in state.running:
            state.notify("Task is already running", NotificationLevel.WARNING)
            return

        task = state.find_task(task_id)
        if task is None:
            logger.debug("Execute for unknown task id=%s", task_id)
            return

        state.running.add(task_id)
        state.notify(f"Executing '{task.title}'...", NotificationLevel.INFO)

        snapshot = replace(task)
        self._perform(
            lambda: self._runner.execute(snapshot),
            lambda result, err: TaskExecuted(task_id=task_id, result=result, error=err),
            f"execute:{task_id}",
        )

    def _on_tick(self, _event: Tick) -> None:
        due = due_tasks(self._clock(), self.state.tasks, self.state.running)
        if due:
            logger.debug("Tick: %d due task(s)", len(due))
        for task_id in due:
            self._start_execution(task_id)

    def _on_save_settings(self, event: SaveSettings) -> None:
        previous = self.state.config
        config = replace(previous)

        refresh = _parse_setting(event.refresh_interval, MIN_REFRESH_INTERVAL)
        if refresh is not None:
            config.refresh_interval = refresh
        max_logs = _parse_setting(event.max_logs, MIN_MAX_LOGS)
        if max_logs is not None:
            config.max_logs = max_logs
        if event.theme is not None:
            config.theme = event.theme
        if event.log_to_file is not None:
            config.log_to_file = bool(event.log_to_file)

        self.state.config = config
        self._perform_io(
            self._store.save_config,
            replace(config),
            done=lambda _v, err: ConfigSaved(config=config, error=err, previous=previous),
        )

    def _on_set_theme(self, event: SetTheme) -> None:
        self.state.config.theme = event.theme

    def _on_set_search(self, event: SetSearch) -> None:
        self.state.search_query = event.query

    def _on_set_filter(self, event: SetFilter) -> None:
        self.state.task_filter = event.task_filter

    def _on_close_notification(self, event: CloseNotification) -> None:
        self.state.close_notification(event.notification_id)

    def _on_clear_notifications(self, _event: ClearNotifications) -> None:
        self.state.notifications.clear()

    # ---- completions ----

    def _on_config_loaded(self, event: ConfigLoaded) -> None:
        if event.error is not None or event.config is None:
            self.state.notify(f"Failed to load settings: {event.error}", NotificationLevel.ERROR)
            return
        self.state.config = event.config
        self.state.trim_logs()
        logger.info(
            "Config loaded refresh_interval=%ss max_logs=%s",
            event.config.refresh_interval,
            event.config.max_logs,
        )
        self._notify_config(event.config)

    def _on_tasks_loaded(self, event: TasksLoaded) -> None:
        if event.error is not None or event.tasks is None:
            self.state.notify(f"Failed to load tasks: {event.error}", NotificationLevel.ERROR)
            return

        now = self._clock()
        in_memory = {t.id: t for t in self.state.tasks}
        loaded_ids = set()
        merged: list[Task] = []
        for task in event.tasks:
            loaded_ids.add(task.id)
            if task.id in in_memory:
                merged.append(in_memory[task.id])
                continue
            if task.is_active and task.next_run is None:
                logger.warning("Task %s is active without next_run; scheduling from now", task.id)
                task.schedule_from(now)
            elif not task.is_active and task.next_run is not None:
                task.next_run = None
            merged.append(task)
        merged.extend(t for t in self.state.tasks if t.id not in loaded_ids)

        self.state.tasks = merged
        logger.info("Tasks loaded: %d", len(merged))

    def _on_logs_loaded(self, event: LogsLoaded) -> None:
        if event.error is not None or event.logs is None:
            self.state.notify(f"Failed to load logs: {event.error}", NotificationLevel.ERROR)
            return
        loaded_ids = {log.id for log in event.logs}
        newer = [log for log in self.state.logs if log.id not in loaded_ids]
        self.state.logs = list(event.logs) + newer
        self.state.trim_logs()
        logger.info("Logs loaded: %d", len(self.state.logs))

    def _on_task_saved(self, event: TaskSaved) -> None:
        if event.error is None:
            logger.debug("Task %s persisted", event.task_id)
            return

        self.state.notify(f"Failed to save: {event.error}", NotificationLevel.ERROR)
        task_id = event.task_id
        if event.created:
            # Later intents may already have queued upserts for this id.
            self.state.remove_task(task_id)
            self._perform_io(
                self._store.delete_task,
                task_id,
                done=lambda _v, err: TaskDeleted(task_id=task_id, error=err),
            )
        elif event.restore is not None:
            task = self.state.find_task(task_id)
            if task is None or task != event.saved:
                logger.info("Task %s changed after the failed save; keeping current state", task_id)
                return
            task.is_active = event.restore.is_active
            task.next_run = event.restore.next_run

    def _on_task_deleted(self, event: TaskDeleted) -> None:
        if event.error is None:
            logger.debug("Task %s removed from disk", event.task_id)
            return
        self.state.notify(f"Failed to delete: {event.error}", NotificationLevel.ERROR)
        if event.restore is not None and self.state.find_task(event.task_id) is None:
            self.state.upsert_task(event.restore, index=event.index)

    def _on_logs_saved(self, event: LogsSaved) -> None:
        if event.error is not None:
            self.state.notify(f"Failed to save logs: {event.error}", NotificationLevel.ERROR)

    def _on_config_saved(self, event: ConfigSaved) -> None:
        if event.error is not None:
            self.state.notify(f"Failed to save settings: {event.error}", NotificationLevel.ERROR)
            if event.previous is not None and self.state.config is event.config:
                self.state.config = event.previous
            return

        self.state.notify("Settings saved", NotificationLevel.SUCCESS)
        evicted = self.state.trim_logs()
        if evicted:
            logger.info("Evicted %d log entries after max_logs change", evicted)
            self._perform_io(
                self._store.save_logs,
                list(self.state.logs),
                done=lambda _v, err: LogsSaved(error=err),
            )
        self._notify_config(event.config)

    def _on_task_executed(self, event: TaskExecuted) -> None:
        state = self.state
        state.running.discard(event.task_id)

        if event.error is not None or event.result is None:
            state.notify(str(event.error), NotificationLevel.ERROR)
            return

        task = state.find_task(event.task_id)
        if task is None:
            logger.info("Execution finished for deleted task id=%s", event.task_id)
            return

        result = event.result
        now = self._clock()
        task.last_run = now
        task.last_output = result.output
        if result.success:
            task.success_count += 1
        else:
            task.failure_count += 1
        if task.is_active:
            task.schedule_from(now)

        state.append_log(
            ExecutionLog(
                id=str(uuid.uuid4()),
                task_id=task.id,
                timestamp=now,
                success=result.success,
                output=result.output,
                duration_ms=result.duration_ms,
            )
        )

        if result.success:
            state.notify(f"Task '{task.title}' completed successfully", NotificationLevel.SUCCESS)
        else:
            state.notify(f"Task '{task.title}' failed", NotificationLevel.ERROR)

        task_id = task.id
        self._perform_io(
            self._store.save_task,
            replace(task),
            done=lambda _v, err: TaskSaved(task_id=task_id, error=err),
        )
        self._perform_io(
            self._store.save_logs,
            list(state.logs),
            done=lambda _v, err: LogsSaved(error=err),
        )
