# src/task_with_me/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.controller import Controller
from ..core.events import (
    ClearNotifications,
    CreateTask,
    DeleteTask,
    ExecuteTask,
    SaveSettings,
    SetFilter,
    SetSearch,
    ToggleTask,
)
from ..tasks.task_models import TaskFilter, Theme, format_duration, success_rate
from ..tasks.task_templates import get_templates

# (controller, whitespace-split args, raw text after the command name)
CommandHandler = Callable[[Controller, list[str], str], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, controller: Controller, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        body = line[1:].strip()
        if not body:
            return "Empty command. Use /help to list available commands."

        name, _, raw = body.partition(" ")
        name = name.lower()
        raw = raw.strip()

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        logger.debug("Command /%s args=%r", name, raw)
        return handler(controller, raw.split(), raw)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _ts(ts: datetime | None) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "-"


def _resolve(controller: Controller, args: list[str]) -> tuple[str | None, str | None]:
    """(task_id, error_reply)"""
    if not args:
        return None, "Missing task id."
    task_id = controller.state.resolve_task_id(args[0])
    if task_id is None:
        return None, f"No unique task matches '{args[0]}'."
    return task_id, None


def cmd_help(controller: Controller, args: list[str], raw: str) -> str:
    return registry.build_help()


def cmd_status(controller: Controller, args: list[str], raw: str) -> str:
    ov = controller.state.overview()
    return (
        "Status:\n"
        f"  Tasks: {ov['total']} (active {ov['active']}, running {ov['running']})\n"
        f"  Logs: {ov['logs']}"
    )


def cmd_list(controller: Controller, args: list[str], raw: str) -> str:
    state = controller.state
    tasks = state.filtered_tasks()
    if not tasks:
        return "No tasks."
    lines = [f"Tasks (filter={state.task_filter.value}, search={state.search_query!r}):"]
    for t in tasks:
        flag = "ON " if t.is_active else "OFF"
        running = " [running]" if t.id in state.running else ""
        lines.append(
            f"  {t.id[:8]} {flag} {t.title} every {format_duration(t.interval_seconds)}"
            f" | next {_ts(t.next_run)} | ok {t.success_count} / fail {t.failure_count}"
            f" ({success_rate(t):.0f}%){running}"
        )
        lines.append(f"           $ {t.command}")
    return "\n".join(lines)


def cmd_add(controller: Controller, args: list[str], raw: str) -> str:
    """
    /add <interval_seconds> <title> | <command>
    """
    interval, _, rest = raw.partition(" ")
    title, sep, command = rest.partition("|")
    if not sep:
        return "Usage: /add <interval_seconds> <title> | <command>"
    controller.submit(CreateTask(title=title.strip(), command=command.strip(), interval=interval))
    return "Create requested."


def cmd_toggle(controller: Controller, args: list[str], raw: str) -> str:
    task_id, err = _resolve(controller, args)
    if err:
        return err
    controller.submit(ToggleTask(task_id=task_id))
    return "Toggle requested."


def cmd_run(controller: Controller, args: list[str], raw: str) -> str:
    task_id, err = _resolve(controller, args)
    if err:
        return err
    controller.submit(ExecuteTask(task_id=task_id))
    return "Run requested."


def cmd_rm(controller: Controller, args: list[str], raw: str) -> str:
    task_id, err = _resolve(controller, args)
    if err:
        return err
    controller.submit(DeleteTask(task_id=task_id))
    return "Delete requested."


def cmd_logs(controller: Controller, args: list[str], raw: str) -> str:
    """
    /logs          -> last 20 runs
    /logs <id> [n] -> last n runs of one task
    """
    state = controller.state
    task_id: str | None = None
    limit = 20
    if args:
        task_id, err = _resolve(controller, args)
        if err:
            return err
        if len(args) > 1 and args[1].isdigit():
            limit = int(args[1])

    logs = state.logs_for_task(task_id)[-limit:]
    if not logs:
        return "No execution logs."

    titles = {t.id: t.title for t in state.tasks}
    lines = ["Execution logs (oldest first):"]
    for log in logs:
        status = "OK  " if log.success else "FAIL"
        title = titles.get(log.task_id, f"<deleted {log.task_id[:8]}>")
        lines.append(f"  {_ts(log.timestamp)} {status} {title} ({log.duration_ms} ms)")
        if log.output:
            first = log.output.splitlines()[0]
            lines.append(f"      {first}")
    return "\n".join(lines)


def cmd_notes(controller: Controller, args: list[str], raw: str) -> str:
    """
    /notes        -> list notifications
    /notes clear  -> drop all notifications
    """
    if args and args[0].lower() == "clear":
        controller.submit(ClearNotifications())
        return "Notifications cleared."
    notes = list(controller.state.notifications)
    if not notes:
        return "No notifications."
    return "\n".join(f"  {_ts(n.timestamp)} [{n.level.value}] {n.message}" for n in notes)


def cmd_settings(controller: Controller, args: list[str], raw: str) -> str:
    cfg = controller.state.config
    return (
        "Settings:\n"
        f"  refresh_interval: {cfg.refresh_interval}s\n"
        f"  max_logs: {cfg.max_logs}\n"
        f"  theme: {cfg.theme.value}\n"
        f"  log_to_file: {cfg.log_to_file}"
    )


def cmd_set(controller: Controller, args: list[str], raw: str) -> str:
    """
    /set refresh=5 max_logs=200 theme=light log_to_file=off
    """
    values: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            return "Usage: /set key=value ... (refresh, max_logs, theme, log_to_file)"
        values[key.strip().lower()] = value.strip()

    theme: Theme | None = None
    if "theme" in values:
        theme = Theme.parse(values["theme"])
        if theme is None:
            return "Theme must be 'light' or 'dark'."

    log_to_file: bool | None = None
    if "log_to_file" in values:
        log_to_file = values["log_to_file"].lower() in {"1", "true", "yes", "y", "on"}

    controller.submit(
        SaveSettings(
            refresh_interval=values.get("refresh"),
            max_logs=values.get("max_logs"),
            theme=theme,
            log_to_file=log_to_file,
        )
    )
    return "Settings save requested."


def cmd_search(controller: Controller, args: list[str], raw: str) -> str:
    controller.submit(SetSearch(query=raw))
    return f"Search set to {raw!r}." if raw else "Search cleared."


def cmd_filter(controller: Controller, args: list[str], raw: str) -> str:
    if not args:
        return "Usage: /filter all|active|inactive"
    try:
        task_filter = TaskFilter(args[0].lower())
    except ValueError:
        return "Usage: /filter all|active|inactive"
    controller.submit(SetFilter(task_filter=task_filter))
    return f"Filter set to {task_filter.value}."


def cmd_templates(controller: Controller, args: list[str], raw: str) -> str:
    lines = ["Templates:"]
    for i, tpl in enumerate(get_templates(), start=1):
        lines.append(
            f"  {i}. {tpl.name} - {tpl.description} (every {format_duration(tpl.interval)})"
        )
        lines.append(f"       $ {tpl.command}")
    return "\n".join(lines)


def cmd_template(controller: Controller, args: list[str], raw: str) -> str:
    templates = get_templates()
    if not args or not args[0].isdigit() or not 1 <= int(args[0]) <= len(templates):
        return f"Usage: /template <1-{len(templates)}>"
    tpl = templates[int(args[0]) - 1]
    controller.submit(CreateTask(title=tpl.name, command=tpl.command, interval=tpl.interval))
    return f"Template loaded: {tpl.name}. Create requested."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Task/run/log counters.")
registry.register("list", cmd_list, help_text="List tasks (honours /search and /filter).", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <seconds> <title> | <command>.")
registry.register("toggle", cmd_toggle, help_text="Activate/pause a task: /toggle <id>.")
registry.register("run", cmd_run, help_text="Run a task now: /run <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["delete"])
registry.register("logs", cmd_logs, help_text="Execution history: /logs [id] [n].")
registry.register("notes", cmd_notes, help_text="Notifications: /notes | /notes clear.")
registry.register("settings", cmd_settings, help_text="Show persisted settings.")
registry.register("set", cmd_set, help_text="Save settings: /set refresh=5 max_logs=500 theme=dark log_to_file=on.")
registry.register("search", cmd_search, help_text="Filter tasks by title/command text.")
registry.register("filter", cmd_filter, help_text="Filter tasks: /filter all|active|inactive.")
registry.register("templates", cmd_templates, help_text="List built-in task templates.")
registry.register("template", cmd_template, help_text="Create a task from a template: /template <n>.")
