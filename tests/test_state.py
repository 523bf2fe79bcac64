# tests/test_state.py

from __future__ import annotations

from datetime import datetime, timezone

from task_with_me.core.state import MAX_NOTIFICATIONS, AppState, NotificationLevel
from task_with_me.tasks.task_models import Config, ExecutionLog, Task, TaskFilter

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _task(task_id: str, title: str, command: str = "true", active: bool = False) -> Task:
    return Task(
        id=task_id,
        title=title,
        command=command,
        interval_seconds=60,
        created_at=NOW,
        is_active=active,
        next_run=NOW if active else None,
    )


def _log(i: int, task_id: str = "a") -> ExecutionLog:
    return ExecutionLog(id=f"l{i}", task_id=task_id, timestamp=NOW, success=True, output=str(i), duration_ms=1)


def test_notifications_keep_the_newest_ten() -> None:
    state = AppState()
    for i in range(MAX_NOTIFICATIONS + 3):
        state.notify(f"message {i}")

    messages = [n.message for n in state.notifications]
    assert len(messages) == MAX_NOTIFICATIONS
    assert messages[0] == "message 3"
    assert messages[-1] == f"message {MAX_NOTIFICATIONS + 2}"


def test_notify_calls_listeners_and_survives_broken_ones() -> None:
    state = AppState()
    seen = []

    def broken(_note) -> None:
        raise RuntimeError("listener bug")

    state.listeners.extend([broken, seen.append])
    note = state.notify("Settings saved", NotificationLevel.SUCCESS)

    assert seen == [note]
    assert note.level == NotificationLevel.SUCCESS


def test_close_notification() -> None:
    state = AppState()
    first = state.notify("one")
    second = state.notify("two")

    state.close_notification(first.id)
    state.close_notification("unknown")

    assert list(state.notifications) == [second]
    assert state.notifications.maxlen == MAX_NOTIFICATIONS


def test_trim_logs_evicts_oldest_first() -> None:
    state = AppState(config=Config(max_logs=3))
    state.logs = [_log(i) for i in range(5)]

    assert state.trim_logs() == 2
    assert [log.id for log in state.logs] == ["l2", "l3", "l4"]
    assert state.trim_logs() == 0


def test_append_log_respects_max_logs() -> None:
    state = AppState(config=Config(max_logs=2))
    for i in range(4):
        state.append_log(_log(i))

    assert [log.id for log in state.logs] == ["l2", "l3"]


def test_logs_for_task() -> None:
    state = AppState()
    state.logs = [_log(0, "a"), _log(1, "b"), _log(2, "a")]

    assert [log.id for log in state.logs_for_task("a")] == ["l0", "l2"]
    assert len(state.logs_for_task(None)) == 3


def test_upsert_and_remove_keep_positions() -> None:
    state = AppState(tasks=[_task("a", "A"), _task("b", "B"), _task("c", "C")])

    removed = state.remove_task("b")
    assert removed is not None
    task, index = removed
    assert index == 1
    assert state.remove_task("b") is None

    state.upsert_task(task, index=index)
    assert [t.id for t in state.tasks] == ["a", "b", "c"]

    state.upsert_task(_task("b", "B renamed"))
    assert [t.title for t in state.tasks] == ["A", "B renamed", "C"]


def test_filtered_tasks_by_search_and_filter() -> None:
    state = AppState(
        tasks=[
            _task("1", "Backup Documents", "tar -czf backup.tar.gz ~/Documents", active=True),
            _task("2", "Check Disk Space", "df -h"),
            _task("3", "Health Ping", "curl -fsS https://example.org", active=True),
        ]
    )

    state.search_query = "  BACKUP "
    assert [t.id for t in state.filtered_tasks()] == ["1"]

    state.search_query = "df"
    assert [t.id for t in state.filtered_tasks()] == ["2"]

    state.search_query = ""
    state.task_filter = TaskFilter.ACTIVE
    assert [t.id for t in state.filtered_tasks()] == ["1", "3"]

    state.task_filter = TaskFilter.INACTIVE
    assert [t.id for t in state.filtered_tasks()] == ["2"]


def test_resolve_task_id() -> None:
    state = AppState(tasks=[_task("abc123", "A"), _task("abd456", "B"), _task("ab", "C")])

    assert state.resolve_task_id("abc") == "abc123"
    assert state.resolve_task_id("ab") == "ab"
    assert state.resolve_task_id("a") is None
    assert state.resolve_task_id("zzz") is None
    assert state.resolve_task_id("  ") is None


def test_overview_counts() -> None:
    state = AppState(tasks=[_task("a", "A", active=True), _task("b", "B")])
    state.running.add("a")
    state.logs = [_log(0)]

    assert state.overview() == {"total": 2, "active": 1, "running": 1, "logs": 1}
