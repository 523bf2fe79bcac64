# tests/test_models.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from task_with_me.tasks.task_models import (
    Task,
    Theme,
    format_duration,
    success_rate,
)
from task_with_me.tasks.task_templates import get_templates

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _task(success: int = 0, failure: int = 0) -> Task:
    return Task(
        id="t1",
        title="Ping",
        command="true",
        interval_seconds=90,
        created_at=NOW,
        success_count=success,
        failure_count=failure,
    )


def test_success_rate() -> None:
    assert success_rate(_task(7, 3)) == pytest.approx(70.0)
    assert success_rate(_task(0, 0)) == 0.0
    assert success_rate(_task(0, 4)) == 0.0


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(45, "45s"), (120, "2m"), (7200, "2h"), (172800, "2d"), (3599, "59m")],
)
def test_format_duration(seconds: int, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_theme_parse() -> None:
    assert Theme.parse("light") is Theme.LIGHT
    assert Theme.parse(" Dark ") is Theme.DARK
    assert Theme.parse("solarized") is None
    assert Theme.parse(None) is None


def test_schedule_from_adds_interval() -> None:
    task = _task()
    task.schedule_from(NOW)
    assert task.next_run == NOW + timedelta(seconds=90)


def test_last_output_does_not_affect_equality() -> None:
    a = _task()
    b = _task()
    b.last_output = "different"
    assert a == b


@pytest.mark.parametrize("platform", ["linux", "win32"])
def test_templates_are_valid_task_inputs(platform: str) -> None:
    templates = get_templates(platform)

    assert [t.name for t in templates] == [
        "System Cleanup",
        "Backup Documents",
        "Check Disk Space",
        "Health Ping",
    ]
    for template in templates:
        assert template.command.strip()
        assert template.interval > 0
