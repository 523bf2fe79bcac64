# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

import pytest

from task_with_me.core.controller import Controller
from task_with_me.core.state import AppState
from task_with_me.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeCommandRunner


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "data")


@pytest.fixture()
def runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture()
def controller(store: TaskStore, runner: FakeCommandRunner, clock: FakeClock) -> Iterator[Controller]:
    """
    Controller wired with a real TaskStore (tmp dir) and a fake runner.

    The store stays real because persistence is part of what the scenarios check;
    process execution is faked so tests are fast and deterministic.
    """
    io = ThreadPoolExecutor(max_workers=1, thread_name_prefix="test-io")
    yield Controller(AppState(), store, runner, clock=clock, io_executor=io)
    io.shutdown(wait=True)
