# src/task_with_me/tasks/task_executor.py

"""
Execution engine.

Runs a task's command string through the host shell and classifies the
outcome by exit status alone. The command is handed to the shell untouched.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import subprocess
import time

from ..core.errors import ExecutionError
from .task_models import ExecutionResult, Task

logger = logging.getLogger(__name__)


def shell_invocation() -> tuple[str, str]:
    """(shell, single-command flag) for the current platform."""
    if os.name == "nt":
        return "cmd", "/C"
    return "sh", "-c"


def _decode(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace").strip()


def _spawn_kwargs() -> dict:
    """Start each command in its own process group so the whole tree can be killed."""
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


async def _kill_process_tree(proc: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started, then reap the shell."""
    if os.name != "nt":
        # The group outlives the shell while any grandchild is alive.
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
    elif proc.returncode is None:
        killer = await asyncio.create_subprocess_exec(
            "taskkill", "/F", "/T", "/PID", str(proc.pid),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await killer.wait()
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
    await proc.wait()


class ShellCommandRunner:
    """
    Async command runner.

    A completed process is always an ExecutionResult, whatever its exit code.
    ExecutionError is raised only when the shell cannot be spawned.

    timeout_seconds=None means the command may run forever. On timeout or
    cancellation the whole process group is killed, grandchildren included.
    """

    def __init__(
        self,
        *,
        shell: tuple[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._shell, self._flag = shell or shell_invocation()
        self._timeout = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None

    async def execute(self, task: Task) -> ExecutionResult:
        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                self._shell,
                self._flag,
                task.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **_spawn_kwargs(),
            )
        except OSError as exc:
            raise ExecutionError(f"cannot spawn {self._shell!r}: {exc}") from exc

        logger.debug("Spawned pid=%s task_id=%s", proc.pid, task.id)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            await _kill_process_tree(proc)
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.warning("Task %s timed out after %ss", task.id, self._timeout)
            return ExecutionResult(
                success=False,
                output=f"Command timed out after {self._timeout:g} seconds",
                duration_ms=duration_ms,
            )
        except asyncio.CancelledError:
            logger.info("Task %s cancelled, killing pid=%s", task.id, proc.pid)
            await _kill_process_tree(proc)
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        success = proc.returncode == 0
        output = _decode(stdout) if success else _decode(stderr)

        logger.info(
            "Task %s finished rc=%s success=%s duration_ms=%d",
            task.id,
            proc.returncode,
            success,
            duration_ms,
        )
        return ExecutionResult(success=success, output=output, duration_ms=duration_ms)
