# src/task_with_me/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.controller import Controller
from ..core.state import Notification

logger = logging.getLogger(__name__)

_EOF = object()


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _print_notification(note: Notification) -> None:
    _print_ts(f"[{note.level.value.upper()}] {note.message}")


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue) -> threading.Thread:
    """
    Read stdin on a daemon thread; a blocked read must never keep the process alive.
    """

    def _reader() -> None:
        while True:
            try:
                line = sys.stdin.readline()
            except (OSError, ValueError):
                line = ""
            if not line:
                loop.call_soon_threadsafe(lines.put_nowait, _EOF)
                return
            loop.call_soon_threadsafe(lines.put_nowait, line.rstrip("\n"))

    t = threading.Thread(target=_reader, name="twm-stdin", daemon=True)
    t.start()
    return t


async def run_console_loop(controller: Controller, stop: asyncio.Event) -> None:
    """
    Interactive front-end: slash commands in, notifications out.

    Command handlers run on the event loop between controller events, so
    reading state there is safe; every change goes through controller.submit().
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.")

    controller.state.listeners.append(_print_notification)

    lines: asyncio.Queue = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines)
    stop_wait = asyncio.ensure_future(stop.wait())

    try:
        while not stop.is_set():
            read = asyncio.ensure_future(lines.get())
            done, _ = await asyncio.wait({read, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
            if read not in done:
                read.cancel()
                break

            item = read.result()
            if item is _EOF:
                logger.info("Console EOF received, exiting.")
                break

            user_input = str(item).strip()
            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                reply = command_registry.handle(controller, user_input)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Not a command. Use /help to list available commands."
            _print_ts(reply)
    finally:
        stop_wait.cancel()
        if _print_notification in controller.state.listeners:
            controller.state.listeners.remove(_print_notification)

    logger.info("Console connector finished.")
