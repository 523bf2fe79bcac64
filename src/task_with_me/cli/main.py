# src/task_with_me/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the controller, then runs on one asyncio loop:
- the controller (single writer for all state),
- the tick loop that drives scheduling,
- the console REPL (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

from ..cli.bootstrap import create_controller
from ..config import Settings, get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import AppError
from ..core.events import LoadOnStartup
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import run_tick_loop

logger = logging.getLogger(__name__)


async def _run(settings: Settings) -> None:
    controller = create_controller(settings=settings)
    controller.submit(LoadOnStartup())

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Some platforms (Windows) do not support loop signal handlers.
            pass

    controller_task = asyncio.create_task(controller.run(), name="twm:controller")
    tick_task = asyncio.create_task(
        run_tick_loop(
            controller.submit,
            interval_seconds=lambda: controller.state.config.refresh_interval,
        ),
        name="twm:ticks",
    )

    try:
        if settings.console_enabled:
            await run_console_loop(controller, stop)
        else:
            logger.info("Console disabled. Running scheduler only. Press Ctrl+C to stop.")
            await stop.wait()
    finally:
        tick_task.cancel()
        controller_task.cancel()
        for t in (tick_task, controller_task):
            with contextlib.suppress(asyncio.CancelledError):
                await t
        await controller.aclose()


def main() -> None:
    try:
        settings = get_settings()
    except AppError as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(2) from exc

    # choose console log level from settings.log_level
    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(console_level=console_level)

    logger.info("Starting %s (data_dir=%s)...", settings.app_name, settings.data_dir)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    except AppError as exc:
        logger.error("Startup failed: %s", exc)
        raise SystemExit(1) from exc
    logger.info("Bye.")


if __name__ == "__main__":
    main()
