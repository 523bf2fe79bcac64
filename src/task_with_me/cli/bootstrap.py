# src/task_with_me/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- ensures the local data directory exists,
- wires TaskStore, the shell runner and AppState into a Controller,
- hooks the persisted log_to_file flag up to the file log handler.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.controller import Controller
from ..core.state import AppState
from ..logging_setup import set_file_logging
from ..tasks.task_executor import ShellCommandRunner
from ..tasks.task_models import Config
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def create_controller(*, settings: Settings | None = None) -> Controller:
    """
    Build the controller from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    store = TaskStore(settings.data_dir)
    runner = ShellCommandRunner(timeout_seconds=settings.command_timeout)
    controller = Controller(AppState(), store, runner)

    log_dir = settings.data_dir

    def _apply_file_logging(config: Config) -> None:
        path = set_file_logging(config.log_to_file, log_dir)
        if path is not None:
            logger.debug("File logging enabled at %s", path)

    controller.add_config_listener(_apply_file_logging)
    return controller
