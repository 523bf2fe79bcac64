# src/task_with_me/logging_setup.py

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_FILE_NAME = "task-with-me.log"

_FORMATTER = logging.Formatter(
    fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_file_handler: logging.FileHandler | None = None


class _ConsoleNoiseFilter(logging.Filter):
    """
    Make interactive console usable:
    - allow task_with_me logs
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress third-party noise unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("task_with_me"):
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # Any other 3rd party: only errors to console.
        return record.levelno >= logging.ERROR


def setup_logging(*, console_level: int = logging.INFO) -> None:
    """
    Configure the root logger with a filtered stderr console handler.

    File logging is toggled separately by set_file_logging(), because the
    log_to_file flag lives in the persisted config.

    Call this ONCE, very early (before first logger.info).
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(_FORMATTER)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)


def set_file_logging(
    enabled: bool,
    log_dir: str | Path,
    *,
    file_level: int = logging.DEBUG,
) -> Path | None:
    """Install or remove the full-detail file handler. Returns the log path when on."""
    global _file_handler

    root = logging.getLogger()
    log_file = Path(log_dir) / LOG_FILE_NAME

    if _file_handler is not None:
        if enabled and _file_handler.baseFilename == os.path.abspath(log_file):
            return log_file
        root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None

    if not enabled:
        return None

    log_file.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(_FORMATTER)
    root.addHandler(fh)
    _file_handler = fh
    return log_file
