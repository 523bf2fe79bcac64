# src/task_with_me/config.py

"""Process settings loaded from environment variables (+ optional .env).

These are the knobs that exist before the persisted config document is read:
where the data lives, how loud logging is, whether the console runs. The
user-editable settings (refresh interval, log retention, theme) live in
config.json and are handled by TaskStore.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from .core.errors import ConfigError

ENV_PREFIX = "TWM"
APP_DIR_NAME = "task-with-me"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def default_data_dir(platform: str | None = None) -> Path:
    """
    Per-user local application-data directory, namespaced by app name.

    Windows: %LOCALAPPDATA%, macOS: ~/Library/Application Support,
    others: $XDG_DATA_HOME or ~/.local/share.
    """
    platform = platform or sys.platform
    try:
        if platform.startswith("win"):
            base = os.getenv("LOCALAPPDATA")
            root = Path(base) if base else Path.home() / "AppData" / "Local"
        elif platform == "darwin":
            root = Path.home() / "Library" / "Application Support"
        else:
            base = os.getenv("XDG_DATA_HOME")
            root = Path(base) if base else Path.home() / ".local" / "share"
    except RuntimeError as exc:
        raise ConfigError(f"Cannot determine data directory: {exc}") from exc
    return root / APP_DIR_NAME


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Front-end ----
    console_enabled: bool

    # ---- Local data ----
    data_dir: Path

    # ---- Execution ----
    command_timeout: float | None

    @staticmethod
    def from_env() -> "Settings":
        _load_dotenv_if_available()

        app_name = _env(_k("APP_NAME"), "task-with-me") or "task-with-me"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        raw_dir = _env(_k("DATA_DIR")).strip()
        data_dir = Path(raw_dir).expanduser() if raw_dir else default_data_dir()

        timeout = _env_float(_k("COMMAND_TIMEOUT"), None)
        command_timeout = timeout if timeout is not None and timeout > 0 else None

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            command_timeout=command_timeout,
        )


def get_settings() -> Settings:
    return Settings.from_env()
