# src/task_with_me/core/errors.py

"""
Error kinds surfaced by persistence and execution.

The controller converts every AppError into an error notification; nothing
raised here is allowed to stop the event loop.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all expected failures of the core."""

    label = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class StorageIOError(AppError):
    label = "I/O error"


class SerializationError(AppError):
    label = "Serialization error"


class ConfigError(AppError):
    label = "Configuration error"


class ExecutionError(AppError):
    """The process could not be spawned (not a command that exited non-zero)."""

    label = "Execution error"
