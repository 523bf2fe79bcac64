# src/task_with_me/tasks/task_templates.py

from __future__ import annotations

import sys
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TaskTemplate:
    name: str
    description: str
    command: str
    interval: int


def get_templates(platform: str | None = None) -> list[TaskTemplate]:
    """Built-in starter tasks with commands for the given (or current) platform."""
    platform = platform or sys.platform
    windows = platform.startswith("win")

    return [
        TaskTemplate(
            name="System Cleanup",
            description="Remove temp files",
            command=(
                "del /q /s %TEMP%\\*.tmp"
                if windows
                else "find /tmp -name '*.tmp' -mtime +7 -delete"
            ),
            interval=3600,
        ),
        TaskTemplate(
            name="Backup Documents",
            description="Create backup archive",
            command=(
                "echo Backup complete"
                if windows
                else "tar -czf ~/backups/docs-$(date +%Y%m%d).tar.gz ~/Documents"
            ),
            interval=86400,
        ),
        TaskTemplate(
            name="Check Disk Space",
            description="Monitor disk usage",
            command="wmic logicaldisk get size,freespace" if windows else "df -h",
            interval=300,
        ),
        TaskTemplate(
            name="Health Ping",
            description="Test network connectivity",
            command="ping -n 4 8.8.8.8" if windows else "ping -c 4 8.8.8.8",
            interval=60,
        ),
    ]
