# codewatch/watchdog/events.py

"""
Path events delivered by the file system observer
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


class EventType(Enum):
    """Kinds of change that make a file worth re-reading"""
    WRITE = "write"
    CREATE = "create"
    PERMISSION_CHANGE = "permission_change"


@dataclass(frozen=True)
class PathEvent:
    """One observed change to a path; directories are flagged so they can join the watch set"""
    path: Path
    kind: EventType
    is_directory: bool = False
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    def __str__(self):
        suffix = " (dir)" if self.is_directory else ""
        return f"{self.kind.value}: {self.path}{suffix}"
