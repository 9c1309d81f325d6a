# janus/watchdog/events.py

"""
Internal representation of file system events
"""
from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class EventType(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass
class WatchdogEvent:
    event_type: EventType
    src_path: str
    dest_path: Optional[str] = None
    is_directory: bool = False
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    @property
    def is_write(self) -> bool:
        return self.event_type in (EventType.CREATED, EventType.MODIFIED)

    def __str__(self):
        if self.dest_path:
            return f"{self.event_type.value}: {self.src_path} -> {self.dest_path}"
        return f"{self.event_type.value}: {self.src_path}"
