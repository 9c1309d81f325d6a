# janus/watchdog/handlers.py

"""
Bridge from watchdog observer callbacks to a watcher's event queue
"""
import logging
import os
import queue
from datetime import datetime
from typing import Any, Dict, Optional

from watchdog.events import (
    FileSystemEventHandler,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent
)

from .events import WatchdogEvent, EventType

logger = logging.getLogger(__name__)


class WatchEventHandler(FileSystemEventHandler):
    """
    Converts raw watchdog events and puts them on a bounded queue.

    Runs on the observer thread, so it does nothing but convert and
    enqueue; filtering and dispatch happen on the watcher's consumer.
    """

    def __init__(self, event_queue: queue.Queue, put_timeout: float = 5.0):
        """
        Initialize event handler

        Args:
            event_queue: Bounded queue drained by the owning watcher
            put_timeout: Seconds to wait on a full queue before dropping
        """
        self.event_queue = event_queue
        self.put_timeout = put_timeout

        # Statistics
        self.stats = {
            'events_received': 0,
            'events_queued': 0,
            'events_ignored': 0,
            'events_dropped': 0,
            'last_event': None,
        }

    def on_any_event(self, event):
        """Handle any file system event"""
        self.stats['events_received'] += 1
        self.stats['last_event'] = datetime.now()

        watchdog_event = self._convert_event(event)
        if watchdog_event is None:
            self.stats['events_ignored'] += 1
            return

        try:
            self.event_queue.put(watchdog_event, timeout=self.put_timeout)
            self.stats['events_queued'] += 1
        except queue.Full:
            self.stats['events_dropped'] += 1
            logger.warning(f"Event queue full, dropping event: {watchdog_event}")

    def _convert_event(self, event) -> Optional[WatchdogEvent]:
        """Convert watchdog event to our internal format"""
        if isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
            event_type = EventType.CREATED
        elif isinstance(event, FileModifiedEvent):
            event_type = EventType.MODIFIED
        elif isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
            event_type = EventType.DELETED
        elif isinstance(event, (FileMovedEvent, DirMovedEvent)):
            event_type = EventType.MOVED
        else:
            # Directory modifications, opened/closed events
            return None

        dest_path = getattr(event, 'dest_path', None)

        return WatchdogEvent(
            event_type=event_type,
            src_path=os.fsdecode(event.src_path),
            dest_path=os.fsdecode(dest_path) if dest_path else None,
            is_directory=event.is_directory
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics"""
        return self.stats.copy()
