# janus/watchdog/watcher.py

"""
Change watcher: turns file system events into synchronisation actions
"""
import asyncio
import logging
import queue
import threading
from concurrent.futures import Future
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from janus.core.filters import Filter, FilterEngine
from janus.core.models import WatchConfiguration
from janus.core.notifications import NotificationCenter
from janus.errors import SyncIOError
from janus.sync.base import Synchroniser
from janus.sync.metadata import MetaDataSynchroniser

from .debounce import Debouncer
from .events import EventType, WatchdogEvent
from .handlers import WatchEventHandler
from .pending import PendingSet

logger = logging.getLogger(__name__)


class WatcherState(Enum):
    CREATED = "created"
    WATCHING = "watching"
    DISABLED = "disabled"
    STOPPED = "stopped"


class ChangeWatcher:
    """
    Watches one directory and mirrors it through a Synchroniser.

    In automatic mode (auto_add / auto_delete) accepted changes are
    dispatched straight away. In manual mode they are collected in a
    PendingSet until synchronise() is called.

    With observe=True no OS watch is installed; events can still be fed
    through handle_event(). All state changes go through one lock, shared
    by the event consumer thread and the manual API.
    """

    def __init__(self, configuration: WatchConfiguration,
                 synchroniser: Optional[Synchroniser] = None,
                 notifications: Optional[NotificationCenter] = None,
                 queue_size: int = 1000,
                 use_polling: bool = False,
                 poll_interval: float = 1.0,
                 sync_workers: int = 4,
                 preserve_metadata: bool = True):
        """
        Initialize change watcher

        Args:
            configuration: Watch configuration
            synchroniser: Synchroniser to dispatch to. A MetaDataSynchroniser
                owned by this watcher is created when omitted.
            notifications: Channel for user-facing messages
            queue_size: Capacity of the observer -> consumer event queue
            use_polling: Use polling instead of OS events
            poll_interval: Polling interval in seconds
            sync_workers: Worker threads for an owned synchroniser
            preserve_metadata: Passed to an owned synchroniser
        """
        self.configuration = configuration
        self.notifications = notifications or NotificationCenter()
        self.filter_engine = FilterEngine(configuration.filters, on_error=self._on_filter_error)

        self._owns_synchroniser = synchroniser is None
        if synchroniser is None:
            synchroniser = MetaDataSynchroniser(
                configuration,
                filter_engine=self.filter_engine,
                on_error=self._on_sync_error,
                max_workers=sync_workers,
                preserve_metadata=preserve_metadata,
            )
        self.synchroniser = synchroniser

        self.pending = PendingSet()
        self.debouncer = Debouncer(configuration.delay / 1000.0)
        self.use_polling = use_polling
        self.poll_interval = poll_interval

        self._lock = threading.RLock()
        self._events_enabled = False
        # Last accepted add/modify path; only back-to-back duplicates are dropped
        self._last_path: Optional[str] = None

        self.observer = None
        self.event_queue: "queue.Queue[Optional[WatchdogEvent]]" = queue.Queue(maxsize=queue_size)
        self.handler = WatchEventHandler(self.event_queue)
        self._consumer: Optional[threading.Thread] = None
        self._full_sync: Optional[Future] = None

        self.state = WatcherState.CREATED
        self.stats = {
            'start_time': None,
            'events_accepted': 0,
            'events_excluded': 0,
            'events_duplicate': 0,
            'events_suppressed': 0,
            'dispatched_add': 0,
            'dispatched_delete': 0,
        }

        if self.observe:
            self._events_enabled = True
            logger.info(f"ChangeWatcher '{configuration.name}' created in observe mode")
            return

        self.start()

    @property
    def name(self) -> str:
        return self.configuration.name

    @property
    def observe(self) -> bool:
        return self.configuration.observe

    @property
    def events_enabled(self) -> bool:
        return self._events_enabled

    def start(self) -> bool:
        """Install the OS watch and start consuming events"""
        if self.observe:
            return False
        if self.state == WatcherState.STOPPED:
            logger.warning(f"Watcher '{self.name}' is stopped and cannot be restarted")
            return False
        if self.observer is not None:
            return True

        directory = Path(self.configuration.watch_directory)
        if not directory.is_dir():
            logger.error(f"Watch directory does not exist: {directory}")
            return False

        try:
            if self.use_polling:
                observer = PollingObserver(timeout=self.poll_interval)
            else:
                observer = Observer()
            observer.schedule(self.handler, str(directory), recursive=self.configuration.recursive)
            observer.start()
        except Exception as e:
            logger.error(f"Failed to start watching {directory}: {e}")
            return False

        self.observer = observer
        self._consumer = threading.Thread(
            target=self._consume, name=f"janus-watcher-{self.name}", daemon=True
        )
        self._consumer.start()

        self.stats['start_time'] = datetime.now()
        self.enable_events()
        logger.info(f"Started watching directory: {directory} "
                    f"(recursive: {self.configuration.recursive})")
        return True

    def _consume(self):
        while True:
            event = self.event_queue.get()
            try:
                if event is None:
                    return
                self.handle_event(event)
            except Exception as e:
                logger.error(f"Error handling event {event}: {e}")
            finally:
                self.event_queue.task_done()

    def handle_event(self, event: WatchdogEvent) -> bool:
        """
        Filter, de-duplicate and dispatch or queue one event

        Args:
            event: Converted file system event

        Returns:
            True if the event changed anything
        """
        with self._lock:
            if not self._events_enabled:
                self.stats['events_suppressed'] += 1
                return False

            if event.event_type == EventType.MOVED:
                removed = self._on_deleted(event.src_path)
                added = self._on_written(event.dest_path) if event.dest_path else False
                return removed or added

            if event.is_write:
                return self._on_written(event.src_path)

            return self._on_deleted(event.src_path)

    def _on_written(self, path: str) -> bool:
        if self.filter_engine.should_exclude(path):
            self.stats['events_excluded'] += 1
            return False

        if path == self._last_path:
            self.stats['events_duplicate'] += 1
            logger.debug(f"Dropping duplicate event for {path}")
            return False
        self._last_path = path
        self.stats['events_accepted'] += 1

        if self.pending.discard_delete(path):
            logger.debug(f"Removed {path} from pending deletes")

        if self.configuration.auto_add:
            logger.info(f"Copying {path}")
            self.stats['dispatched_add'] += 1
            self.debouncer.submit(path, lambda: self.synchroniser.add(path))
        else:
            logger.info(f"Marked {path} for copying")
            self.pending.mark_copy(path)
        return True

    def _on_deleted(self, path: str) -> bool:
        if self.filter_engine.should_exclude(path):
            self.stats['events_excluded'] += 1
            return False

        self.stats['events_accepted'] += 1
        if path == self._last_path:
            # a re-creation after this delete is not a duplicate
            self._last_path = None

        if self.pending.discard_copy(path):
            logger.debug(f"Removed {path} from pending copies")

        if self.configuration.auto_delete:
            logger.info(f"Deleting {path}")
            self.stats['dispatched_delete'] += 1
            self.debouncer.submit(path, lambda: self.synchroniser.delete(path))
        else:
            logger.info(f"Marked {path} for deletion")
            self.pending.mark_delete(path)
        return True

    def synchronise(self) -> List[Future]:
        """
        Flush pending copies and deletes to the synchroniser

        Returns:
            Futures of the submitted operations
        """
        with self._lock:
            copy_count, delete_count = self.pending.counts()
            if copy_count + delete_count == 0:
                self.notifications.info("Sync Completed.", "No files were changed.")
                return []
            to_copy, to_delete = self.pending.drain()

        futures = []
        for path in to_copy:
            logger.info(f"Manually copying {path}")
            futures.append(self.synchroniser.add(path))

        for path in to_delete:
            logger.info(f"Manually deleting {path}")
            futures.append(self.synchroniser.delete(path))

        self.notifications.info(
            "Sync Completed.",
            f"Finished copying {copy_count} files, and deleting {delete_count} files."
        )
        return futures

    async def synchronise_async(self) -> List[Future]:
        """Run synchronise() in a worker thread"""
        return await asyncio.to_thread(self.synchronise)

    def do_initial_synchronise(self) -> Future:
        """Start a full reconciliation of the sync directory"""
        self._full_sync = self.synchroniser.full_synchronise()
        return self._full_sync

    def add_filter(self, flt: Filter):
        with self._lock:
            self.filter_engine.add_filter(flt)

    def enable_events(self) -> bool:
        """Turn event handling back on. Not possible after stop()."""
        with self._lock:
            if self.state == WatcherState.STOPPED:
                logger.warning(f"Watcher '{self.name}' is stopped, cannot enable events")
                return False
            self._events_enabled = True
            self.state = WatcherState.WATCHING if self.observer else WatcherState.CREATED
            return True

    def disable_events(self) -> bool:
        """Suppress events; configuration and pending changes are kept"""
        with self._lock:
            if self.state == WatcherState.STOPPED:
                return False
            self._events_enabled = False
            self.state = WatcherState.DISABLED
            return True

    def stop(self):
        """
        Stop watching for good.

        Releases the OS watch, stops the consumer, drops debounced
        dispatches and cancels a running full reconciliation. Use
        disable_events() to pause temporarily.
        """
        if self.state == WatcherState.STOPPED:
            return

        logger.info(f"Stopping watcher for {self.configuration.watch_directory}")
        self.disable_events()
        with self._lock:
            self.state = WatcherState.STOPPED

        if self.observer is not None:
            try:
                self.observer.stop()
                self.observer.join(timeout=10)
            except Exception as e:
                logger.error(f"Error stopping observer for {self.configuration.watch_directory}: {e}")
            self.observer = None

        if self._consumer is not None:
            self.event_queue.put(None)
            self._consumer.join(timeout=10)
            self._consumer = None

        self.debouncer.cancel_all()
        self.synchroniser.cancel()
        if self._owns_synchroniser:
            self.synchroniser.shutdown(wait=False)

    def _on_filter_error(self, pattern, error: Exception):
        self.notifications.warning(
            "Invalid Filter",
            f"Pattern {pattern!r} in watcher '{self.name}' could not be matched: {error}"
        )

    def _on_sync_error(self, error: SyncIOError):
        self.notifications.warning("Sync Failed", str(error))

    def get_status(self) -> Dict[str, Any]:
        """Get watcher status"""
        copy_count, delete_count = self.pending.counts()
        return {
            'name': self.name,
            'watch_directory': self.configuration.watch_directory,
            'sync_directory': self.configuration.sync_directory,
            'state': self.state.value,
            'observe': self.observe,
            'pending_copy': copy_count,
            'pending_delete': delete_count,
            'stats': {**self.stats, **self.handler.get_stats()},
            'filters': self.filter_engine.get_stats(),
            'debounce': self.debouncer.get_stats(),
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, ChangeWatcher):
            return NotImplemented
        return self.observe == other.observe and self.configuration == other.configuration

    def __hash__(self) -> int:
        return hash((self.observe,) + self.configuration.identity())

    def __repr__(self) -> str:
        return f"ChangeWatcher({self.name!r}, {self.state.value})"
