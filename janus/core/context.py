# janus/core/context.py

"""
Application context: owns the watchers, the data provider and the store
"""
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

from janus.core.models import DataProvider, JanusData, WatchConfiguration
from janus.core.notifications import NotificationCenter
from janus.storage.store import DataStore
from janus.watchdog.watcher import ChangeWatcher

logger = logging.getLogger(__name__)

WatcherFactory = Callable[[WatchConfiguration, NotificationCenter], ChangeWatcher]


class AppContext:
    """
    Runtime root of the application.

    Every structural change (add or remove of a watcher) rewrites the
    store with the current configurations and data provider.
    """

    def __init__(self, store: DataStore,
                 notifications: Optional[NotificationCenter] = None,
                 watcher_factory: Optional[WatcherFactory] = None,
                 **watcher_options):
        """
        Initialize application context

        Args:
            store: Persistent store
            notifications: Shared notification channel; the store's own
                channel is used when omitted
            watcher_factory: Builds a watcher from a configuration. Defaults
                to ChangeWatcher with watcher_options.
            **watcher_options: Extra keyword arguments for ChangeWatcher
        """
        self.store = store
        self.notifications = notifications or store.notifications
        self.watcher_factory = watcher_factory or self._default_factory
        self.watcher_options = watcher_options

        self.watchers: List[ChangeWatcher] = []
        self.data_provider = DataProvider()
        self._lock = threading.RLock()
        self._loaded = False

    @classmethod
    def from_config(cls, config) -> "AppContext":
        """Build a context from a janus.utils.config.Config"""
        notifications = NotificationCenter()
        store = DataStore(
            config.paths.store_path,
            version=config.storage.format_version,
            notifications=notifications,
        )
        return cls(
            store,
            notifications=notifications,
            queue_size=config.watchdog.queue_size,
            use_polling=config.watchdog.use_polling,
            poll_interval=config.watchdog.poll_interval,
            sync_workers=config.sync.max_workers,
            preserve_metadata=config.sync.preserve_metadata,
        )

    def _default_factory(self, configuration: WatchConfiguration,
                         notifications: NotificationCenter) -> ChangeWatcher:
        return ChangeWatcher(configuration, notifications=notifications, **self.watcher_options)

    def load(self) -> int:
        """
        Load the store and build a watcher per stored configuration

        Loading never writes the store back. A context loads once; later
        calls do nothing and return 0.

        Returns:
            Number of watchers created
        """
        with self._lock:
            if self._loaded:
                logger.warning("Context already loaded, ignoring load()")
                return 0
            self._loaded = True

        self.store.initialise()
        data = self.store.load()

        with self._lock:
            self.data_provider = data.data_provider
            for configuration in data.watchers:
                self.watchers.append(self._create_watcher(configuration))
            count = len(data.watchers)

        logger.info(f"Context loaded with {count} watchers")
        return count

    def _create_watcher(self, configuration: WatchConfiguration) -> ChangeWatcher:
        watcher = self.watcher_factory(configuration, self.notifications)
        logger.info(f"Added watcher '{configuration.name}': "
                    f"{configuration.watch_directory} -> {configuration.sync_directory}")
        return watcher

    def add_watcher(self, configuration: WatchConfiguration) -> Optional[ChangeWatcher]:
        """
        Create a watcher for configuration and persist it

        The watcher is only kept if the store could be rewritten with it.

        Returns:
            The new watcher, or None if the store write failed
        """
        with self._lock:
            watcher = self._create_watcher(configuration)
            self.watchers.append(watcher)
            if self.update_store():
                return watcher
            self.watchers.pop()

        watcher.stop()
        logger.error(f"Watcher '{configuration.name}' was not added: the store could not be written")
        return None

    def remove_watcher(self, watcher: ChangeWatcher) -> bool:
        """
        Stop and forget a watcher, then persist

        Watchers compare by configuration, so removal goes by identity to
        leave an equal sibling in place.

        Returns:
            True if the watcher was known
        """
        with self._lock:
            index = next((i for i, w in enumerate(self.watchers) if w is watcher), None)
            if index is None:
                logger.warning(f"Watcher '{watcher.name}' is not registered")
                return False
            del self.watchers[index]
            self.update_store()

        watcher.stop()
        self.notifications.info("Removed Watcher", "Removed watcher successfully.")
        return True

    def find_watcher(self, name: str) -> Optional[ChangeWatcher]:
        with self._lock:
            return next((w for w in self.watchers if w.name == name), None)

    def snapshot(self) -> JanusData:
        """Current configurations and data provider as a persistable value"""
        with self._lock:
            return JanusData(
                watchers=[w.configuration for w in self.watchers],
                data_provider=self.data_provider,
            )

    def update_store(self) -> bool:
        """Rewrite the store from the current state"""
        return self.store.store(self.snapshot())

    def initial_synchronise_all(self) -> List[Future]:
        """Start a full reconciliation on every watcher that is not observing"""
        with self._lock:
            watchers = [w for w in self.watchers if not w.observe]
        return [w.do_initial_synchronise() for w in watchers]

    def synchronise_all(self) -> List[Future]:
        """Flush pending changes of every watcher"""
        with self._lock:
            watchers = list(self.watchers)
        futures = []
        for watcher in watchers:
            futures.extend(watcher.synchronise())
        return futures

    def stop_all(self):
        """Stop every watcher; configurations stay in the store"""
        with self._lock:
            watchers = list(self.watchers)
        for watcher in watchers:
            try:
                watcher.stop()
            except Exception as e:
                logger.error(f"Error stopping watcher '{watcher.name}': {e}")

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'store': str(self.store.path),
                'watchers': [w.get_status() for w in self.watchers],
                'values': len(self.data_provider),
            }
