# janus/watchdog/__init__.py

"""
Janus Watchdog Module
File system observation and change dispatch
"""
from .events import WatchdogEvent, EventType
from .debounce import Debouncer
from .pending import PendingSet
from .handlers import WatchEventHandler
from .watcher import ChangeWatcher, WatcherState

__all__ = [
    'WatchdogEvent',
    'EventType',
    'Debouncer',
    'PendingSet',
    'WatchEventHandler',
    'ChangeWatcher',
    'WatcherState',
]
