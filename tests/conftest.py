"""Shared fixtures for Janus tests."""

import tempfile
from concurrent.futures import Future
from pathlib import Path
from typing import List, Tuple

import pytest

from janus.core.models import WatchConfiguration
from janus.core.notifications import Notification, NotificationCenter
from janus.sync.base import Synchroniser, SyncReport


def done_future(result=True) -> Future:
    future = Future()
    future.set_result(result)
    return future


class RecordingSynchroniser(Synchroniser):
    """Synchroniser that only records the calls it receives."""

    def __init__(self, configuration: WatchConfiguration):
        super().__init__(configuration)
        self.calls: List[Tuple[str, str]] = []
        self.cancelled = 0

    def add(self, path: str) -> Future:
        self.calls.append(("add", path))
        return done_future()

    def delete(self, path: str) -> Future:
        self.calls.append(("delete", path))
        return done_future()

    def full_synchronise(self) -> Future:
        self.calls.append(("full", ""))
        return done_future(SyncReport())

    def cancel(self):
        self.cancelled += 1


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def watch_dirs(temp_dir):
    """Create a watch directory and an (empty) sync directory."""
    watch = temp_dir / "watch"
    sync = temp_dir / "sync"
    watch.mkdir()
    sync.mkdir()
    return watch, sync


@pytest.fixture
def notifications():
    """Notification center that keeps every pushed notification."""
    center = NotificationCenter()
    center.received: List[Notification] = []
    center.subscribe(center.received.append)
    return center


@pytest.fixture
def make_config():
    """Factory for watch configurations with sensible defaults."""
    def factory(name="docs", watch="/w", sync="/s", **kwargs):
        return WatchConfiguration(name=name, watch_directory=str(watch),
                                  sync_directory=str(sync), **kwargs)
    return factory
