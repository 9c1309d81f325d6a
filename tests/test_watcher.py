"""Tests for the change watcher."""

import asyncio
import queue
import time

import pytest
from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from janus.core.filters import Filter, FilterKind
from janus.core.notifications import NotificationType
from janus.watchdog.events import EventType, WatchdogEvent
from janus.watchdog.handlers import WatchEventHandler
from janus.watchdog.watcher import ChangeWatcher, WatcherState

from conftest import RecordingSynchroniser


def modified(path):
    return WatchdogEvent(EventType.MODIFIED, path)


def deleted(path):
    return WatchdogEvent(EventType.DELETED, path)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


class TestChangeWatcher:
    """Test ChangeWatcher event handling in observe mode."""

    @pytest.fixture
    def build(self, make_config, notifications):
        created = []

        def factory(**kwargs):
            kwargs.setdefault("observe", True)
            configuration = make_config(**kwargs)
            synchroniser = RecordingSynchroniser(configuration)
            watcher = ChangeWatcher(configuration, synchroniser, notifications=notifications)
            created.append(watcher)
            return watcher, synchroniser

        yield factory
        for watcher in created:
            watcher.stop()

    def test_observe_mode_installs_no_watch(self, build):
        watcher, _ = build()
        assert watcher.observer is None
        assert watcher.events_enabled
        assert watcher.state == WatcherState.CREATED

    def test_manual_mode_dedup(self, build):
        """Two consecutive modify events give one pending copy."""
        watcher, sync = build(auto_add=False)

        assert watcher.handle_event(modified("/w/a.txt"))
        assert not watcher.handle_event(modified("/w/a.txt"))

        assert watcher.pending.copy == ["/w/a.txt"]
        assert watcher.stats["events_duplicate"] == 1
        assert sync.calls == []

    def test_automatic_mode_dedup(self, build):
        watcher, sync = build()

        watcher.handle_event(modified("/w/a.txt"))
        watcher.handle_event(modified("/w/a.txt"))

        assert sync.calls == [("add", "/w/a.txt")]

    def test_dedup_only_catches_back_to_back(self, build):
        watcher, sync = build()

        for path in ["/w/a.txt", "/w/b.txt", "/w/a.txt"]:
            watcher.handle_event(modified(path))

        assert [call[1] for call in sync.calls] == ["/w/a.txt", "/w/b.txt", "/w/a.txt"]

    def test_delete_resets_dedup(self, build):
        watcher, sync = build()

        watcher.handle_event(modified("/w/a.txt"))
        watcher.handle_event(deleted("/w/a.txt"))
        watcher.handle_event(modified("/w/a.txt"))

        assert sync.calls == [("add", "/w/a.txt"), ("delete", "/w/a.txt"), ("add", "/w/a.txt")]

    def test_cross_cancel_delete(self, build):
        """A delete removes the path from pending copy and marks it for deletion."""
        watcher, _ = build(auto_add=False, auto_delete=False)

        watcher.handle_event(modified("/w/a.txt"))
        assert watcher.pending.copy == ["/w/a.txt"]

        watcher.handle_event(deleted("/w/a.txt"))
        assert watcher.pending.copy == []
        assert watcher.pending.delete == ["/w/a.txt"]

    def test_cross_cancel_write(self, build):
        watcher, _ = build(auto_add=False, auto_delete=False)

        watcher.handle_event(deleted("/w/a.txt"))
        watcher.handle_event(modified("/w/a.txt"))

        assert watcher.pending.delete == []
        assert watcher.pending.copy == ["/w/a.txt"]

    def test_cross_cancel_with_auto_delete(self, build):
        watcher, sync = build(auto_add=False, auto_delete=True)

        watcher.handle_event(modified("/w/a.txt"))
        watcher.handle_event(deleted("/w/a.txt"))

        assert watcher.pending.is_empty()
        assert sync.calls == [("delete", "/w/a.txt")]

    def test_excluded_events_are_dropped(self, build):
        watcher, sync = build(filters=[Filter.exclude("*.tmp")])

        assert not watcher.handle_event(modified("/w/a.tmp"))
        assert not watcher.handle_event(deleted("/w/a.tmp"))

        assert sync.calls == []
        assert watcher.stats["events_excluded"] == 2

    def test_move_is_delete_then_write(self, build):
        watcher, sync = build()

        watcher.handle_event(WatchdogEvent(EventType.MOVED, "/w/old.txt", "/w/new.txt"))

        assert sync.calls == [("delete", "/w/old.txt"), ("add", "/w/new.txt")]

    def test_move_into_excluded_name(self, build):
        watcher, sync = build(filters=[Filter.exclude("*.tmp")])

        watcher.handle_event(WatchdogEvent(EventType.MOVED, "/w/a.txt", "/w/a.txt.tmp"))

        assert sync.calls == [("delete", "/w/a.txt")]

    def test_synchronise_empty(self, build, notifications):
        """Nothing pending: no synchroniser calls, a no-changes notification."""
        watcher, sync = build(auto_add=False, auto_delete=False)

        assert watcher.synchronise() == []

        assert sync.calls == []
        assert notifications.received[-1].message == "No files were changed."

    def test_synchronise_flushes_pending(self, build, notifications):
        watcher, sync = build(auto_add=False, auto_delete=False)
        watcher.handle_event(modified("/w/a.txt"))
        watcher.handle_event(modified("/w/b.txt"))
        watcher.handle_event(deleted("/w/c.txt"))

        futures = watcher.synchronise()

        assert len(futures) == 3
        assert sync.calls == [("add", "/w/a.txt"), ("add", "/w/b.txt"), ("delete", "/w/c.txt")]
        assert watcher.pending.is_empty()
        last = notifications.received[-1]
        assert last.type == NotificationType.INFO
        assert last.message == "Finished copying 2 files, and deleting 1 files."

    def test_synchronise_async(self, build):
        watcher, sync = build(auto_add=False)
        watcher.handle_event(modified("/w/a.txt"))

        futures = asyncio.run(watcher.synchronise_async())

        assert len(futures) == 1
        assert sync.calls == [("add", "/w/a.txt")]

    def test_disable_and_enable(self, build):
        watcher, sync = build(auto_add=False)
        watcher.handle_event(modified("/w/a.txt"))

        watcher.disable_events()
        assert watcher.state == WatcherState.DISABLED
        assert not watcher.handle_event(modified("/w/b.txt"))
        assert watcher.pending.copy == ["/w/a.txt"]

        assert watcher.enable_events()
        assert watcher.handle_event(modified("/w/b.txt"))
        assert watcher.pending.copy == ["/w/a.txt", "/w/b.txt"]

    def test_stop_is_terminal(self, build):
        watcher, sync = build()

        watcher.stop()

        assert watcher.state == WatcherState.STOPPED
        assert not watcher.enable_events()
        assert not watcher.handle_event(modified("/w/a.txt"))
        assert sync.cancelled == 1
        assert sync.calls == []

    def test_delay_debounces_dispatch(self, build):
        watcher, sync = build(delay=60000)

        watcher.handle_event(modified("/w/a.txt"))
        watcher.handle_event(deleted("/w/a.txt"))
        assert sync.calls == []

        assert watcher.debouncer.flush() == 1
        assert sync.calls == [("delete", "/w/a.txt")]

    def test_stop_drops_debounced_dispatch(self, build):
        watcher, sync = build(delay=60000)
        watcher.handle_event(modified("/w/a.txt"))

        watcher.stop()

        assert watcher.debouncer.pending_count() == 0
        assert sync.calls == []

    def test_add_filter(self, build):
        watcher, sync = build()
        watcher.add_filter(Filter.exclude_file("*.bak"))

        watcher.handle_event(modified("/w/a.bak"))

        assert sync.calls == []
        assert watcher.configuration.filters == [Filter.exclude_file("*.bak")]

    def test_filter_errors_become_notifications(self, build, notifications):
        watcher, sync = build(filters=[Filter(FilterKind.EXCLUDE, (None,))])

        watcher.handle_event(modified("/w/a.txt"))

        assert sync.calls == [("add", "/w/a.txt")]
        assert any(n.title == "Invalid Filter" for n in notifications.received)

    def test_initial_synchronise_uses_synchroniser(self, build):
        watcher, sync = build()
        watcher.do_initial_synchronise().result()
        assert sync.calls == [("full", "")]

    def test_equality_ignores_synchroniser(self, make_config):
        first = ChangeWatcher(make_config(observe=True),
                              RecordingSynchroniser(make_config(observe=True)))
        second = ChangeWatcher(make_config(observe=True),
                               RecordingSynchroniser(make_config(observe=True)))
        other = ChangeWatcher(make_config(name="other", observe=True),
                              RecordingSynchroniser(make_config(observe=True)))

        assert first == second
        assert hash(first) == hash(second)
        assert first != other

    def test_status(self, build):
        watcher, _ = build(auto_add=False)
        watcher.handle_event(modified("/w/a.txt"))

        status = watcher.get_status()

        assert status["name"] == "docs"
        assert status["pending_copy"] == 1
        assert status["state"] == "created"


class TestChangeWatcherLive:
    """Tests running a real (polling) observer over temporary directories."""

    def test_missing_watch_directory(self, temp_dir, make_config):
        configuration = make_config(watch=temp_dir / "missing", sync=temp_dir / "sync")
        watcher = ChangeWatcher(configuration, RecordingSynchroniser(configuration))
        try:
            assert watcher.state == WatcherState.CREATED
            assert watcher.observer is None
            assert not watcher.start()
        finally:
            watcher.stop()

    def test_mirrors_new_file(self, watch_dirs, make_config):
        watch, sync = watch_dirs
        configuration = make_config(watch=watch, sync=sync)
        watcher = ChangeWatcher(configuration, use_polling=True, poll_interval=0.1)
        try:
            assert watcher.state == WatcherState.WATCHING
            (watch / "a.txt").write_text("hello")

            assert wait_for(lambda: (sync / "a.txt").exists())
            assert wait_for(lambda: (sync / "a.txt").read_text() == "hello")
        finally:
            watcher.stop()

        assert watcher.observer is None


class TestWatchEventHandler:
    """Test conversion of raw watchdog events."""

    def test_queues_converted_events(self):
        events = queue.Queue()
        handler = WatchEventHandler(events)

        handler.on_any_event(FileCreatedEvent("/w/a.txt"))
        handler.on_any_event(FileModifiedEvent("/w/a.txt"))
        handler.on_any_event(FileMovedEvent("/w/a.txt", "/w/b.txt"))

        converted = [events.get_nowait() for _ in range(3)]
        assert [e.event_type for e in converted] == [EventType.CREATED, EventType.MODIFIED, EventType.MOVED]
        assert converted[2].dest_path == "/w/b.txt"

    def test_ignores_directory_modified(self):
        events = queue.Queue()
        handler = WatchEventHandler(events)

        handler.on_any_event(DirModifiedEvent("/w"))

        assert events.empty()
        assert handler.get_stats()["events_ignored"] == 1

    def test_drops_on_full_queue(self):
        events = queue.Queue(maxsize=1)
        handler = WatchEventHandler(events, put_timeout=0.01)

        handler.on_any_event(FileCreatedEvent("/w/a.txt"))
        handler.on_any_event(FileCreatedEvent("/w/b.txt"))

        assert events.qsize() == 1
        assert handler.get_stats()["events_dropped"] == 1
