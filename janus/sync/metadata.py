# janus/sync/metadata.py

"""
Synchroniser comparing source and target by existence and file type
"""
import os
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from janus.core.filters import FilterEngine
from janus.core.models import WatchConfiguration
from janus.errors import SyncIOError
from janus.utils.file_utils import copy_file, normalize_path, remove_path

from .base import Synchroniser, SyncReport

logger = logging.getLogger(__name__)


class _PathLock:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class MetaDataSynchroniser(Synchroniser):
    """
    Mirrors files using metadata only.

    A target entry that exists with the same kind (file or directory) as
    its source is considered in sync and is never re-copied by a full
    reconciliation. Operations on the same target path are serialised;
    unrelated paths run concurrently on a thread pool.
    """

    def __init__(self, configuration: WatchConfiguration,
                 filter_engine: Optional[FilterEngine] = None,
                 on_error: Optional[Callable[[SyncIOError], None]] = None,
                 max_workers: int = 4,
                 preserve_metadata: bool = True):
        """
        Initialize synchroniser

        Args:
            configuration: Watch configuration to mirror
            filter_engine: Filters applied during full reconciliation
            on_error: Called with every per-file SyncIOError
            max_workers: Worker threads for copy/delete operations
            preserve_metadata: Copy timestamps and mode along with content
        """
        super().__init__(configuration, filter_engine, on_error)
        self.preserve_metadata = preserve_metadata
        self.executor = ThreadPoolExecutor(max_workers=max_workers,
                                           thread_name_prefix="janus-sync")

        self._locks: Dict[Path, _PathLock] = {}
        self._locks_guard = threading.Lock()
        self._cancel = threading.Event()

        self.stats = {
            'files_copied': 0,
            'files_deleted': 0,
            'errors': 0,
        }

    @contextmanager
    def _locked(self, target: Path):
        """Hold the lock for target; the entry goes away with its last user"""
        with self._locks_guard:
            entry = self._locks.get(target)
            if entry is None:
                entry = self._locks[target] = _PathLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if not entry.users:
                    del self._locks[target]

    def add(self, path: str) -> Future:
        return self.executor.submit(self._add, path)

    def delete(self, path: str) -> Future:
        return self.executor.submit(self._delete, path)

    def full_synchronise(self) -> Future:
        self._cancel.clear()
        return self.executor.submit(self._full_synchronise)

    def cancel(self):
        self._cancel.set()

    def shutdown(self, wait: bool = True):
        self.cancel()
        self.executor.shutdown(wait=wait)

    def _fail(self, message: str, path) -> SyncIOError:
        error = SyncIOError(message, path)
        self.stats['errors'] += 1
        self._report_error(error)
        return error

    def _add(self, path: str) -> bool:
        try:
            target = self.target_path(path)
        except SyncIOError as e:
            self.stats['errors'] += 1
            self._report_error(e)
            return False

        source = Path(path)
        try:
            with self._locked(target):
                if source.is_dir():
                    if os.path.lexists(target) and not target.is_dir():
                        remove_path(target)
                    target.mkdir(parents=True, exist_ok=True)
                    return True

                if not source.exists():
                    self._fail(f"Source file not found: {source}", path)
                    return False

                if target.is_dir() and not target.is_symlink():
                    remove_path(target)
                copy_file(source, target, self.preserve_metadata)
                self.stats['files_copied'] += 1
                return True
        except OSError as e:
            self._fail(f"Failed to copy {source} -> {target}: {e}", path)
            return False

    def _delete(self, path: str) -> bool:
        try:
            target = self.target_path(path)
        except SyncIOError as e:
            self.stats['errors'] += 1
            self._report_error(e)
            return False

        if target == normalize_path(self.sync_root):
            self._fail(f"Refusing to delete the sync directory itself: {target}", path)
            return False

        try:
            with self._locked(target):
                if remove_path(target):
                    self.stats['files_deleted'] += 1
                else:
                    logger.debug(f"Nothing to delete at {target}")
                return True
        except OSError as e:
            self._fail(f"Failed to delete {target}: {e}", path)
            return False

    def _walk(self, root: Path, report: SyncReport) -> List[Path]:
        """List entries under root, top-down, honouring the recursive flag"""
        entries: List[Path] = []

        def on_walk_error(error: OSError):
            report.errors.append(self._fail(f"Cannot list {error.filename}: {error}", error.filename))

        if self.configuration.recursive:
            for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error):
                dirnames.sort()
                for name in dirnames + sorted(filenames):
                    entries.append(Path(dirpath) / name)
        else:
            try:
                with os.scandir(root) as it:
                    for entry in sorted(it, key=lambda e: e.name):
                        entries.append(Path(entry.path))
            except OSError as e:
                on_walk_error(e)

        return entries

    def _full_synchronise(self) -> SyncReport:
        report = SyncReport()
        watch_root = normalize_path(self.watch_root)
        sync_root = normalize_path(self.sync_root)

        logger.info(f"Full synchronisation started: {watch_root} -> {sync_root}")

        if not watch_root.is_dir():
            report.errors.append(self._fail(f"Watch directory does not exist: {watch_root}", str(watch_root)))
            return report

        try:
            sync_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            report.errors.append(self._fail(f"Cannot create sync directory {sync_root}: {e}", str(sync_root)))
            return report

        expected: Set[Path] = set()

        # Pass 1: create whatever is missing on the target side
        for source in self._walk(watch_root, report):
            if self._cancel.is_set():
                report.cancelled = True
                logger.info("Full synchronisation cancelled")
                return report

            try:
                if self.filter_engine.should_exclude(str(source)):
                    report.excluded += 1
                    continue

                relative = source.relative_to(watch_root)
                expected.add(relative)
                # parents of an included entry must survive the cleanup pass
                expected.update(relative.parents)

                target = sync_root / relative
                with self._locked(target):
                    self._reconcile_entry(source, target, report)
            except OSError as e:
                report.errors.append(self._fail(f"Failed to synchronise {source}: {e}", str(source)))

        # Pass 2: remove target entries without a filtered source counterpart
        for target in self._walk(sync_root, report):
            if self._cancel.is_set():
                report.cancelled = True
                logger.info("Full synchronisation cancelled")
                return report

            relative = target.relative_to(sync_root)
            if relative in expected:
                continue

            try:
                with self._locked(target):
                    # already gone with a removed parent directory
                    if remove_path(target):
                        report.deleted.append(str(target))
            except OSError as e:
                report.errors.append(self._fail(f"Failed to remove {target}: {e}", str(target)))

        logger.info(f"Full synchronisation finished: {report.summary()}")
        return report

    def _reconcile_entry(self, source: Path, target: Path, report: SyncReport):
        source_is_dir = source.is_dir()
        target_exists = os.path.lexists(target)

        if target_exists and target.is_dir() != source_is_dir:
            remove_path(target)
            target_exists = False

        if source_is_dir:
            if not target_exists:
                target.mkdir(parents=True, exist_ok=True)
                report.created_directories.append(str(target))
            else:
                report.unchanged += 1
            return

        if target_exists:
            report.unchanged += 1
            return

        copy_file(source, target, self.preserve_metadata)
        self.stats['files_copied'] += 1
        report.copied.append(str(target))
