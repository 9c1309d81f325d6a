# janus/sync/base.py

"""
Synchroniser contract consumed by change watchers
"""
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from janus.core.models import WatchConfiguration
from janus.errors import SyncIOError
from janus.utils.file_utils import map_to_target
from janus.core.filters import FilterEngine

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of a full reconciliation"""
    copied: List[str] = field(default_factory=list)
    created_directories: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: int = 0
    excluded: int = 0
    errors: List[SyncIOError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and not self.cancelled

    def summary(self) -> str:
        return (f"copied {len(self.copied)}, created {len(self.created_directories)} directories, "
                f"deleted {len(self.deleted)}, unchanged {self.unchanged}, "
                f"excluded {self.excluded}, errors {len(self.errors)}")


class Synchroniser(ABC):
    """
    Mirrors changes from a watch directory into its sync directory.

    All operations are asynchronous and return futures. A failure on one
    file never raises out of the future; it is reported through on_error
    and reflected in the result.
    """

    def __init__(self, configuration: WatchConfiguration,
                 filter_engine: Optional[FilterEngine] = None,
                 on_error: Optional[Callable[[SyncIOError], None]] = None):
        self.configuration = configuration
        self.filter_engine = filter_engine or FilterEngine(configuration.filters)
        self.on_error = on_error

    @property
    def watch_root(self) -> Path:
        return Path(self.configuration.watch_directory)

    @property
    def sync_root(self) -> Path:
        return Path(self.configuration.sync_directory)

    def target_path(self, path: Union[str, Path]) -> Path:
        """
        Map a watched path to its mirror location

        Raises:
            SyncIOError: If path is outside the watch directory
        """
        try:
            return map_to_target(path, self.watch_root, self.sync_root)
        except ValueError:
            raise SyncIOError(f"Path is outside the watch directory: {path}", path)

    @abstractmethod
    def add(self, path: str) -> Future:
        """Copy path to the sync directory. Resolves to True on success."""

    @abstractmethod
    def delete(self, path: str) -> Future:
        """Remove the mirror of path. Resolves to True on success."""

    @abstractmethod
    def full_synchronise(self) -> Future:
        """Reconcile the whole tree. Resolves to a SyncReport."""

    def cancel(self):
        """Request cancellation of a running reconciliation"""

    def shutdown(self, wait: bool = True):
        """Release worker resources"""
        self.cancel()

    def _report_error(self, error: SyncIOError):
        logger.error(str(error))
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception as e:
            logger.error(f"Error in sync error callback: {e}")
