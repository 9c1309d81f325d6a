# janus/watchdog/pending.py

"""
Pending changes for manual synchronisation
"""
from typing import Dict, List, Tuple


class PendingSet:
    """
    Two mutually exclusive ordered path sets: pending copy and pending delete.

    A later delete invalidates a pending copy and a later re-creation
    invalidates a pending delete, so marking a path in one set removes it
    from the other. Not thread safe; the owning watcher holds its lock.
    """

    def __init__(self):
        # dicts keep insertion order
        self._copy: Dict[str, None] = {}
        self._delete: Dict[str, None] = {}

    @property
    def copy(self) -> List[str]:
        return list(self._copy)

    @property
    def delete(self) -> List[str]:
        return list(self._delete)

    def mark_copy(self, path: str):
        self._delete.pop(path, None)
        self._copy[path] = None

    def mark_delete(self, path: str):
        self._copy.pop(path, None)
        self._delete[path] = None

    def discard_copy(self, path: str) -> bool:
        """Remove path from pending copy, returns True if it was there"""
        return self._copy.pop(path, 0) is None

    def discard_delete(self, path: str) -> bool:
        """Remove path from pending delete, returns True if it was there"""
        return self._delete.pop(path, 0) is None

    def is_empty(self) -> bool:
        return not self._copy and not self._delete

    def counts(self) -> Tuple[int, int]:
        return len(self._copy), len(self._delete)

    def drain(self) -> Tuple[List[str], List[str]]:
        """Take both sets and clear them"""
        copy, delete = list(self._copy), list(self._delete)
        self._copy.clear()
        self._delete.clear()
        return copy, delete

    def __len__(self) -> int:
        return len(self._copy) + len(self._delete)
