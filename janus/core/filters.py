# janus/core/filters.py

"""
Glob filters deciding which paths are excluded from synchronisation
"""
import os
import re
import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Callable, List, Optional, Pattern, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ErrorCallback = Callable[[object, Exception], None]

_SEPARATORS = re.compile(r"[\\/]")


class FilterKind(Enum):
    """Closed set of filter variants"""
    EXCLUDE = "exclude"
    EXCLUDE_FILE = "exclude_file"
    INCLUDE = "include"


class FilterBehaviour(IntEnum):
    """Behaviour tag persisted with every filter"""
    IGNORE = 0
    INCLUDE = 1


@lru_cache(maxsize=1024)
def compile_glob(pattern: str) -> Pattern:
    """
    Compile a glob pattern into an anchored regex

    Only '*' (zero or more characters) and '?' (exactly one character)
    are wildcards. Everything else matches literally.

    Args:
        pattern: Glob pattern

    Returns:
        Compiled regular expression
    """
    parts = []
    for char in os.path.normcase(pattern):
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def file_name(path: str) -> str:
    """Final path segment, treating both separators as boundaries"""
    return _SEPARATORS.split(path)[-1]


@dataclass(frozen=True)
class Filter:
    """
    A single filter: a kind plus an ordered tuple of glob patterns
    """
    kind: FilterKind
    patterns: Tuple[str, ...] = ()
    behaviour: Optional[FilterBehaviour] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "patterns", tuple(self.patterns))
        if self.behaviour is None:
            default = (FilterBehaviour.INCLUDE if self.kind == FilterKind.INCLUDE
                       else FilterBehaviour.IGNORE)
            object.__setattr__(self, "behaviour", default)

    @classmethod
    def exclude(cls, *patterns: str) -> "Filter":
        return cls(FilterKind.EXCLUDE, patterns)

    @classmethod
    def exclude_file(cls, *patterns: str) -> "Filter":
        return cls(FilterKind.EXCLUDE_FILE, patterns)

    @classmethod
    def include(cls, *patterns: str) -> "Filter":
        return cls(FilterKind.INCLUDE, patterns)

    def matches(self, path: PathLike, on_error: Optional[ErrorCallback] = None) -> bool:
        """
        Check if any pattern matches the subject of this filter

        EXCLUDE_FILE matches against the file name, the other kinds
        against the full path. A pattern that fails to compile or match
        counts as a non-match and is reported through on_error.

        Args:
            path: Path to check
            on_error: Called with (pattern, exception) on matcher failure

        Returns:
            True if at least one pattern matches
        """
        try:
            subject = os.path.normcase(os.fspath(path))
            if self.kind == FilterKind.EXCLUDE_FILE:
                subject = file_name(subject)
        except (TypeError, ValueError) as e:
            _report(on_error, path, e)
            return False

        matched = False
        for pattern in self.patterns:
            try:
                if compile_glob(pattern).fullmatch(subject):
                    matched = True
            except (re.error, TypeError, ValueError) as e:
                _report(on_error, pattern, e)
        return matched

    def excludes(self, path: PathLike, on_error: Optional[ErrorCallback] = None) -> bool:
        """
        Exclusion verdict for this filter

        An INCLUDE filter excludes paths matching none of its patterns,
        so an INCLUDE filter with no patterns excludes everything.
        """
        matched = self.matches(path, on_error)
        if self.kind == FilterKind.INCLUDE:
            return not matched
        return matched


def _report(on_error: Optional[ErrorCallback], pattern, error: Exception):
    logger.warning(f"Pattern '{pattern}' could not be matched, treating as non-match: {error}")
    if on_error is None:
        return
    try:
        on_error(pattern, error)
    except Exception as e:
        logger.error(f"Error in pattern error callback: {e}")


class FilterEngine:
    """
    Evaluate an ordered list of filters against paths
    """

    def __init__(self, filters: Optional[List[Filter]] = None,
                 on_error: Optional[ErrorCallback] = None):
        """
        Initialize filter engine

        Args:
            filters: Filter list. Shared, not copied, so filters added to
                the owning configuration apply immediately.
            on_error: Side channel for matcher failures
        """
        self.filters = filters if filters is not None else []
        self.on_error = on_error
        self.stats = {
            'evaluated': 0,
            'excluded': 0,
            'matcher_errors': 0,
        }

    def _on_matcher_error(self, pattern, error: Exception):
        self.stats['matcher_errors'] += 1
        if self.on_error:
            self.on_error(pattern, error)

    def should_exclude(self, path: PathLike) -> bool:
        """
        Check if path should be excluded from synchronisation

        Every filter is evaluated; the verdicts are OR-ed.

        Args:
            path: Path to check

        Returns:
            True if any filter excludes the path
        """
        self.stats['evaluated'] += 1
        excluded = False
        for flt in self.filters:
            if flt.excludes(path, self._on_matcher_error):
                excluded = True

        if excluded:
            self.stats['excluded'] += 1
            logger.debug(f"Excluding {path}")
        return excluded

    def add_filter(self, flt: Filter):
        """Append a filter"""
        self.filters.append(flt)
        logger.info(f"Added {flt.kind.value} filter: {list(flt.patterns)}")

    def get_matching_filters(self, path: PathLike) -> List[Filter]:
        """Get all filters that exclude a path"""
        return [flt for flt in self.filters if flt.excludes(path, self._on_matcher_error)]

    def get_stats(self) -> dict:
        """Get filter statistics"""
        return {
            **self.stats,
            'total_filters': len(self.filters),
        }
