# janus/core/models.py

"""
Data model for watch configurations and persisted application data
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from janus.errors import ConfigurationError
from janus.core.filters import Filter

logger = logging.getLogger(__name__)

UINT64_MAX = 2 ** 64 - 1


@dataclass
class WatchConfiguration:
    """Everything needed to build and persist one watcher"""
    name: str
    watch_directory: str
    sync_directory: str
    recursive: bool = True
    auto_add: bool = True
    auto_delete: bool = True
    observe: bool = False
    delay: int = 0  # milliseconds
    filters: List[Filter] = field(default_factory=list)

    def __post_init__(self):
        self.watch_directory = self._check_path('watch_directory', self.watch_directory)
        self.sync_directory = self._check_path('sync_directory', self.sync_directory)

        if isinstance(self.delay, bool) or not isinstance(self.delay, int):
            raise ConfigurationError(f"Delay must be an integer, got {self.delay!r}")
        if not 0 <= self.delay <= UINT64_MAX:
            raise ConfigurationError(f"Delay out of range: {self.delay}")

        self.filters = list(self.filters or [])

    @staticmethod
    def _check_path(field_name: str, value) -> str:
        if value is None:
            raise ConfigurationError(f"{field_name} is required")
        value = str(value)
        if not value:
            raise ConfigurationError(f"{field_name} must not be empty")
        if "\x00" in value:
            raise ConfigurationError(f"{field_name} contains a NUL character: {value!r}")
        try:
            value.encode('utf-8')
        except UnicodeEncodeError:
            raise ConfigurationError(f"{field_name} is not valid UTF-8: {value!r}")
        return value

    def identity(self) -> Tuple:
        """Stable key used for hashing runtime watchers"""
        return (self.watch_directory, self.sync_directory, self.recursive)


class DataProvider:
    """
    Free-form key/value store persisted next to the watchers

    Values are expected to be str, int (32-bit), float or bool, but
    nothing is enforced until the store writes them out.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any):
        self.data[key] = value

    def add(self, key: str, value: Any):
        """Set a key that must not exist yet"""
        if key in self.data:
            raise KeyError(f"Key already present: {key}")
        self.data[key] = value

    def remove(self, key: str) -> bool:
        if key not in self.data:
            return False
        del self.data[key]
        return True

    def items(self):
        return self.data.items()

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DataProvider):
            return NotImplemented
        if self.data.keys() != other.data.keys():
            return False
        # 1 == 1.0 == True in Python, the stored kind must match as well
        return all(
            type(value) is type(other.data[key]) and value == other.data[key]
            for key, value in self.data.items()
        )

    def __repr__(self) -> str:
        return f"DataProvider({self.data!r})"


@dataclass
class JanusData:
    """Aggregate persisted root"""
    watchers: List[WatchConfiguration] = field(default_factory=list)
    data_provider: DataProvider = field(default_factory=DataProvider)
