# janus/storage/formats.py

"""
Versioned store grammars

Each store file starts with an int32 version tag. The tag selects a
StorageFormat from the registry below, so a newer format can add fields
(0x5 added the watcher delay) while old files keep loading with the
grammar they were written in.

Body grammar, shared by all registered versions:

    body    := watcher* '.' value* '#'
    watcher := '[' name watch sync int32:n filter{n}
               bool:recursive bool:auto_add bool:auto_delete bool:observe
               [uint64:delay] ']'
    filter  := uint32:behaviour ('EF' | 'EFF' | 'IF') int32:k string{k}
    value   := '[' key ('s' | 'i' | 'd' | 'b') <typed value> ']'

A sentinel mismatch or an unknown tag raises FormatError and aborts the
whole read. A well-formed watcher record that does not make a valid
WatchConfiguration is logged and skipped.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Tuple, Type

from janus.core.filters import Filter, FilterKind
from janus.core.models import JanusData, WatchConfiguration
from janus.errors import ConfigurationError, FormatError, UnsupportedValueError

from .binary import BinaryReader, BinaryWriter, INT32_MAX, INT32_MIN

logger = logging.getLogger(__name__)

START = '['
END = ']'
SWITCH = '.'
EOF = '#'

FILTER_TAGS: Dict[FilterKind, str] = {
    FilterKind.EXCLUDE: 'EF',
    FilterKind.EXCLUDE_FILE: 'EFF',
    FilterKind.INCLUDE: 'IF',
}
FILTER_KINDS: Dict[str, FilterKind] = {tag: kind for kind, tag in FILTER_TAGS.items()}

_FORMATS: Dict[int, Type["StorageFormat"]] = {}

CURRENT_VERSION = 0x5


def storage_format(version: int):
    """Register a StorageFormat class under a version tag"""
    def decorator(cls):
        if version in _FORMATS:
            raise ValueError(f"Storage format {version:#x} registered twice")
        cls.version = version
        _FORMATS[version] = cls
        return cls
    return decorator


def get_format(version: int) -> "StorageFormat":
    """
    Get a fresh format instance for a version tag

    Raises:
        FormatError: If no format is registered for the version
    """
    cls = _FORMATS.get(version)
    if cls is None:
        raise FormatError(f"Unknown storage format version: {version:#x}")
    return cls()


def available_versions() -> List[int]:
    return sorted(_FORMATS)


class StorageFormat(ABC):
    """Reader/writer pair for one version of the store grammar"""

    version: int = 0

    def __init__(self):
        # Filled during read/write, inspected by the store
        self.configuration_errors: List[ConfigurationError] = []
        self.dropped_values: List[UnsupportedValueError] = []

    @abstractmethod
    def read(self, reader: BinaryReader) -> JanusData:
        """Read a body. Raises FormatError on any grammar violation."""

    @abstractmethod
    def write(self, writer: BinaryWriter, data: JanusData):
        """Write a body. Raises FormatError for data the reader cannot accept."""


class SentinelFormat(StorageFormat):
    """Sentinel-delimited grammar; subclasses toggle optional fields"""

    has_delay = True

    def read(self, reader: BinaryReader) -> JanusData:
        self.configuration_errors = []
        data = JanusData()

        first = reader.read_char()
        if first == START:
            watch_mode = True
        elif first == SWITCH:
            watch_mode = False
        else:
            raise FormatError(f"Invalid format. Start expected found: {first!r} instead")

        while watch_mode:
            configuration = self._read_watcher(reader)
            if configuration is not None:
                data.watchers.append(configuration)

            following = reader.read_char()
            if following == SWITCH:
                watch_mode = False
            elif following != START:
                raise FormatError(f"Invalid format. Start expected found: {following!r} instead")

        following = reader.read_char()
        if following == EOF:
            return data
        if following != START:
            raise FormatError(f"Invalid format. Start expected found: {following!r} instead")

        while True:
            key, value = self._read_value(reader)
            data.data_provider.set(key, value)

            following = reader.read_char()
            if following == EOF:
                return data
            if following != START:
                raise FormatError(f"Invalid format. Start expected found: {following!r} instead")

    def _read_watcher(self, reader: BinaryReader):
        name = reader.read_string()
        watch_directory = reader.read_string()
        sync_directory = reader.read_string()

        filter_count = reader.read_int32()
        if filter_count < 0:
            raise FormatError(f"Invalid format. Negative filter count: {filter_count}")
        filters = [self._read_filter(reader) for _ in range(filter_count)]

        recursive = reader.read_bool()
        auto_add = reader.read_bool()
        auto_delete = reader.read_bool()
        observe = reader.read_bool()
        delay = reader.read_uint64() if self.has_delay else 0

        end = reader.read_char()
        if end != END:
            raise FormatError(f"Invalid format. End expected found: {end!r} instead")

        try:
            return WatchConfiguration(
                name=name,
                watch_directory=watch_directory,
                sync_directory=sync_directory,
                recursive=recursive,
                auto_add=auto_add,
                auto_delete=auto_delete,
                observe=observe,
                delay=delay,
                filters=filters,
            )
        except ConfigurationError as e:
            logger.warning(f"Failed to add watcher '{name}': {e}")
            self.configuration_errors.append(e)
            return None

    def _read_filter(self, reader: BinaryReader) -> Filter:
        reader.read_uint32()  # behaviour, not needed to rebuild the filter
        tag = reader.read_string()
        kind = FILTER_KINDS.get(tag)
        if kind is None:
            raise FormatError(f"Invalid format. Unknown filter: {tag!r} found.")

        pattern_count = reader.read_int32()
        if pattern_count < 0:
            raise FormatError(f"Invalid format. Negative pattern count: {pattern_count}")
        patterns = [reader.read_string() for _ in range(pattern_count)]
        return Filter(kind, patterns)

    def _read_value(self, reader: BinaryReader) -> Tuple[str, Any]:
        key = reader.read_string()
        tag = reader.read_char()
        if tag == 's':
            value = reader.read_string()
        elif tag == 'i':
            value = reader.read_int32()
        elif tag == 'd':
            value = reader.read_double()
        elif tag == 'b':
            value = reader.read_bool()
        else:
            raise FormatError(f"Invalid format. Unknown DataType: {tag!r} found.")

        end = reader.read_char()
        if end != END:
            raise FormatError(f"Invalid format. End expected found: {end!r} instead")
        return key, value

    def write(self, writer: BinaryWriter, data: JanusData):
        self.dropped_values = []
        self._validate_watchers(data.watchers)

        for configuration in data.watchers:
            self._write_watcher(writer, configuration)

        writer.write_char(SWITCH)

        for key, value in data.data_provider.items():
            try:
                tag, encode = self._value_encoder(writer, key, value)
            except UnsupportedValueError as e:
                logger.warning(str(e))
                self.dropped_values.append(e)
                continue

            writer.write_char(START)
            writer.write_string(key)
            writer.write_char(tag)
            encode(value)
            writer.write_char(END)

        writer.write_char(EOF)

    def _validate_watchers(self, watchers: List[WatchConfiguration]):
        """Reject anything the reader could not parse back, before writing"""
        for configuration in watchers:
            for value in (configuration.name, configuration.watch_directory, configuration.sync_directory):
                if not isinstance(value, str):
                    raise FormatError(f"Watcher field is not a string: {value!r}")
            for flt in configuration.filters:
                if not isinstance(flt, Filter) or flt.kind not in FILTER_TAGS:
                    raise FormatError(
                        f"Cannot store filter {flt!r} of watcher '{configuration.name}': unknown filter kind"
                    )
                for pattern in flt.patterns:
                    if not isinstance(pattern, str):
                        raise FormatError(f"Filter pattern is not a string: {pattern!r}")
            if configuration.delay and not self.has_delay:
                logger.warning(f"Format {self.version:#x} has no delay field, "
                               f"delay of '{configuration.name}' is not stored")

    def _write_watcher(self, writer: BinaryWriter, configuration: WatchConfiguration):
        writer.write_char(START)
        writer.write_string(configuration.name)
        writer.write_string(configuration.watch_directory)
        writer.write_string(configuration.sync_directory)

        writer.write_int32(len(configuration.filters))
        for flt in configuration.filters:
            writer.write_uint32(int(flt.behaviour))
            writer.write_string(FILTER_TAGS[flt.kind])
            writer.write_int32(len(flt.patterns))
            for pattern in flt.patterns:
                writer.write_string(pattern)

        writer.write_bool(configuration.recursive)
        writer.write_bool(configuration.auto_add)
        writer.write_bool(configuration.auto_delete)
        writer.write_bool(configuration.observe)
        if self.has_delay:
            writer.write_uint64(configuration.delay)
        writer.write_char(END)

    @staticmethod
    def _value_encoder(writer: BinaryWriter, key, value) -> Tuple[str, Callable[[Any], None]]:
        if not isinstance(key, str):
            raise UnsupportedValueError(str(key), value)
        # bool is an int subclass, check it first
        if isinstance(value, bool):
            return 'b', writer.write_bool
        if isinstance(value, int):
            if not INT32_MIN <= value <= INT32_MAX:
                raise UnsupportedValueError(key, value)
            return 'i', writer.write_int32
        if isinstance(value, float):
            return 'd', writer.write_double
        if isinstance(value, str):
            return 's', writer.write_string
        raise UnsupportedValueError(key, value)


@storage_format(0x4)
class FormatV4(SentinelFormat):
    """Watcher records without the delay field"""

    has_delay = False


@storage_format(0x5)
class FormatV5(SentinelFormat):
    """Adds the uint64 watcher delay"""

    has_delay = True
