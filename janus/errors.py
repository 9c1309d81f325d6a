# janus/errors.py

"""
Exception hierarchy for Janus
"""


class JanusError(Exception):
    """Base exception for all Janus errors"""


class FormatError(JanusError):
    """Malformed store file. Fatal for the whole load."""


class ConfigurationError(JanusError):
    """A watch configuration could not be constructed"""


class SyncIOError(JanusError):
    """A single file failed to synchronise"""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class UnsupportedValueError(JanusError):
    """A data provider value has no storage encoding"""

    def __init__(self, key: str, value):
        super().__init__(
            f"Found unserialisable value type for '{key}': {type(value).__name__}"
        )
        self.key = key
        self.value = value
