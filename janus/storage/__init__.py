# janus/storage/__init__.py

"""
Janus persistent store
"""
from .binary import BinaryReader, BinaryWriter
from .formats import CURRENT_VERSION, StorageFormat, available_versions, get_format
from .store import DataStore

__all__ = [
    'BinaryReader',
    'BinaryWriter',
    'CURRENT_VERSION',
    'StorageFormat',
    'available_versions',
    'get_format',
    'DataStore',
]
