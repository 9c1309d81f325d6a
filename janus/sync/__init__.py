# janus/sync/__init__.py

"""
Janus synchronisers
"""
from .base import Synchroniser, SyncReport
from .metadata import MetaDataSynchroniser

__all__ = ['Synchroniser', 'SyncReport', 'MetaDataSynchroniser']
