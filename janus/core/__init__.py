# janus/core/__init__.py

"""
Janus core data model
"""
from .filters import Filter, FilterKind, FilterBehaviour, FilterEngine
from .models import WatchConfiguration, DataProvider, JanusData
from .notifications import Notification, NotificationCenter, NotificationType

__all__ = [
    'Filter',
    'FilterKind',
    'FilterBehaviour',
    'FilterEngine',
    'WatchConfiguration',
    'DataProvider',
    'JanusData',
    'Notification',
    'NotificationCenter',
    'NotificationType',
]
