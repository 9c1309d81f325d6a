# janus/core/notifications.py

"""
User-facing status notifications
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class NotificationType(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    type: NotificationType
    title: str
    message: str
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def __str__(self):
        return f"[{self.type.value}] {self.title}: {self.message}"


_LOG_LEVELS = {
    NotificationType.INFO: logging.INFO,
    NotificationType.WARNING: logging.WARNING,
    NotificationType.ERROR: logging.ERROR,
}


class NotificationCenter:
    """
    Fan-out channel for status messages shown to the user

    Subscribers are called synchronously on the pushing thread. A failing
    subscriber is logged and does not affect the others.
    """

    def __init__(self, history_size: int = 100):
        self.subscribers: List[Callable[[Notification], None]] = []
        self.history: List[Notification] = []
        self.history_size = history_size

    def subscribe(self, callback: Callable[[Notification], None]):
        """Register a subscriber"""
        self.subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Notification], None]):
        if callback in self.subscribers:
            self.subscribers.remove(callback)

    def push(self, type: NotificationType, title: str, message: str) -> Notification:
        """
        Publish a notification

        Args:
            type: Severity
            title: Short title
            message: Message body

        Returns:
            The published notification
        """
        notification = Notification(type=type, title=title, message=message)
        logger.log(_LOG_LEVELS[type], f"{title}: {message}")

        self.history.append(notification)
        if len(self.history) > self.history_size:
            del self.history[:len(self.history) - self.history_size]

        for callback in list(self.subscribers):
            try:
                callback(notification)
            except Exception as e:
                logger.error(f"Error in notification subscriber: {e}")

        return notification

    def info(self, title: str, message: str) -> Notification:
        return self.push(NotificationType.INFO, title, message)

    def warning(self, title: str, message: str) -> Notification:
        return self.push(NotificationType.WARNING, title, message)

    def error(self, title: str, message: str) -> Notification:
        return self.push(NotificationType.ERROR, title, message)
