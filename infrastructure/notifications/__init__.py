"""Notification dispatch backends."""
from .dispatchers import (
    CeleryNotificationDispatcher,
    InProcessNotificationDispatcher,
    build_notification_dispatcher,
)

__all__ = [
    "CeleryNotificationDispatcher",
    "InProcessNotificationDispatcher",
    "build_notification_dispatcher",
]
