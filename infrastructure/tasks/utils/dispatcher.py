"""Small dispatching helpers to decouple Celery from callers."""
from __future__ import annotations

from typing import Any, Dict

from ..config.celery import celery_app


class TaskDispatcher:
    """Internal facade used by the notification dispatcher to schedule tasks."""

    def send_order_notification(self, payload: Dict[str, Any]) -> None:
        """Publish a notification payload (snake_case NotificationRequest fields)."""
        celery_app.send_task("notifications.send_order_notification", args=(payload,))
