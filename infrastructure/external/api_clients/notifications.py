"""Notifier client: ``POST /notifications``."""
from __future__ import annotations

from application.dtos.orders import NotificationReceipt, NotificationRequest
from .base import APIError
from .collaborator import CollaboratorClient


class NotifierClient(CollaboratorClient):
    service_name = "notification-service"

    async def notify(self, order_id: int, status: str, amount: int, email: str) -> NotificationReceipt:
        payload = NotificationRequest(order_id=order_id, payment_status=status, amount=amount, user_email=email)
        try:
            response = await self.post("notifications", json_data=payload)
        except APIError as exc:
            raise self._translate(exc) from exc
        return self._parse(response, NotificationReceipt)
