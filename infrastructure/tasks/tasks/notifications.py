"""Notification delivery tasks"""
from __future__ import annotations

import asyncio

from celery import shared_task

from application.dtos.orders import NotificationReceipt, NotificationRequest
from application.ports.collaborators import CollaboratorUnavailableError
from core.config import settings
from core.logging_config import get_logger
from infrastructure.external.api_clients import NotifierClient
from ..utils.base_task import BaseTask

logger = get_logger(__name__)

SEND_ORDER_NOTIFICATION = "notifications.send_order_notification"


async def deliver(request: NotificationRequest) -> NotificationReceipt:
    async with NotifierClient(
        base_url=settings.services.notification_url,
        timeout=settings.services.timeout,
    ) as client:
        return await client.notify(request.order_id, request.payment_status, request.amount, request.user_email)


@shared_task(
    name=SEND_ORDER_NOTIFICATION,
    bind=True,
    base=BaseTask,
    # Only transport-level failures are worth retrying
    autoretry_for=(CollaboratorUnavailableError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    retry_kwargs={"max_retries": 5},
)
def send_order_notification(self, payload: dict) -> dict:
    """Deliver an order payment notification to the notification service."""
    request = NotificationRequest.model_validate(payload)
    receipt = asyncio.run(deliver(request))
    logger.info("notification_sent", order_id=request.order_id, status=receipt.status, backend="celery")
    return receipt.model_dump(by_alias=True)
