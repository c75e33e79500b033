import asyncio
import threading

import pytest

from application.dtos.orders import NotificationReceipt, NotificationRequest
from application.ports.collaborators import CollaboratorUnavailableError
from core.config import NotificationSettings
from infrastructure.notifications import (
    CeleryNotificationDispatcher,
    InProcessNotificationDispatcher,
    build_notification_dispatcher,
)


class FakeNotifier:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []

    async def notify(self, order_id, status, amount, email):
        self.calls.append((order_id, status, amount, email))
        if order_id in self.fail_for:
            raise CollaboratorUnavailableError("notification-service", "Request timeout after 5.0s")
        return NotificationReceipt(order_id=order_id, status="sent")


class FakeTaskDispatcher:
    def __init__(self, error=None):
        self.error = error
        self.payloads = []
        self._lock = threading.Lock()

    def send_order_notification(self, payload):
        with self._lock:
            self.payloads.append(payload)
        if self.error is not None:
            raise self.error


def _note(order_id=1):
    return NotificationRequest(order_id=order_id, payment_status="success", amount=5000, user_email="alice@example.com")


@pytest.mark.asyncio
async def test_inprocess_delivers_queued_notifications_before_close():
    notifier = FakeNotifier()
    dispatcher = InProcessNotificationDispatcher(notifier, workers=2)
    await dispatcher.start()

    for order_id in (1, 2, 3):
        dispatcher.dispatch(_note(order_id))
    await dispatcher.aclose()

    assert sorted(call[0] for call in notifier.calls) == [1, 2, 3]
    assert notifier.calls[0][1:] == ("success", 5000, "alice@example.com")
    assert not dispatcher.running


@pytest.mark.asyncio
async def test_inprocess_delivery_failure_does_not_stop_workers():
    notifier = FakeNotifier(fail_for={1})
    dispatcher = InProcessNotificationDispatcher(notifier, workers=1)
    await dispatcher.start()

    dispatcher.dispatch(_note(1))
    dispatcher.dispatch(_note(2))
    await dispatcher.aclose()

    assert [call[0] for call in notifier.calls] == [1, 2]


@pytest.mark.asyncio
async def test_inprocess_dispatch_returns_without_waiting_for_delivery():
    release = asyncio.Event()

    class SlowNotifier(FakeNotifier):
        async def notify(self, order_id, status, amount, email):
            await release.wait()
            return await super().notify(order_id, status, amount, email)

    notifier = SlowNotifier()
    dispatcher = InProcessNotificationDispatcher(notifier, workers=1)
    await dispatcher.start()

    dispatcher.dispatch(_note(1))
    await asyncio.sleep(0)
    assert notifier.calls == []

    release.set()
    await dispatcher.aclose()
    assert [call[0] for call in notifier.calls] == [1]


@pytest.mark.asyncio
async def test_inprocess_drops_when_not_started():
    notifier = FakeNotifier()
    dispatcher = InProcessNotificationDispatcher(notifier)

    dispatcher.dispatch(_note())
    await dispatcher.aclose()

    assert notifier.calls == []


@pytest.mark.asyncio
async def test_inprocess_drops_when_queue_is_full():
    notifier = FakeNotifier()
    dispatcher = InProcessNotificationDispatcher(notifier, workers=1, queue_max=1)
    await dispatcher.start()

    # Workers have not run yet, so the second request finds the queue full
    dispatcher.dispatch(_note(1))
    dispatcher.dispatch(_note(2))
    await dispatcher.aclose()

    assert [call[0] for call in notifier.calls] == [1]


@pytest.mark.asyncio
async def test_celery_dispatcher_publishes_payload():
    tasks = FakeTaskDispatcher()
    dispatcher = CeleryNotificationDispatcher(task_dispatcher=tasks)
    await dispatcher.start()

    dispatcher.dispatch(_note(7))
    await dispatcher.aclose()

    assert tasks.payloads == [
        {"order_id": 7, "payment_status": "success", "amount": 5000, "user_email": "alice@example.com"}
    ]


@pytest.mark.asyncio
async def test_celery_dispatcher_swallows_broker_errors():
    tasks = FakeTaskDispatcher(error=ConnectionError("broker unreachable"))
    dispatcher = CeleryNotificationDispatcher(task_dispatcher=tasks)

    dispatcher.dispatch(_note(7))
    await dispatcher.aclose()

    assert len(tasks.payloads) == 1


@pytest.mark.parametrize("backend", ["inprocess", "INPROCESS", "carrier-pigeon"])
def test_build_defaults_to_inprocess(backend):
    dispatcher = build_notification_dispatcher(
        NotificationSettings(backend=backend, workers=2, queue_max=10),
        FakeNotifier(),
    )
    assert isinstance(dispatcher, InProcessNotificationDispatcher)
