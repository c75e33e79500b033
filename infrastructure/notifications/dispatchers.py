"""Fire-and-forget notification dispatchers.

The request path only enqueues; delivery happens on a worker owned by the
dispatcher, and its outcome is visible in the logs only. Two backends:

- ``inprocess``: a bounded asyncio queue drained by a small pool of worker
  tasks living for the lifetime of the application.
- ``celery``: the request is published as a Celery task by name and
  delivered (with retries) by a worker process.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional

from application.dtos.orders import NotificationRequest
from application.ports.collaborators import CollaboratorError, Notifier
from core.config import NotificationSettings
from core.logging_config import get_logger


logger = get_logger(__name__)


class InProcessNotificationDispatcher:
    """Per-process worker pool fed by a bounded queue."""

    def __init__(
        self,
        notifier: Notifier,
        *,
        workers: int = 4,
        queue_max: int = 1000,
        shutdown_grace: float = 5.0,
    ) -> None:
        self._notifier = notifier
        self._worker_count = max(1, int(workers))
        self._queue_max = max(1, int(queue_max))
        self._shutdown_grace = shutdown_grace
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        self._queue = asyncio.Queue(maxsize=self._queue_max)
        self._workers = [
            asyncio.create_task(self._worker_loop(i), name=f"notification-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("notification_dispatcher_started", backend="inprocess", workers=self._worker_count)

    def dispatch(self, request: NotificationRequest) -> None:
        if self._queue is None or not self._workers:
            logger.warning("notification_dropped", order_id=request.order_id, reason="dispatcher_not_running")
            return
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            logger.warning("notification_dropped", order_id=request.order_id, reason="queue_full")
            return
        logger.debug("notification_enqueued", order_id=request.order_id, queued=self._queue.qsize())

    async def aclose(self) -> None:
        if not self._workers:
            return
        queue = self._queue
        try:
            await asyncio.wait_for(queue.join(), timeout=self._shutdown_grace)
        except asyncio.TimeoutError:
            logger.warning("notification_dispatcher_drain_timeout", pending=queue.qsize())
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info("notification_dispatcher_stopped", backend="inprocess")

    async def _worker_loop(self, index: int) -> None:
        queue = self._queue
        while True:
            request = await queue.get()
            try:
                await self._deliver(request)
            finally:
                queue.task_done()

    async def _deliver(self, request: NotificationRequest) -> None:
        log = logger.bind(order_id=request.order_id, payment_status=request.payment_status)
        try:
            receipt = await self._notifier.notify(
                request.order_id,
                request.payment_status,
                request.amount,
                request.user_email,
            )
        except CollaboratorError as exc:
            log.warning("notification_failed", error_type=type(exc).__name__, error=str(exc))
            return
        except Exception as exc:  # workers must outlive any single delivery
            log.error("notification_failed", error_type=type(exc).__name__, error=str(exc), exc_info=True)
            return
        log.info("notification_sent", status=receipt.status)


class CeleryNotificationDispatcher:
    """Publishes each notification as a Celery task."""

    def __init__(self, task_dispatcher=None) -> None:
        if task_dispatcher is None:
            from infrastructure.tasks import TaskDispatcher
            task_dispatcher = TaskDispatcher()
        self._tasks = task_dispatcher
        self._pending: set[asyncio.Future] = set()

    async def start(self) -> None:
        logger.info("notification_dispatcher_started", backend="celery")

    def dispatch(self, request: NotificationRequest) -> None:
        # Publishing talks to the broker; keep it off the event loop
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._tasks.send_order_notification, request.model_dump(mode="json"))
        self._pending.add(future)
        future.add_done_callback(lambda f, order_id=request.order_id: self._on_published(f, order_id))

    def _on_published(self, future: asyncio.Future, order_id: int) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("notification_enqueue_failed", order_id=order_id, error=str(exc))
        else:
            logger.debug("notification_enqueued", order_id=order_id, backend="celery")

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        logger.info("notification_dispatcher_stopped", backend="celery")


def build_notification_dispatcher(config: NotificationSettings, notifier: Notifier):
    backend = (config.backend or "inprocess").lower()
    if backend == "celery":
        return CeleryNotificationDispatcher()
    if backend != "inprocess":
        logger.warning("notification_backend_unknown", backend=backend, fallback="inprocess")
    return InProcessNotificationDispatcher(
        notifier,
        workers=config.workers,
        queue_max=config.queue_max,
        shutdown_grace=config.shutdown_grace,
    )
