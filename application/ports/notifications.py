"""
Notification dispatch port.

Dispatching is fire-and-forget: ``dispatch`` returns as soon as the work is
handed off, and delivery failures surface only in the logs.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.orders import NotificationRequest


@runtime_checkable
class NotificationDispatcher(Protocol):
    async def start(self) -> None: ...

    def dispatch(self, request: NotificationRequest) -> None: ...

    async def aclose(self) -> None: ...
