"""
Collaborator ports (application/ports) for the services the order workflow calls.

The application depends only on these Protocols and error types; the
infrastructure layer provides HTTP adapters and tests provide fakes.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from application.dtos.orders import (
    NotificationReceipt,
    PaymentOutcome,
    UserRecord,
)


class CollaboratorError(Exception):
    """Base error raised by collaborator adapters."""

    def __init__(self, service: str, message: str, *, status_code: Optional[int] = None):
        self.service = service
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class CollaboratorNotFoundError(CollaboratorError):
    """The collaborator answered 404 for the requested resource."""


class CollaboratorUnavailableError(CollaboratorError):
    """Transport failure, timeout or an unexpected status from the collaborator."""


class MalformedResponseError(CollaboratorError):
    """The collaborator answered, but the body could not be decoded."""


@runtime_checkable
class UserDirectory(Protocol):
    async def get_user(self, user_id: int) -> UserRecord: ...


@runtime_checkable
class PaymentGateway(Protocol):
    """Charging never raises for a declined charge; that is a ``failed`` outcome."""

    async def charge(self, order_id: int, amount: int, description: Optional[str]) -> PaymentOutcome: ...


@runtime_checkable
class Notifier(Protocol):
    async def notify(self, order_id: int, status: str, amount: int, email: str) -> NotificationReceipt: ...
