"""Pytest bootstrap configuration.

Environment variables are set before any module that reads application
settings is imported. Fixtures provide an in-memory SQLite store and fake
collaborators so the order workflow runs without network I/O.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE__AUTO_CREATE", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

from functools import partial
from typing import Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool

from application.dtos.orders import NotificationRequest, PaymentOutcome, UserRecord
from application.ports.collaborators import CollaboratorError, CollaboratorNotFoundError
from domain.common.exceptions import OrderStorageException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order, PaymentStatus
from domain.order.repository import OrderRepository
from infrastructure.database import build_engine, create_tables
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


class FakeUserDirectory:
    def __init__(self, users: Optional[Dict[int, UserRecord]] = None, error: Optional[CollaboratorError] = None):
        self.users = users or {}
        self.error = error
        self.calls: List[int] = []

    async def get_user(self, user_id: int) -> UserRecord:
        self.calls.append(user_id)
        if self.error is not None:
            raise self.error
        if user_id not in self.users:
            raise CollaboratorNotFoundError("user-service", "user not found or error: 404", status_code=404)
        return self.users[user_id]


class FakePaymentGateway:
    """Returns a success outcome by default; ``decline`` or ``error`` change that."""

    def __init__(self, transaction_id: str = "tx_1"):
        self.transaction_id = transaction_id
        self.decline: Optional[str] = None
        self.error: Optional[CollaboratorError] = None
        self.calls: List[tuple] = []

    async def charge(self, order_id: int, amount: int, description: Optional[str]) -> PaymentOutcome:
        self.calls.append((order_id, amount, description))
        if self.error is not None:
            raise self.error
        if self.decline is not None:
            return PaymentOutcome(order_id=order_id, amount=amount, status="failed", error_message=self.decline)
        return PaymentOutcome(order_id=order_id, amount=amount, status="success", transaction_id=self.transaction_id)


class RecordingDispatcher:
    def __init__(self):
        self.requests: List[NotificationRequest] = []

    async def start(self) -> None:
        return None

    def dispatch(self, request: NotificationRequest) -> None:
        self.requests.append(request)

    async def aclose(self) -> None:
        return None


class _BrokenOrderRepository(OrderRepository):
    def __init__(self, delegate: OrderRepository, fail_on: set):
        self._delegate = delegate
        self._fail_on = fail_on

    async def create(self, order: Order) -> Order:
        if "create" in self._fail_on:
            raise OrderStorageException("Database error")
        return await self._delegate.create(order)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        return await self._delegate.get_by_id(order_id)

    async def update_payment_status(self, order_id: int, status: PaymentStatus) -> bool:
        if "update" in self._fail_on:
            raise OrderStorageException("Database error")
        return await self._delegate.update_payment_status(order_id, status)


class BrokenUnitOfWork(SQLAlchemyUnitOfWork):
    """Real unit of work whose repository fails for selected operations."""

    fail_on: set = set()

    async def __aenter__(self) -> "BrokenUnitOfWork":
        await super().__aenter__()
        self.order_repository = _BrokenOrderRepository(self.order_repository, self.fail_on)
        return self


@pytest.fixture
async def engine():
    eng = build_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def uow_factory(session_factory):
    return partial(SQLAlchemyUnitOfWork, session_factory)


@pytest.fixture
def broken_uow_factory(session_factory):
    def _make(*operations: str):
        cls = type("BrokenUoW", (BrokenUnitOfWork,), {"fail_on": set(operations)})
        return partial(cls, session_factory)
    return _make


@pytest.fixture
def alice() -> UserRecord:
    return UserRecord(id=1, name="Alice", email="alice@example.com")


@pytest.fixture
def users(alice) -> FakeUserDirectory:
    return FakeUserDirectory({1: alice})


@pytest.fixture
def payments() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def order_count(uow_factory):
    """Number of rows in the orders table."""
    from sqlalchemy import func, select
    from infrastructure.models import OrderModel

    async def _count() -> int:
        async with uow_factory(readonly=True) as uow:
            result = await uow.session.execute(select(func.count()).select_from(OrderModel))
            return int(result.scalar_one())
    return _count
