"""
订单应用服务（application/services）- 编排下单工作流

The workflow runs strictly in order for one request:

1. resolve the user through the user directory
2. persist the order as ``pending``
3. charge the payment gateway
4. persist the payment outcome
5. hand a notification to the dispatcher without waiting for delivery

There are no retries and no compensation of earlier steps. Only invalid
input, an unresolved user and a failed insert abort the request; a failed
charge is a business outcome returned with HTTP 200.
"""
from __future__ import annotations

from typing import Callable, Optional

from application.dtos.orders import (
    CreateOrderRequest,
    CreateOrderResult,
    NotificationRequest,
    OrderDTO,
    PaymentOutcome,
    UserRecord,
)
from application.ports.collaborators import (
    CollaboratorError,
    PaymentGateway,
    UserDirectory,
)
from application.ports.notifications import NotificationDispatcher
from core.logging_config import get_logger
from domain.common.exceptions import (
    InvalidOrderInputException,
    OrderNotFoundException,
    OrderStorageException,
    UserValidationFailedException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order


logger = get_logger(__name__)

# Largest value the orders table can hold in its integer columns
MAX_STORED_INT = 2**63 - 1


class OrderApplicationService:
    """订单应用服务 - 驱动用户校验、落库、扣款、通知"""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        users: UserDirectory,
        payments: PaymentGateway,
        notifications: NotificationDispatcher,
    ) -> None:
        self._uow_factory = uow_factory
        self._users = users
        self._payments = payments
        self._notifications = notifications

    async def create_order(self, req: CreateOrderRequest) -> CreateOrderResult:
        self._validate(req)

        user = await self._resolve_user(req.user_id)
        order = await self._insert_order(req)
        log = logger.bind(order_id=order.id, user_id=order.user_id)

        outcome: Optional[PaymentOutcome] = None
        try:
            outcome = await self._payments.charge(order.id, order.amount, order.description)
        except CollaboratorError as exc:
            log.error("payment_gateway_error", service=exc.service, error=str(exc), status_code=exc.status_code)
            return await self._fail_payment(order, str(exc))

        if not outcome.succeeded:
            reason = outcome.error_message or "unknown error"
            log.warning("payment_declined", reason=reason)
            return await self._fail_payment(order, reason)

        order.settle(outcome.status)
        await self._save_payment_status(order)
        log.info("payment_succeeded", transaction_id=outcome.transaction_id)

        self._notify(order, user)
        return CreateOrderResult(order=OrderDTO.from_entity(order), payment=outcome)

    async def get_order(self, order_id: int) -> OrderDTO:
        """获取订单（反映工作流最后一次写入的状态）"""
        async with self._uow_factory(readonly=True) as uow:
            order = await uow.order_repository.get_by_id(order_id)
            if not order:
                raise OrderNotFoundException(order_id)
            return OrderDTO.from_entity(order)

    @staticmethod
    def _validate(req: CreateOrderRequest) -> None:
        if not 0 < req.user_id <= MAX_STORED_INT:
            raise InvalidOrderInputException("Invalid user_id or amount", field="userId", details={"user_id": req.user_id})
        if not 0 < req.amount <= MAX_STORED_INT:
            raise InvalidOrderInputException("Invalid user_id or amount", field="amount", details={"amount": req.amount})

    async def _resolve_user(self, user_id: int) -> UserRecord:
        try:
            user = await self._users.get_user(user_id)
        except CollaboratorError as exc:
            logger.warning(
                "user_validation_failed",
                user_id=user_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise UserValidationFailedException(user_id, str(exc)) from exc
        logger.debug("user_resolved", user_id=user.id)
        return user

    async def _insert_order(self, req: CreateOrderRequest) -> Order:
        try:
            async with self._uow_factory() as uow:
                order = await uow.order_repository.create(
                    Order(id=None, user_id=req.user_id, amount=req.amount, description=req.description)
                )
        except OrderStorageException as exc:
            logger.error("order_insert_failed", user_id=req.user_id, error=exc.message)
            raise
        logger.info("order_created", order_id=order.id, user_id=order.user_id, amount=order.amount)
        return order

    async def _fail_payment(self, order: Order, reason: str) -> CreateOrderResult:
        # The notifier is not invoked for failed charges
        order.mark_failed()
        await self._save_payment_status(order)
        return CreateOrderResult(
            order=OrderDTO.from_entity(order),
            payment_error=f"payment failed: {reason}",
        )

    async def _save_payment_status(self, order: Order) -> None:
        """Best effort; the response keeps the in-memory status either way."""
        try:
            async with self._uow_factory() as uow:
                updated = await uow.order_repository.update_payment_status(order.id, order.payment_status)
        except OrderStorageException as exc:
            logger.error(
                "payment_status_update_failed",
                order_id=order.id,
                status=order.payment_status.value,
                error=exc.message,
            )
            return
        if not updated:
            logger.error("payment_status_update_missed", order_id=order.id, status=order.payment_status.value)

    def _notify(self, order: Order, user: UserRecord) -> None:
        self._notifications.dispatch(
            NotificationRequest(
                order_id=order.id,
                payment_status=order.payment_status.value,
                amount=order.amount,
                user_email=user.email,
            )
        )
