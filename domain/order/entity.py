"""
订单领域实体 - 订单聚合根
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException


class PaymentStatus(str, Enum):
    """订单支付状态"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Order:
    """
    订单聚合根

    业务规则：
    1. 用户ID与金额（最小货币单位）必须大于0
    2. 支付状态只能从 pending 转为 success 或 failed，且只转换一次
    """

    id: Optional[int]
    user_id: int
    amount: int
    description: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.payment_status = PaymentStatus(self.payment_status)
        self._validate_user_id()
        self._validate_amount()
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)

    def _validate_user_id(self) -> None:
        if self.user_id <= 0:
            raise DomainValidationException(f"user_id must be positive: {self.user_id}", field="user_id")

    def _validate_amount(self) -> None:
        if self.amount <= 0:
            raise DomainValidationException(f"amount must be positive: {self.amount}", field="amount")

    @property
    def is_settled(self) -> bool:
        return self.payment_status is not PaymentStatus.PENDING

    def settle(self, status: PaymentStatus | str) -> None:
        """Record the payment outcome; allowed exactly once, from pending."""
        target = PaymentStatus(status)
        if target is PaymentStatus.PENDING:
            raise DomainValidationException("payment status cannot re-enter pending", field="payment_status")
        if self.is_settled:
            raise DomainValidationException(
                f"cannot change payment status from {self.payment_status.value} to {target.value}",
                field="payment_status",
            )
        self.payment_status = target
        self.updated_at = datetime.now(timezone.utc)

    def mark_paid(self) -> None:
        self.settle(PaymentStatus.SUCCESS)

    def mark_failed(self) -> None:
        self.settle(PaymentStatus.FAILED)
