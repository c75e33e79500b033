"""
Order DTOs (Pydantic v2) used at application boundaries.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON contracts of the order, user, payment and notification services.
"""
from __future__ import annotations

from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, StrictInt
from pydantic.alias_generators import to_camel

from domain.order.entity import Order


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateOrderRequest(CamelModel):
    # Booleans, floats and numeric strings are rejected; range checks live in the
    # service so that out-of-range values map to InvalidInput
    user_id: StrictInt
    amount: StrictInt
    description: Optional[str] = None


class OrderDTO(CamelModel):
    id: int
    user_id: int
    amount: int
    description: Optional[str] = None
    payment_status: str

    @classmethod
    def from_entity(cls, order: Order) -> "OrderDTO":
        return cls(
            id=order.id,
            user_id=order.user_id,
            amount=order.amount,
            description=order.description,
            payment_status=order.payment_status.value,
        )


class UserRecord(BaseModel):
    """Read-only snapshot of a user from the user directory."""
    id: int
    name: str
    email: str


class ChargeRequest(CamelModel):
    order_id: int
    amount: int
    description: Optional[str] = None


class PaymentOutcome(CamelModel):
    order_id: int
    amount: int
    status: Literal["success", "failed"]
    transaction_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class NotificationRequest(CamelModel):
    order_id: int
    payment_status: str
    amount: int
    user_email: str


class NotificationReceipt(CamelModel):
    order_id: int
    status: str


class CreateOrderResult(CamelModel):
    order: OrderDTO
    payment: Optional[PaymentOutcome] = None
    payment_error: Optional[str] = None

    def to_response(self) -> dict:
        """Serialize with camelCase keys, leaving out absent sections."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
