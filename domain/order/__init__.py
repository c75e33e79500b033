"""Order domain exports."""
from .entity import Order, PaymentStatus
from .repository import OrderRepository

__all__ = ["Order", "PaymentStatus", "OrderRepository"]
