import pytest

from domain.common.exceptions import DomainValidationException
from domain.order.entity import Order, PaymentStatus


def test_new_order_starts_pending():
    order = Order(id=None, user_id=1, amount=5000, description="book")
    assert order.payment_status is PaymentStatus.PENDING
    assert not order.is_settled


@pytest.mark.parametrize("user_id,amount", [(0, 100), (-1, 100), (1, 0), (1, -5)])
def test_rejects_non_positive_user_or_amount(user_id, amount):
    with pytest.raises(DomainValidationException):
        Order(id=None, user_id=user_id, amount=amount)


def test_settle_moves_pending_to_success_once():
    order = Order(id=1, user_id=1, amount=10)
    order.settle("success")
    assert order.payment_status is PaymentStatus.SUCCESS
    assert order.updated_at is not None

    with pytest.raises(DomainValidationException):
        order.mark_failed()
    assert order.payment_status is PaymentStatus.SUCCESS


def test_failed_order_never_returns_to_pending():
    order = Order(id=1, user_id=1, amount=10)
    order.mark_failed()
    with pytest.raises(DomainValidationException):
        order.settle(PaymentStatus.PENDING)
    with pytest.raises(DomainValidationException):
        order.mark_paid()
    assert order.payment_status is PaymentStatus.FAILED


def test_status_string_is_coerced_to_enum():
    order = Order(id=3, user_id=2, amount=1, payment_status="failed")
    assert order.payment_status is PaymentStatus.FAILED
    assert order.is_settled
