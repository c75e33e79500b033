import json

import httpx
import pytest

from application.ports.collaborators import (
    CollaboratorNotFoundError,
    CollaboratorUnavailableError,
    MalformedResponseError,
)
from infrastructure.external.api_clients import (
    NotifierClient,
    PaymentGatewayClient,
    UserDirectoryClient,
)


def _transport(handler):
    return httpx.MockTransport(handler)


def _raise(exc_type):
    def handler(request: httpx.Request):
        raise exc_type("boom", request=request)
    return handler


@pytest.mark.asyncio
async def test_get_user_decodes_record():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"id": 1, "name": "Alice", "email": "alice@example.com"})

    async with UserDirectoryClient("http://users/api", transport=_transport(handler)) as client:
        user = await client.get_user(1)

    assert seen["url"] == "http://users/api/users/1"
    assert (user.id, user.name, user.email) == (1, "Alice", "alice@example.com")


@pytest.mark.asyncio
async def test_get_user_not_found():
    handler = lambda request: httpx.Response(404, text="User not found")
    async with UserDirectoryClient("http://users/api", transport=_transport(handler)) as client:
        with pytest.raises(CollaboratorNotFoundError) as exc_info:
            await client.get_user(999)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("exc_type", [httpx.ConnectError, httpx.ReadTimeout])
async def test_get_user_transport_failure_is_unavailable(exc_type):
    async with UserDirectoryClient("http://users/api", transport=_transport(_raise(exc_type))) as client:
        with pytest.raises(CollaboratorUnavailableError):
            await client.get_user(1)


@pytest.mark.asyncio
async def test_get_user_server_error_is_unavailable():
    handler = lambda request: httpx.Response(500, json={"error": "Database error"})
    async with UserDirectoryClient("http://users/api", transport=_transport(handler)) as client:
        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await client.get_user(1)
    assert "Database error" in str(exc_info.value)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json", headers={"content-type": "text/plain"}),
        httpx.Response(200, json={"id": "abc"}),
    ],
)
async def test_get_user_malformed_body(response):
    async with UserDirectoryClient("http://users/api", transport=_transport(lambda request: response)) as client:
        with pytest.raises(MalformedResponseError):
            await client.get_user(1)


@pytest.mark.asyncio
async def test_charge_sends_camel_case_payload_and_returns_outcome():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"orderId": 1, "amount": 5000, "status": "success", "transactionId": "tx_1"},
        )

    async with PaymentGatewayClient("http://payments/api", transport=_transport(handler)) as client:
        outcome = await client.charge(1, 5000, "book")

    assert seen["path"] == "/api/payments"
    assert seen["body"] == {"orderId": 1, "amount": 5000, "description": "book"}
    assert outcome.succeeded
    assert outcome.transaction_id == "tx_1"


@pytest.mark.asyncio
async def test_charge_decline_in_success_body_is_failed_outcome():
    handler = lambda request: httpx.Response(
        200, json={"orderId": 1, "amount": 5000, "status": "failed", "errorMessage": "card_declined"}
    )
    async with PaymentGatewayClient("http://payments/api", transport=_transport(handler)) as client:
        outcome = await client.charge(1, 5000, "book")
    assert outcome.status == "failed"
    assert outcome.error_message == "card_declined"


@pytest.mark.asyncio
async def test_charge_error_status_is_failed_outcome():
    handler = lambda request: httpx.Response(402, json={"orderId": 1, "amount": 5000, "status": "failed", "errorMessage": "card_declined"})
    async with PaymentGatewayClient("http://payments/api", transport=_transport(handler)) as client:
        outcome = await client.charge(1, 5000, "book")
    assert (outcome.order_id, outcome.status, outcome.error_message) == (1, "failed", "card_declined")


@pytest.mark.asyncio
async def test_charge_bad_request_without_outcome_uses_error_field():
    handler = lambda request: httpx.Response(400, json={"error": "Amount must be greater than 0"})
    async with PaymentGatewayClient("http://payments/api", transport=_transport(handler)) as client:
        outcome = await client.charge(1, 5000, None)
    assert outcome.status == "failed"
    assert outcome.error_message == "Amount must be greater than 0"


@pytest.mark.asyncio
async def test_charge_transport_failure_raises():
    async with PaymentGatewayClient("http://payments/api", transport=_transport(_raise(httpx.ConnectTimeout))) as client:
        with pytest.raises(CollaboratorUnavailableError):
            await client.charge(1, 5000, "book")


@pytest.mark.asyncio
async def test_charge_undecodable_success_body_is_malformed():
    handler = lambda request: httpx.Response(200, text="<html>", headers={"content-type": "text/html"})
    async with PaymentGatewayClient("http://payments/api", transport=_transport(handler)) as client:
        with pytest.raises(MalformedResponseError):
            await client.charge(1, 5000, "book")


@pytest.mark.asyncio
async def test_charge_undecodable_error_body_is_unavailable():
    handler = lambda request: httpx.Response(502, text="Bad Gateway", headers={"content-type": "text/plain"})
    async with PaymentGatewayClient("http://payments/api", transport=_transport(handler)) as client:
        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await client.charge(1, 5000, "book")
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_notify_posts_request_and_reads_receipt():
    seen = {}

    def handler(request: httpx.Request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"orderId": 3, "status": "sent"})

    async with NotifierClient("http://notify/api", transport=_transport(handler)) as client:
        receipt = await client.notify(3, "success", 700, "bob@example.com")

    assert seen["body"] == {"orderId": 3, "paymentStatus": "success", "amount": 700, "userEmail": "bob@example.com"}
    assert receipt.status == "sent"


@pytest.mark.asyncio
async def test_notify_error_status_raises():
    handler = lambda request: httpx.Response(500, json={"error": "Internal server error"})
    async with NotifierClient("http://notify/api", transport=_transport(handler)) as client:
        with pytest.raises(CollaboratorUnavailableError):
            await client.notify(3, "success", 700, "bob@example.com")


@pytest.mark.asyncio
async def test_request_id_is_forwarded():
    import structlog

    seen = {}

    def handler(request: httpx.Request):
        seen["request_id"] = request.headers.get("x-request-id")
        return httpx.Response(200, json={"id": 1, "name": "Alice", "email": "alice@example.com"})

    structlog.contextvars.bind_contextvars(request_id="req-123")
    try:
        async with UserDirectoryClient("http://users/api", transport=_transport(handler)) as client:
            await client.get_user(1)
    finally:
        structlog.contextvars.clear_contextvars()

    assert seen["request_id"] == "req-123"
