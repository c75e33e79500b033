"""
Payment gateway client: ``POST /payments``.

A declined charge is a normal ``failed`` outcome. The payment service may
report it with a 2xx body whose status is ``failed`` or with an error status;
either way the caller gets a PaymentOutcome. Only transport failures and
undecodable successful bodies raise.
"""
from __future__ import annotations

from typing import Optional

from application.dtos.orders import ChargeRequest, PaymentOutcome
from application.ports.collaborators import CollaboratorUnavailableError, MalformedResponseError
from core.logging_config import get_logger
from .base import APIError, APIResponse
from .collaborator import CollaboratorClient


logger = get_logger(__name__)


class PaymentGatewayClient(CollaboratorClient):
    service_name = "payment-service"

    async def charge(self, order_id: int, amount: int, description: Optional[str]) -> PaymentOutcome:
        payload = ChargeRequest(order_id=order_id, amount=amount, description=description or "")
        try:
            response = await self.post("payments", json_data=payload, raise_for_status=False)
        except APIError as exc:
            raise self._translate(exc) from exc

        if response.is_success:
            outcome = self._parse(response, PaymentOutcome)
        else:
            outcome = self._declined(response, order_id, amount)

        logger.info(
            "payment_charge_completed",
            order_id=order_id,
            status=outcome.status,
            http_status=response.status_code,
            elapsed_ms=round(response.elapsed_ms, 2),
        )
        return outcome

    def _declined(self, response: APIResponse, order_id: int, amount: int) -> PaymentOutcome:
        try:
            data = self._decode(response)
        except MalformedResponseError as exc:
            raise CollaboratorUnavailableError(
                self.service_name,
                f"payment service returned status {response.status_code}",
                status_code=response.status_code,
            ) from exc
        message = None
        if isinstance(data, dict):
            message = data.get("errorMessage") or data.get("error") or data.get("message")
        return PaymentOutcome(
            order_id=order_id,
            amount=amount,
            status="failed",
            error_message=str(message) if message else f"status {response.status_code}",
        )
