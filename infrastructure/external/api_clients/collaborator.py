"""
Shared plumbing for the order workflow's HTTP collaborators.

Translates the generic API client errors into the application's
collaborator error types so the workflow never sees httpx or HTTP codes.
"""
from __future__ import annotations

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from application.ports.collaborators import (
    CollaboratorError,
    CollaboratorNotFoundError,
    CollaboratorUnavailableError,
    MalformedResponseError,
)
from .base import APIError, APIResponse, BaseAPIClient, NotFoundError, TransportError


M = TypeVar("M", bound=BaseModel)


class CollaboratorClient(BaseAPIClient):
    """Base class for the user, payment and notification service clients."""

    service_name = "collaborator"

    def _translate(self, exc: APIError) -> CollaboratorError:
        if isinstance(exc, NotFoundError):
            return CollaboratorNotFoundError(self.service_name, exc.message, status_code=exc.status_code)
        if isinstance(exc, TransportError):
            return CollaboratorUnavailableError(self.service_name, exc.message)
        return CollaboratorUnavailableError(self.service_name, str(exc), status_code=exc.status_code)

    def _decode(self, response: APIResponse) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                self.service_name,
                f"{self.service_name} returned an undecodable body",
                status_code=response.status_code,
            ) from exc

    def _parse(self, response: APIResponse, model: Type[M]) -> M:
        data = self._decode(response)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError(
                self.service_name,
                f"{self.service_name} returned an unexpected body: {exc.error_count()} validation error(s)",
                status_code=response.status_code,
            ) from exc
