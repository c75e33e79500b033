"""User directory client: ``GET /users/{id}``."""
from __future__ import annotations

from application.dtos.orders import UserRecord
from core.logging_config import get_logger
from .base import APIError
from .collaborator import CollaboratorClient


logger = get_logger(__name__)


class UserDirectoryClient(CollaboratorClient):
    service_name = "user-service"

    async def get_user(self, user_id: int) -> UserRecord:
        try:
            response = await self.get(f"users/{user_id}")
        except APIError as exc:
            raise self._translate(exc) from exc
        user = self._parse(response, UserRecord)
        logger.debug("user_fetched", user_id=user.id, elapsed_ms=round(response.elapsed_ms, 2))
        return user
