"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class InvalidOrderInputException(BusinessException):
    """Request rejected before any remote call or persistence."""

    def __init__(self, message: str = "Invalid user_id or amount", *, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.PARAM_ERROR,
            message=message,
            error_type="InvalidInput",
            details=details,
            field=field,
        )


class UserValidationFailedException(BusinessException):
    """The user directory rejected the user or could not be reached."""

    def __init__(self, user_id: int, reason: str):
        super().__init__(
            code=BusinessCode.USER_VALIDATION_FAILED,
            message=f"User validation failed: {reason}",
            error_type="UserValidationFailed",
            details={"user_id": user_id, "reason": reason},
            field="userId",
        )


class OrderStorageException(BusinessException):
    def __init__(self, message: str = "Database error", *, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message=message,
            error_type="StorageError",
            details=details,
        )


class OrderNotFoundException(BusinessException):
    def __init__(self, order_id: Optional[int] = None):
        details = {"order_id": order_id} if order_id is not None else None
        super().__init__(
            code=BusinessCode.ORDER_NOT_FOUND,
            message="Order not found",
            error_type="OrderNotFound",
            details=details,
        )
