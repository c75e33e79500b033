"""
API客户端模块

提供与用户、支付、通知服务集成的客户端实现
"""
from .base import BaseAPIClient, APIResponse, APIError
from .users import UserDirectoryClient
from .payments import PaymentGatewayClient
from .notifications import NotifierClient

__all__ = [
    "BaseAPIClient",
    "APIResponse",
    "APIError",
    "UserDirectoryClient",
    "PaymentGatewayClient",
    "NotifierClient",
]
