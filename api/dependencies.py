"""
API依赖项 - 组装订单应用服务
"""
from fastapi import Request

from application.services.order_service import OrderApplicationService
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


async def get_order_service(request: Request) -> OrderApplicationService:
    """协作服务客户端与通知分发器在 lifespan 中创建，挂在 app.state 上"""
    state = request.app.state
    return OrderApplicationService(
        uow_factory=SQLAlchemyUnitOfWork,
        users=state.user_directory,
        payments=state.payment_gateway,
        notifications=state.notification_dispatcher,
    )
