"""
订单API路由 - FastAPI表现层
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from application.dtos.orders import CreateOrderRequest, CreateOrderResult, OrderDTO
from application.services.order_service import OrderApplicationService
from api.dependencies import get_order_service


router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)


@router.post(
    "",
    summary="Create order",
    response_model=CreateOrderResult,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def create_order(
    payload: CreateOrderRequest,
    service: OrderApplicationService = Depends(get_order_service),
):
    """
    创建订单：校验用户 → 落库 → 扣款 → 更新支付状态 → 异步通知

    - **userId**: 用户ID（正整数）
    - **amount**: 金额，最小货币单位（正整数）
    - **description**: 描述（可选）

    扣款失败属于业务结果：仍返回 200，`paymentError` 说明原因。
    """
    result = await service.create_order(payload)
    return JSONResponse(content=result.to_response())


@router.get(
    "/{order_id}",
    summary="Get order",
    response_model=OrderDTO,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def get_order(
    order_id: int,
    service: OrderApplicationService = Depends(get_order_service),
):
    """获取订单（反映工作流最后写入的支付状态）"""
    return await service.get_order(order_id)
