"""
订单仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import OrderStorageException
from domain.order.entity import Order, PaymentStatus
from domain.order.repository import OrderRepository
from infrastructure.models.order import OrderModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyOrderRepository(OrderRepository):
    """订单仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        """将数据库模型转换为领域实体"""
        return Order(
            id=model.id,
            user_id=model.user_id,
            amount=model.amount,
            description=model.description,
            payment_status=PaymentStatus(model.payment_status),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Order) -> OrderModel:
        """将领域实体转换为数据库模型"""
        return OrderModel(
            id=entity.id,
            user_id=entity.user_id,
            amount=entity.amount,
            description=entity.description,
            payment_status=entity.payment_status.value,
        )

    async def create(self, order: Order) -> Order:
        """插入订单，ID 由数据库分配"""
        try:
            db_order = self._to_model(order)
            self.session.add(db_order)
            await self.session.flush()
            await self.session.refresh(db_order)
        # 驱动层的数值转换错误（如超出 INTEGER 范围）不是 SQLAlchemyError
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            logger.error("order_insert_error", user_id=order.user_id, error=str(e))
            raise OrderStorageException("Database error") from e
        return self._to_entity(db_order)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """根据ID获取订单"""
        try:
            result = await self.session.execute(
                select(OrderModel).where(OrderModel.id == order_id)
            )
        except SQLAlchemyError as e:
            raise OrderStorageException("Database error") from e
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def update_payment_status(self, order_id: int, status: PaymentStatus) -> bool:
        """单条 UPDATE 语句按主键更新，依赖存储引擎的行级原子性"""
        try:
            result = await self.session.execute(
                update(OrderModel)
                .where(OrderModel.id == order_id)
                .values(payment_status=PaymentStatus(status).value)
            )
        except SQLAlchemyError as e:
            raise OrderStorageException("Database error", details={"order_id": order_id}) from e
        logger.info("order_payment_status_updated", order_id=order_id, status=PaymentStatus(status).value)
        return result.rowcount > 0
