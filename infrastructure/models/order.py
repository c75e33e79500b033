"""
订单数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from datetime import datetime, timezone

from .base import Base


class OrderModel(Base):
    """
    订单数据库模型

    这是数据库表的映射，不包含业务逻辑
    所有业务规则都在 domain.order.entity.Order 中
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 用户由独立的用户服务管理，这里不建外键
    user_id = Column(Integer, nullable=False, index=True, comment="用户ID")
    amount = Column(Integer, nullable=False, comment="金额（最小货币单位）")
    description = Column(Text, nullable=True, comment="订单描述")
    payment_status = Column(
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
        comment="支付状态: pending/success/failed"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    __table_args__ = (
        Index("ix_orders_user_status", "user_id", "payment_status"),
    )

    def __repr__(self):
        return (
            f"<OrderModel(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, payment_status='{self.payment_status}')>"
        )
