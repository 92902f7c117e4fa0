"""
商品模型模块

商品的增删改由店铺管理接口负责，订单只在下单时读取名称和价格做快照。
"""
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey
from sqlmodel import Field, SQLModel

from app.core.snowflake import generate_id

from .base import utc_now


class Product(SQLModel, table=True):
    """
    商品模型

    字段说明：
    - price: 单价（kobo，整数）
    - quantity_available: 库存，低于 5 件会出现在卖家的低库存列表
    - is_active: 下架的商品不会出现在分析报表里
    """
    __tablename__ = "products"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    seller_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("sellers.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    name: str = Field(max_length=255)
    price: int = Field(sa_column=Column(BigInteger, nullable=False))
    quantity_available: int = Field(default=0)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
