"""
评价模型模块

一个买家对同一订单里的同一商品只能评价一次
（product_id, buyer_id, order_id 唯一约束）。
"""
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    SmallInteger,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel

from app.core.snowflake import generate_id

from .base import utc_now


class Review(SQLModel, table=True):
    """
    商品评价模型

    字段说明：
    - rating: 评分 1-5
    - title / comment: 标题和内容（可选）
    - seller_response / seller_response_at: 店铺回复，可多次修改
    - helpful_count: 被标记为"有用"的次数，与 review_helpful 表同步
    """
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("product_id", "buyer_id", "order_id", name="uq_reviews_product_buyer_order"),
    )

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    product_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    buyer_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    order_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    rating: int = Field(sa_column=Column(SmallInteger, nullable=False))
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    seller_response: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    seller_response_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    helpful_count: int = Field(default=0)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ReviewHelpful(SQLModel, table=True):
    """用户对评价的“有用”标记，每人每条评价最多一条，再次点击即取消"""
    __tablename__ = "review_helpful"
    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_helpful_review_user"),
    )

    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    review_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("reviews.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    user_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
