"""
订单模型模块

定义订单聚合相关的数据库模型：订单、订单明细、状态历史。

订单、明细、状态历史是一个整体（聚合），只能通过订单状态机
（app.crud.orders.transition_order）修改状态，不要直接改字段，
否则状态与各阶段时间戳会不一致。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlmodel import Field, SQLModel

from app.core.snowflake import generate_id
from app.enums import OrderStatus, PaymentStatus, PayoutStatus

from .base import utc_now


class Order(SQLModel, table=True):
    """
    订单模型

    字段说明：
    - id: 主键
    - order_number: 订单号（唯一，创建后不可变），格式 ORD-YYYYMMDD-XXXXXXXX
    - buyer_id: 买家用户 ID（外键 users）
    - seller_id: 店铺 ID（外键 sellers）
    - total_amount: 订单总额（kobo），等于所有明细小计之和
    - platform_fee_rate: 平台抽成比例（百分比，下单时固化）
    - platform_fee / seller_amount: 平台抽成和卖家应得，两者之和严格等于 total_amount
    - status: 履约状态
    - payment_status: 支付状态（只会从 unpaid 变为 paid 一次）
    - payment_reference: 支付网关流水号
    - delivery_*: 下单时的收货信息快照，之后买家改地址不影响历史订单
    - ready_for_pickup_at / shipped_at / delivered_at / cancelled_at: 各阶段时间，只设置一次
    - payout_status / payout_date: 卖家结算状态和可结算时间
    - version: 乐观锁版本号，每次状态流转 +1
    """
    __tablename__ = "orders"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    order_number: str = Field(
        sa_column=Column(String(32), unique=True, index=True, nullable=False)
    )
    buyer_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    seller_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("sellers.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )

    total_amount: int = Field(sa_column=Column(BigInteger, nullable=False))
    platform_fee_rate: Decimal = Field(
        default=Decimal("5"),
        sa_column=Column(Numeric(5, 2), nullable=False),
    )
    platform_fee: int = Field(sa_column=Column(BigInteger, nullable=False))
    seller_amount: int = Field(sa_column=Column(BigInteger, nullable=False))
    currency: str = Field(default="NGN", max_length=8)

    status: OrderStatus = Field(
        default=OrderStatus.pending, sa_column=Column(String(24), index=True, nullable=False)
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.unpaid, sa_column=Column(String(16), nullable=False)
    )
    payment_reference: str | None = Field(default=None, max_length=128)

    delivery_name: str = Field(max_length=128)
    delivery_phone: str = Field(max_length=32)
    delivery_address: str = Field(sa_column=Column(Text, nullable=False))
    delivery_notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), index=True, nullable=False),
    )
    ready_for_pickup_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    shipped_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    delivered_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    cancelled_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    payout_status: PayoutStatus = Field(
        default=PayoutStatus.pending, sa_column=Column(String(16), nullable=False)
    )
    payout_date: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    version: int = Field(default=1)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class OrderItem(SQLModel, table=True):
    """
    订单明细模型

    与订单一起创建，之后不再修改。商品名称和单价是下单时的快照，
    商品后续改名、调价都不影响已有订单。
    """
    __tablename__ = "order_items"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    order_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    product_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("products.id"), index=True, nullable=False)
    )
    product_name: str = Field(max_length=255)
    product_price: int = Field(sa_column=Column(BigInteger, nullable=False))
    quantity: int = Field(ge=1)
    subtotal: int = Field(sa_column=Column(BigInteger, nullable=False))


class OrderStatusHistory(SQLModel, table=True):
    """
    订单状态历史模型（只追加）

    同一订单的记录按 created_at 排序后首尾相接：
    每条记录的 old_status 等于上一条的 new_status。
    """
    __tablename__ = "order_status_history"
    id: int = Field(
        default_factory=generate_id,
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
    )
    order_id: int = Field(
        sa_column=Column(
            BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    old_status: OrderStatus | None = Field(
        default=None, sa_column=Column(String(24), nullable=True)
    )
    new_status: OrderStatus = Field(sa_column=Column(String(24), nullable=False))
    changed_by: int | None = Field(
        default=None, sa_column=Column(BigInteger, ForeignKey("users.id"), nullable=True)
    )
    note: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
