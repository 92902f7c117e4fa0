"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构。
使用 Pydantic 进行数据验证和序列化。

关键概念：
- BaseModel: Pydantic 的模型基类，用于数据验证
- Field: 字段验证器，定义字段的约束（长度、范围等）
- 这些模型不是数据库表，只用于 API 数据交换
- 金额字段都是最小货币单位（kobo）的整数
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.enums import (
    OrderStatus,  # 订单状态枚举
    PaymentStatus,  # 支付状态枚举
    PayoutStatus,  # 结算状态枚举
    ReviewIneligibleReason,  # 不能评价的原因
)

# ============================================================
# 通用响应模型
# ============================================================


class Message(BaseModel):
    """
    消息响应模型

    用于 API 返回简单的文本消息。
    """
    message: str


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    所有 API 响应都使用这个格式，包含：
    - code: 状态码（0 表示成功，非 0 表示错误）
    - message: 消息（成功时为 "success"，错误时为错误描述）
    - data: 数据（成功时返回业务数据，错误时为 None 或错误详情）

    示例响应：
        {"code": 0, "message": "success", "data": {...}}
        {"code": 409101, "message": "Cannot change order status from delivered to cancelled",
         "data": {"current_status": "delivered", "target_status": "cancelled"}}
    """
    code: int = 0  # 默认成功
    message: str = "success"  # 默认成功消息
    data: Any | None = None  # 业务数据（可选）


# ============================================================
# 订单
# ============================================================


class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, le=1000)


class OrderCreateRequest(BaseModel):
    """
    创建订单请求模型

    结账完成后提交，所有商品必须来自同一个店铺。
    """
    items: list[OrderItemCreate] = Field(min_length=1, max_length=50)
    delivery_name: str = Field(min_length=1, max_length=128)
    delivery_phone: str = Field(min_length=1, max_length=32)
    delivery_address: str = Field(min_length=1, max_length=1000)
    delivery_notes: str | None = Field(default=None, max_length=1000)


class OrderItemData(BaseModel):
    product_id: int
    product_name: str
    product_price: int
    quantity: int
    subtotal: int


class OrderData(BaseModel):
    """
    订单响应数据模型

    详情接口会带上 items，列表接口 items 为空。
    """
    id: int
    order_number: str
    buyer_id: int
    seller_id: int
    total_amount: int
    platform_fee_rate: Decimal
    platform_fee: int
    seller_amount: int
    currency: str
    status: OrderStatus
    payment_status: PaymentStatus
    payout_status: PayoutStatus
    payout_date: datetime | None = None
    delivery_name: str
    delivery_phone: str
    delivery_address: str
    delivery_notes: str | None = None
    created_at: datetime
    ready_for_pickup_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime
    items: list[OrderItemData] = Field(default_factory=list)


class OrdersData(BaseModel):
    """
    订单列表响应模型

    返回分页的订单列表。
    """
    data: list[OrderData]  # 订单列表
    count: int  # 总数


class OrderStatusUpdateRequest(BaseModel):
    """
    订单状态变更请求

    status 必须是已知状态，旧版的 "shipped" 不再接受（422）。
    """
    status: OrderStatus
    note: str | None = Field(default=None, max_length=1000)


class OrderHistoryEntry(BaseModel):
    old_status: OrderStatus | None = None
    new_status: OrderStatus
    changed_by: int | None = None
    note: str | None = None
    created_at: datetime


class OrderHistoryData(BaseModel):
    order_id: int
    history: list[OrderHistoryEntry]


class PayoutData(BaseModel):
    """结算状态（请求时按当前时间计算）"""
    order_id: int
    seller_amount: int
    payout_status: PayoutStatus
    payout_date: datetime | None = None


class PaymentConfirmRequest(BaseModel):
    """支付网关回调后由支付服务调用"""
    reference: str = Field(min_length=1, max_length=128)


# ============================================================
# 评价
# ============================================================


class ReviewCreateRequest(BaseModel):
    product_id: int
    order_id: int
    rating: int = Field(ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = Field(default=None, max_length=5000)


class ReviewUpdateRequest(BaseModel):
    """只修改传入的字段"""
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = Field(default=None, max_length=5000)


class SellerResponseRequest(BaseModel):
    response: str = Field(min_length=1, max_length=5000)

    @field_validator("response")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Response is required")
        return value.strip()


class ReviewData(BaseModel):
    id: int
    product_id: int
    buyer_id: int
    order_id: int
    rating: int
    title: str | None = None
    comment: str | None = None
    seller_response: str | None = None
    seller_response_at: datetime | None = None
    helpful_count: int
    marked_helpful_by_user: bool = False
    created_at: datetime
    updated_at: datetime


class ReviewsData(BaseModel):
    data: list[ReviewData]
    count: int


class ReviewEligibilityData(BaseModel):
    eligible: bool
    reason: ReviewIneligibleReason | None = None


class HelpfulData(BaseModel):
    marked: bool
    helpful_count: int


class ReviewableProductData(BaseModel):
    product_id: int
    product_name: str
    order_id: int
    order_number: str
    delivered_at: datetime | None = None


# ============================================================
# 店铺分析
# ============================================================


class AnalyticsOverview(BaseModel):
    """
    概览数据

    ready_for_pickup 和 in_transit 的订单都计入 shipped_orders。
    """
    total_orders: int
    total_revenue: int
    average_order_value: int
    pending_orders: int
    processing_orders: int
    shipped_orders: int
    delivered_orders: int
    cancelled_orders: int
    order_growth_percentage: float
    revenue_growth_percentage: float


class RevenueByDay(BaseModel):
    day: date
    orders_count: int
    revenue: int


class TopProduct(BaseModel):
    id: int
    name: str
    price: int
    quantity_available: int
    units_sold: int
    revenue: int


class LowStockProduct(BaseModel):
    id: int
    name: str
    price: int
    quantity_available: int


class RecentOrder(BaseModel):
    id: int
    order_number: str
    total_amount: int
    seller_amount: int
    status: OrderStatus
    created_at: datetime
    buyer_name: str


class MonthComparison(BaseModel):
    current_month_orders: int
    current_month_revenue: int
    last_month_orders: int
    last_month_revenue: int
    order_growth_percentage: float
    revenue_growth_percentage: float


class SellerAnalyticsData(BaseModel):
    overview: AnalyticsOverview
    revenue_by_day: list[RevenueByDay]
    top_products: list[TopProduct]
    low_stock_products: list[LowStockProduct]
    recent_orders: list[RecentOrder]
    month_comparison: MonthComparison
