"""
订单路由模块

处理订单相关的 API 端点，包括：
- 创建订单（结账完成后）
- 查询订单列表（分页）和订单详情
- 查询状态历史和结算状态
- 变更订单状态
- 确认付款（支付服务回调）

权限：买家、该订单的店铺、管理员可以查看订单；
店铺可以推进自己订单的状态，买家只能取消自己的订单。
"""
from __future__ import annotations

from fastapi import APIRouter, Query  # FastAPI 路由和查询参数
from sqlmodel import Session

from app import crud
from app.api.deps import CurrentUser, SessionDep  # 依赖注入
from app.api.errors import forbidden  # 自定义异常
from app.api.schemas import (
    ApiEnvelope,
    OrderCreateRequest,
    OrderData,
    OrderHistoryData,
    OrderHistoryEntry,
    OrderItemData,
    OrdersData,
    OrderStatusUpdateRequest,
    PaymentConfirmRequest,
    PayoutData,
)
from app.crud.orders import list_buyer_orders, list_order_items, payout_hold
from app.enums import OrderStatus, UserRole
from app.models import Order, OrderItem, Seller, User, as_utc, utc_now
from app.services.payout import payout_status

router = APIRouter(prefix="/orders", tags=["orders"])


def to_order_data(order: Order, items: list[OrderItem] | None = None) -> OrderData:
    """
    将订单模型转换为响应数据模型

    Args:
        order: 订单数据库模型
        items: 订单明细（详情接口才传）

    Returns:
        OrderData: 订单响应数据模型
    """
    return OrderData(
        id=order.id,
        order_number=order.order_number,
        buyer_id=order.buyer_id,
        seller_id=order.seller_id,
        total_amount=order.total_amount,
        platform_fee_rate=order.platform_fee_rate,
        platform_fee=order.platform_fee,
        seller_amount=order.seller_amount,
        currency=order.currency,
        status=order.status,
        payment_status=order.payment_status,
        payout_status=order.payout_status,
        payout_date=as_utc(order.payout_date),
        delivery_name=order.delivery_name,
        delivery_phone=order.delivery_phone,
        delivery_address=order.delivery_address,
        delivery_notes=order.delivery_notes,
        created_at=as_utc(order.created_at),
        ready_for_pickup_at=as_utc(order.ready_for_pickup_at),
        shipped_at=as_utc(order.shipped_at),
        delivered_at=as_utc(order.delivered_at),
        cancelled_at=as_utc(order.cancelled_at),
        updated_at=as_utc(order.updated_at),
        items=[
            OrderItemData(
                product_id=item.product_id,
                product_name=item.product_name,
                product_price=item.product_price,
                quantity=item.quantity,
                subtotal=item.subtotal,
            )
            for item in items or []
        ],
    )


def _is_order_seller(session: Session, order: Order, user: User) -> bool:
    seller = session.get(Seller, order.seller_id)
    return seller is not None and seller.user_id == user.id


def _get_visible_order(session: Session, user: User, order_id: int) -> Order:
    """查询当前用户可以查看的订单"""
    order = crud.get_order(session=session, order_id=order_id)
    if (
        user.role == UserRole.admin
        or order.buyer_id == user.id
        or _is_order_seller(session, order, user)
    ):
        return order
    raise forbidden("Not your order")


@router.post("", response_model=ApiEnvelope)
def create_order(session: SessionDep, current_user: CurrentUser, body: OrderCreateRequest) -> ApiEnvelope:
    """
    创建订单

    请求路径: POST /api/v1/orders

    Args:
        session: 数据库会话
        current_user: 当前登录用户（买家）
        body: 订单明细和收货信息

    Returns:
        ApiEnvelope: 包含订单详情的响应
    """
    order = crud.create_order(
        session=session,
        buyer_id=current_user.id,
        lines=[(item.product_id, item.quantity) for item in body.items],
        delivery_name=body.delivery_name,
        delivery_phone=body.delivery_phone,
        delivery_address=body.delivery_address,
        delivery_notes=body.delivery_notes,
    )
    items = list_order_items(session=session, order_id=order.id)
    return ApiEnvelope(data=to_order_data(order, items))


@router.get("/list", response_model=ApiEnvelope)
def list_orders(
    session: SessionDep,
    current_user: CurrentUser,
    page: int = Query(default=1, ge=1),  # 页码，从 1 开始
    page_size: int = Query(default=20, ge=1, le=100),  # 每页数量，1-100
) -> ApiEnvelope:
    """
    获取当前买家的订单列表（分页，按创建时间倒序）

    请求路径: GET /api/v1/orders/list?page=1&page_size=20
    """
    rows, count = list_buyer_orders(
        session=session, buyer_id=current_user.id, page=page, page_size=page_size
    )
    return ApiEnvelope(data=OrdersData(data=[to_order_data(o) for o in rows], count=count))


@router.get("/{order_id}", response_model=ApiEnvelope)
def get_order(session: SessionDep, current_user: CurrentUser, order_id: int) -> ApiEnvelope:
    """
    获取订单详情（含明细）

    请求路径: GET /api/v1/orders/{order_id}

    Raises:
        AppError: 订单不存在（404101）或无权查看（403101）
    """
    order = _get_visible_order(session, current_user, order_id)
    items = list_order_items(session=session, order_id=order.id)
    return ApiEnvelope(data=to_order_data(order, items))


@router.get("/{order_id}/history", response_model=ApiEnvelope)
def get_order_history(session: SessionDep, current_user: CurrentUser, order_id: int) -> ApiEnvelope:
    """
    获取订单状态历史（按时间正序）

    请求路径: GET /api/v1/orders/{order_id}/history
    """
    order = _get_visible_order(session, current_user, order_id)
    history = crud.list_order_history(session=session, order_id=order.id)
    return ApiEnvelope(
        data=OrderHistoryData(
            order_id=order.id,
            history=[
                OrderHistoryEntry(
                    old_status=entry.old_status,
                    new_status=entry.new_status,
                    changed_by=entry.changed_by,
                    note=entry.note,
                    created_at=as_utc(entry.created_at),
                )
                for entry in history
            ],
        )
    )


@router.get("/{order_id}/payout", response_model=ApiEnvelope)
def get_order_payout(session: SessionDep, current_user: CurrentUser, order_id: int) -> ApiEnvelope:
    """
    获取订单结算状态

    按请求时的当前时间重新计算，不依赖定时任务是否已经刷新过。

    请求路径: GET /api/v1/orders/{order_id}/payout
    """
    order = _get_visible_order(session, current_user, order_id)
    decision = payout_status(order.status, order.delivered_at, utc_now(), payout_hold())
    return ApiEnvelope(
        data=PayoutData(
            order_id=order.id,
            seller_amount=order.seller_amount,
            payout_status=decision.status,
            payout_date=decision.payout_date,
        )
    )


@router.post("/{order_id}/status", response_model=ApiEnvelope)
def update_order_status(
    session: SessionDep,
    current_user: CurrentUser,
    order_id: int,
    body: OrderStatusUpdateRequest,
) -> ApiEnvelope:
    """
    变更订单状态

    请求路径: POST /api/v1/orders/{order_id}/status

    Args:
        body: 目标状态和备注

    Raises:
        AppError: 无权操作（403101）、流转不合法（409101）、并发修改（409102）
    """
    order = crud.get_order(session=session, order_id=order_id)
    is_admin = current_user.role == UserRole.admin
    is_seller = _is_order_seller(session, order, current_user)
    is_buyer_cancel = order.buyer_id == current_user.id and body.status == OrderStatus.cancelled
    if not (is_admin or is_seller or is_buyer_cancel):
        raise forbidden("You are not allowed to change this order")

    order = crud.transition_order(
        session=session,
        order_id=order_id,
        target=body.status,
        actor_id=current_user.id,
        note=body.note,
    )
    items = list_order_items(session=session, order_id=order.id)
    return ApiEnvelope(data=to_order_data(order, items))


@router.post("/{order_id}/payment", response_model=ApiEnvelope)
def confirm_payment(
    session: SessionDep,
    current_user: CurrentUser,
    order_id: int,
    body: PaymentConfirmRequest,
) -> ApiEnvelope:
    """
    确认订单已付款

    由支付服务在网关回调验证通过后调用（管理员身份），重复调用不会改变已付款订单。

    请求路径: POST /api/v1/orders/{order_id}/payment
    """
    if current_user.role != UserRole.admin:
        raise forbidden("Only the payment service can confirm payments")
    order = crud.mark_order_paid(session=session, order_id=order_id, reference=body.reference)
    return ApiEnvelope(data=to_order_data(order))
