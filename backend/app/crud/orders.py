"""订单 CRUD 操作（下单、状态流转、付款、结算刷新）"""
from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import update
from sqlmodel import Session, func, select

from app.api.errors import (
    AppError,
    ConcurrencyConflict,
    InvalidAmount,
    InvalidTransition,
    OrderNotFound,
    product_not_found,
)
from app.core.config import settings
from app.enums import OrderStatus, PaymentStatus, PayoutStatus
from app.models import (
    Order,
    OrderItem,
    OrderStatusHistory,
    Product,
    Seller,
    User,
    as_utc,
    utc_now,
)
from app.services.ledger import apply_minimum_order_floor, compute_split
from app.services.notification_service import OrderNotifier, get_notifier
from app.services.order_workflow import (
    STAGE_TIMESTAMP_FIELDS,
    check_transition,
    is_first_transition_to,
)
from app.services.payout import payout_status

logger = logging.getLogger(__name__)


def payout_hold() -> timedelta:
    """配置的结算冷静期"""
    return timedelta(hours=settings.PAYOUT_HOLD_HOURS)


def generate_order_number(now: datetime | None = None) -> str:
    """生成订单号：ORD-YYYYMMDD-8 位大写十六进制"""
    now = now or utc_now()
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"


def create_order(
    *,
    session: Session,
    buyer_id: int,
    lines: Sequence[tuple[int, int]],
    delivery_name: str,
    delivery_phone: str,
    delivery_address: str,
    delivery_notes: str | None = None,
    fee_rate: Decimal | None = None,
    minimum_amount: int | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Order:
    """
    创建订单（结账完成后调用）

    明细保存商品名称和单价快照；合计低于最低订单金额时由第一条明细补齐；
    平台抽成比例在下单时固化到订单上。

    Args:
        session: 数据库会话
        buyer_id: 买家用户 ID
        lines: [(product_id, quantity), ...]，所有商品必须属于同一个店铺
        delivery_*: 收货信息快照
        fee_rate: 平台抽成比例，默认取配置 PLATFORM_FEE_PERCENT
        minimum_amount: 最低订单金额，默认取配置 MIN_ORDER_AMOUNT
        clock: 时钟，默认 utc_now

    Returns:
        新建的订单（pending / unpaid）

    Raises:
        InvalidAmount: 没有明细或数量不是正整数
        AppError: 商品不存在/已下架（404301）、商品来自多个店铺（400102）
    """
    if not lines:
        raise InvalidAmount("Order must contain at least one item")
    for _, quantity in lines:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            logger.warning("Rejected order line quantity: %r", quantity)
            raise InvalidAmount("Quantity must be a positive integer")

    product_ids = {product_id for product_id, _ in lines}
    products = {
        p.id: p
        for p in session.exec(select(Product).where(Product.id.in_(product_ids))).all()
    }
    for product_id in product_ids:
        product = products.get(product_id)
        if product is None or not product.is_active:
            raise product_not_found()

    seller_ids = {p.seller_id for p in products.values()}
    if len(seller_ids) != 1:
        raise AppError(
            code=400102,
            message="All items in an order must come from the same shop",
            status_code=400,
        )

    subtotals = apply_minimum_order_floor(
        [products[product_id].price * quantity for product_id, quantity in lines],
        settings.MIN_ORDER_AMOUNT if minimum_amount is None else minimum_amount,
    )
    total_amount = sum(subtotals)
    rate = settings.PLATFORM_FEE_PERCENT if fee_rate is None else fee_rate
    split = compute_split(total_amount, rate)

    now = clock()
    order = Order(
        order_number=generate_order_number(now),
        buyer_id=buyer_id,
        seller_id=seller_ids.pop(),
        total_amount=total_amount,
        platform_fee_rate=Decimal(str(rate)),
        platform_fee=split.platform_fee,
        seller_amount=split.seller_amount,
        currency=settings.CURRENCY,
        status=OrderStatus.pending,
        payment_status=PaymentStatus.unpaid,
        payout_status=PayoutStatus.pending,
        delivery_name=delivery_name,
        delivery_phone=delivery_phone,
        delivery_address=delivery_address,
        delivery_notes=delivery_notes,
        created_at=now,
        updated_at=now,
    )
    session.add(order)
    for (product_id, quantity), subtotal in zip(lines, subtotals):
        product = products[product_id]
        session.add(
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                product_price=product.price,
                quantity=quantity,
                subtotal=subtotal,
            )
        )
    session.commit()
    session.refresh(order)
    logger.info(
        "Order %s created: buyer=%s seller=%s total=%s fee=%s",
        order.order_number,
        buyer_id,
        order.seller_id,
        total_amount,
        split.platform_fee,
    )
    return order


def get_order(*, session: Session, order_id: int) -> Order:
    """查询订单，不存在抛 OrderNotFound"""
    order = session.get(Order, order_id)
    if not order:
        raise OrderNotFound(order_id)
    return order


def get_order_for_update(*, session: Session, order_id: int) -> Order:
    """加行锁读取订单（PostgreSQL SELECT ... FOR UPDATE），不存在抛 OrderNotFound"""
    stmt = (
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = session.exec(stmt).first()
    if not order:
        raise OrderNotFound(order_id)
    return order


def list_order_items(*, session: Session, order_id: int) -> list[OrderItem]:
    stmt = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
    return list(session.exec(stmt).all())


def list_order_history(*, session: Session, order_id: int) -> list[OrderStatusHistory]:
    """订单状态历史，按时间正序（同一时刻按 ID）"""
    stmt = (
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
    )
    return list(session.exec(stmt).all())


def _not_before_previous_stages(order: Order, now: datetime) -> datetime:
    """时钟回拨时沿用最近的阶段时间，保证各阶段时间不倒退"""
    stamps = [as_utc(order.created_at)] + [
        as_utc(getattr(order, field)) for field in STAGE_TIMESTAMP_FIELDS.values()
    ]
    latest = max(stamp for stamp in stamps if stamp is not None)
    now = as_utc(now)
    if now < latest:
        logger.warning(
            "Clock behind order %s stage time (%s < %s), keeping the later time",
            order.order_number,
            now.isoformat(),
            latest.isoformat(),
        )
        return latest
    return now


def transition_order(
    *,
    session: Session,
    order_id: int,
    target: OrderStatus | str,
    actor_id: int | None = None,
    note: str | None = None,
    clock: Callable[[], datetime] = utc_now,
    notifier: OrderNotifier | None = None,
) -> Order:
    """
    订单状态流转

    流程：
    1. 加锁读取订单
    2. 校验流转是否合法，不合法直接抛错，不写任何数据
    3. 更新状态、对应阶段时间、版本号；送达时同时计算结算状态
    4. 按版本号条件更新（WHERE version = 读到的版本），没有更新到行说明被并发修改
    5. 追加状态历史，提交
    6. 提交后发通知（失败只记日志）

    Args:
        session: 数据库会话
        order_id: 订单 ID
        target: 目标状态
        actor_id: 操作人用户 ID（写入历史）
        note: 备注（写入历史）
        clock: 时钟，默认 utc_now
        notifier: 通知服务，默认全局邮件通知

    Returns:
        更新后的订单

    Raises:
        OrderNotFound: 订单不存在
        InvalidTransition: 流转不合法（包括终态、重复提交同一状态）
        ConcurrencyConflict: 订单在读取后被其他请求修改
    """
    target_status = OrderStatus(target)
    order = get_order_for_update(session=session, order_id=order_id)
    current_status = OrderStatus(order.status)
    try:
        check_transition(current_status, target_status)
    except InvalidTransition:
        session.rollback()
        raise

    previous_statuses = [
        entry.new_status for entry in list_order_history(session=session, order_id=order_id)
    ]
    read_version = order.version
    order_number = order.order_number
    now = _not_before_previous_stages(order, clock())

    values: dict[str, object] = {
        "status": target_status.value,
        "updated_at": now,
        "version": read_version + 1,
    }
    stage_field = STAGE_TIMESTAMP_FIELDS.get(target_status)
    if stage_field:
        values[stage_field] = now
    if target_status == OrderStatus.delivered:
        decision = payout_status(target_status, now, now, payout_hold())
        values["payout_status"] = decision.status.value
        values["payout_date"] = decision.payout_date

    result = session.execute(
        update(Order)
        .where(Order.id == order_id, Order.version == read_version)
        .values(**values)
    )
    if result.rowcount == 0:
        session.rollback()
        logger.warning(
            "Order %s version %s changed concurrently, transition to %s aborted",
            order_number,
            read_version,
            target_status.value,
        )
        raise ConcurrencyConflict(order_id)

    session.add(
        OrderStatusHistory(
            order_id=order_id,
            old_status=current_status.value,
            new_status=target_status.value,
            changed_by=actor_id,
            note=note,
            created_at=now,
        )
    )
    session.commit()
    session.refresh(order)
    logger.info(
        "Order %s: %s -> %s (actor=%s)",
        order.order_number,
        current_status.value,
        target_status.value,
        actor_id,
    )

    _notify_transition(
        session=session,
        order=order,
        target=target_status,
        previous_statuses=previous_statuses,
        notifier=notifier or get_notifier(),
    )
    return order


def _notify_transition(
    *,
    session: Session,
    order: Order,
    target: OrderStatus,
    previous_statuses: list[str],
    notifier: OrderNotifier,
) -> None:
    """流转提交后的通知，失败只记录日志"""
    if is_first_transition_to(previous_statuses, target):
        try:
            buyer = session.get(User, order.buyer_id)
            if buyer:
                notifier.notify_buyer_status_change(order=order, buyer=buyer, status=target)
        except Exception:
            logger.exception(
                "Failed to notify buyer of order %s status %s", order.order_number, target.value
            )

    if target == OrderStatus.processing and is_first_transition_to(
        previous_statuses, OrderStatus.processing
    ):
        try:
            seller = session.get(Seller, order.seller_id)
            seller_user = session.get(User, seller.user_id) if seller else None
            if seller_user:
                notifier.notify_seller_new_order(
                    order=order,
                    seller_user=seller_user,
                    items=list_order_items(session=session, order_id=order.id),
                )
        except Exception:
            logger.exception("Failed to notify seller of new order %s", order.order_number)


def mark_order_paid(*, session: Session, order_id: int, reference: str | None = None) -> Order:
    """
    标记订单已付款（支付网关回调）

    只会从 unpaid 变为 paid 一次；已付款的订单再次调用直接返回，不覆盖流水号。
    """
    order = get_order_for_update(session=session, order_id=order_id)
    if order.payment_status == PaymentStatus.paid:
        session.rollback()
        logger.info("Order %s already paid, ignoring reference %s", order.order_number, reference)
        return order

    order.payment_status = PaymentStatus.paid
    order.payment_reference = reference
    order.updated_at = utc_now()
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info("Order %s marked paid (reference=%s)", order.order_number, reference)
    return order


def refresh_payouts(*, session: Session, now: datetime | None = None) -> int:
    """
    重新计算已送达订单的结算状态并保存

    只处理结算状态还不是 completed 的已送达订单。

    Returns:
        状态有变化的订单数
    """
    now = now or utc_now()
    hold = payout_hold()
    stmt = select(Order).where(
        Order.status == OrderStatus.delivered,
        Order.payout_status != PayoutStatus.completed,
    )
    changed = 0
    for order in session.exec(stmt).all():
        decision = payout_status(order.status, order.delivered_at, now, hold)
        unchanged = (
            order.payout_status == decision.status
            and as_utc(order.payout_date) == decision.payout_date
        )
        if unchanged:
            continue
        order.payout_status = decision.status
        order.payout_date = decision.payout_date
        session.add(order)
        changed += 1
    session.commit()
    logger.info("Payout refresh at %s: %s orders updated", now.isoformat(), changed)
    return changed


def list_buyer_orders(
    *, session: Session, buyer_id: int, page: int = 1, page_size: int = 20
) -> tuple[list[Order], int]:
    """买家订单列表（分页，按创建时间倒序）"""
    count = session.exec(
        select(func.count()).select_from(Order).where(Order.buyer_id == buyer_id)
    ).one()
    stmt = (
        select(Order)
        .where(Order.buyer_id == buyer_id)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(session.exec(stmt).all()), count


def list_seller_orders(
    *,
    session: Session,
    seller_id: int,
    status: OrderStatus | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """店铺订单列表（分页，可按状态筛选）"""
    conditions = [Order.seller_id == seller_id]
    if status is not None:
        conditions.append(Order.status == status.value)
    count = session.exec(select(func.count()).select_from(Order).where(*conditions)).one()
    stmt = (
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(session.exec(stmt).all()), count
