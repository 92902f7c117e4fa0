"""
店铺销售分析

只统计已付款订单，收入按卖家应得（seller_amount）计算，已取消的订单不计入收入。
按天、按月的分组在 Python 里做，避免依赖各数据库不同的日期函数。
"""
from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Any

from sqlmodel import Session, func, select

from app.enums import OrderStatus, PaymentStatus
from app.models import Order, OrderItem, Product, User, as_utc, utc_now
from app.services.order_workflow import legacy_status

LOW_STOCK_THRESHOLD = 5
REVENUE_DAYS = 30
TOP_LIMIT = 10

# 已付款后又取消的订单不计入收入
_NOT_CANCELLED = Order.status != OrderStatus.cancelled.value

def _growth(current: int, previous: int) -> float:
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 2)


def _overview(*, session: Session, seller_id: int) -> dict[str, Any]:
    paid = (Order.seller_id == seller_id, Order.payment_status == PaymentStatus.paid.value)
    total_orders = session.exec(select(func.count(Order.id)).where(*paid)).one()
    total_revenue, average = session.exec(
        select(
            func.coalesce(func.sum(Order.seller_amount), 0),
            func.coalesce(func.avg(Order.total_amount), 0),
        ).where(*paid, _NOT_CANCELLED)
    ).one()

    by_status: Counter[str] = Counter()
    for status, count in session.exec(
        select(Order.status, func.count(Order.id)).where(*paid).group_by(Order.status)
    ).all():
        by_status[legacy_status(status)] += count

    return {
        "total_orders": total_orders,
        "total_revenue": int(total_revenue),
        "average_order_value": int(round(float(average))),
        "pending_orders": by_status[OrderStatus.pending.value],
        "processing_orders": by_status[OrderStatus.processing.value],
        "shipped_orders": by_status["shipped"],
        "delivered_orders": by_status[OrderStatus.delivered.value],
        "cancelled_orders": by_status[OrderStatus.cancelled.value],
    }


def _paid_orders_since(
    *, session: Session, seller_id: int, since: datetime
) -> list[tuple[datetime, int]]:
    stmt = select(Order.created_at, Order.seller_amount).where(
        Order.seller_id == seller_id,
        Order.payment_status == PaymentStatus.paid.value,
        _NOT_CANCELLED,
        Order.created_at >= since,
    )
    return [(as_utc(created_at), amount) for created_at, amount in session.exec(stmt).all()]


def _revenue_by_day(rows: list[tuple[datetime, int]], since: datetime) -> list[dict[str, Any]]:
    buckets: dict[date, list[int]] = defaultdict(lambda: [0, 0])
    for created_at, amount in rows:
        if created_at < since:
            continue
        bucket = buckets[created_at.date()]
        bucket[0] += 1
        bucket[1] += amount
    return [
        {"day": day, "orders_count": count, "revenue": revenue}
        for day, (count, revenue) in sorted(buckets.items())
    ]


def _month_comparison(rows: list[tuple[datetime, int]], now: datetime) -> dict[str, Any]:
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_month_start = (month_start - timedelta(days=1)).replace(day=1)
    current_orders = current_revenue = last_orders = last_revenue = 0
    for created_at, amount in rows:
        if created_at >= month_start:
            current_orders += 1
            current_revenue += amount
        elif created_at >= last_month_start:
            last_orders += 1
            last_revenue += amount
    return {
        "current_month_orders": current_orders,
        "current_month_revenue": current_revenue,
        "last_month_orders": last_orders,
        "last_month_revenue": last_revenue,
        "order_growth_percentage": _growth(current_orders, last_orders),
        "revenue_growth_percentage": _growth(current_revenue, last_revenue),
    }


def _top_products(*, session: Session, seller_id: int) -> list[dict[str, Any]]:
    paid_items = (
        select(OrderItem.product_id, OrderItem.quantity, OrderItem.subtotal)
        .join(Order, OrderItem.order_id == Order.id)
        .where(
            Order.seller_id == seller_id,
            Order.payment_status == PaymentStatus.paid.value,
            _NOT_CANCELLED,
        )
        .subquery()
    )
    units = func.coalesce(func.sum(paid_items.c.quantity), 0)
    revenue = func.coalesce(func.sum(paid_items.c.subtotal), 0)
    stmt = (
        select(Product.id, Product.name, Product.price, Product.quantity_available, units, revenue)
        .outerjoin(paid_items, paid_items.c.product_id == Product.id)
        .where(Product.seller_id == seller_id, Product.is_active.is_(True))
        .group_by(Product.id, Product.name, Product.price, Product.quantity_available)
        .order_by(units.desc(), revenue.desc())
        .limit(TOP_LIMIT)
    )
    return [
        {
            "id": product_id,
            "name": name,
            "price": price,
            "quantity_available": quantity_available,
            "units_sold": int(units_sold),
            "revenue": int(product_revenue),
        }
        for product_id, name, price, quantity_available, units_sold, product_revenue in session.exec(
            stmt
        ).all()
    ]


def _low_stock(*, session: Session, seller_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(Product)
        .where(
            Product.seller_id == seller_id,
            Product.is_active.is_(True),
            Product.quantity_available < LOW_STOCK_THRESHOLD,
        )
        .order_by(Product.quantity_available.asc())
        .limit(TOP_LIMIT)
    )
    return [
        {
            "id": p.id,
            "name": p.name,
            "price": p.price,
            "quantity_available": p.quantity_available,
        }
        for p in session.exec(stmt).all()
    ]


def _recent_orders(*, session: Session, seller_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(Order, User)
        .join(User, Order.buyer_id == User.id)
        .where(Order.seller_id == seller_id)
        .order_by(Order.created_at.desc())
        .limit(TOP_LIMIT)
    )
    return [
        {
            "id": order.id,
            "order_number": order.order_number,
            "total_amount": order.total_amount,
            "seller_amount": order.seller_amount,
            "status": order.status,
            "created_at": as_utc(order.created_at),
            "buyer_name": buyer.full_name,
        }
        for order, buyer in session.exec(stmt).all()
    ]


def get_seller_analytics(
    *, session: Session, seller_id: int, now: datetime | None = None
) -> dict[str, Any]:
    """
    店铺分析数据

    Returns:
        {
            "overview": 订单数、收入、客单价、各状态订单数（ready_for_pickup/in_transit 合并为 shipped），
            "revenue_by_day": 最近 30 天每天的订单数和收入,
            "top_products": 销量前 10 的商品,
            "low_stock_products": 库存低于 5 的商品,
            "recent_orders": 最近 10 个订单,
            "month_comparison": 本月与上月对比及增长率,
        }
    """
    now = as_utc(now or utc_now())
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    revenue_since = day_start - timedelta(days=REVENUE_DAYS)
    last_month_start = (now.replace(day=1) - timedelta(days=1)).replace(
        day=1, hour=0, minute=0, second=0, microsecond=0
    )
    rows = _paid_orders_since(
        session=session, seller_id=seller_id, since=min(revenue_since, last_month_start)
    )
    month_comparison = _month_comparison(rows, now)
    overview = _overview(session=session, seller_id=seller_id)
    overview["order_growth_percentage"] = month_comparison["order_growth_percentage"]
    overview["revenue_growth_percentage"] = month_comparison["revenue_growth_percentage"]
    return {
        "overview": overview,
        "revenue_by_day": _revenue_by_day(rows, revenue_since),
        "top_products": _top_products(session=session, seller_id=seller_id),
        "low_stock_products": _low_stock(session=session, seller_id=seller_id),
        "recent_orders": _recent_orders(session=session, seller_id=seller_id),
        "month_comparison": month_comparison,
    }
