"""
订单状态流转规则

只描述"能不能流转、流转后要改哪些字段"，不访问数据库。
真正的落库（加锁、版本号校验、写历史、发通知）在 app.crud.orders.transition_order。

流水线：
    pending -> processing -> ready_for_pickup -> in_transit -> delivered
    pending -> cancelled
delivered 和 cancelled 是终态，不能再流转。
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from app.api.errors import InvalidTransition
from app.enums import OrderStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.processing, OrderStatus.cancelled}),
    OrderStatus.processing: frozenset({OrderStatus.ready_for_pickup}),
    OrderStatus.ready_for_pickup: frozenset({OrderStatus.in_transit}),
    OrderStatus.in_transit: frozenset({OrderStatus.delivered}),
    OrderStatus.delivered: frozenset(),
    OrderStatus.cancelled: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# 进入某状态时要写入的时间字段；processing 没有单独的时间字段
STAGE_TIMESTAMP_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.ready_for_pickup: "ready_for_pickup_at",
    OrderStatus.in_transit: "shipped_at",
    OrderStatus.delivered: "delivered_at",
    OrderStatus.cancelled: "cancelled_at",
}

# 旧版前端只有 pending/processing/shipped/delivered/cancelled 五个状态
_LEGACY_NAMES: dict[OrderStatus, str] = {
    OrderStatus.ready_for_pickup: "shipped",
    OrderStatus.in_transit: "shipped",
}


def is_allowed(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def check_transition(current: OrderStatus | str, target: OrderStatus | str) -> OrderStatus:
    """
    校验状态流转

    Args:
        current: 当前状态
        target: 目标状态

    Returns:
        目标状态（OrderStatus）

    Raises:
        ValueError: 状态字符串不是已知状态
        InvalidTransition: 目标状态不在允许集合里（包括从终态流转、流转到自身）
    """
    current_status = OrderStatus(current)
    target_status = OrderStatus(target)
    if target_status not in ALLOWED_TRANSITIONS[current_status]:
        logger.info(
            "Rejected order transition %s -> %s", current_status.value, target_status.value
        )
        raise InvalidTransition(current_status.value, target_status.value)
    return target_status


def is_terminal(status: OrderStatus | str) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def is_first_transition_to(
    previous_statuses: Iterable[OrderStatus | str | None], status: OrderStatus | str
) -> bool:
    """
    订单之前是否从未进入过 status

    Args:
        previous_statuses: 本次流转之前所有历史记录的 new_status
        status: 要判断的状态

    Returns:
        历史中没有出现过该状态时返回 True
    """
    target = OrderStatus(status)
    return all(
        previous is None or OrderStatus(previous) != target for previous in previous_statuses
    )


def legacy_status(status: OrderStatus | str) -> str:
    """把状态映射为旧版展示用的名称（ready_for_pickup/in_transit 都显示为 shipped）"""
    current = OrderStatus(status)
    return _LEGACY_NAMES.get(current, current.value)
