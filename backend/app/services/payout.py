"""
卖家结算策略

送达后资金先冻结一个冷静期（默认 24 小时，给买家留出申诉时间），
期满后才可以打款给卖家。

payout_status 是无状态的纯函数：每次读取订单结算状态或定时扫描时
重新计算，不依赖内部定时器。当前时间由调用方传入。
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.enums import OrderStatus, PayoutStatus
from app.models.base import as_utc

DEFAULT_PAYOUT_HOLD = timedelta(hours=24)


@dataclass(frozen=True)
class PayoutDecision:
    status: PayoutStatus
    payout_date: datetime | None = None


def payout_status(
    order_status: OrderStatus | str,
    delivered_at: datetime | None,
    now: datetime,
    hold: timedelta = DEFAULT_PAYOUT_HOLD,
) -> PayoutDecision:
    """
    计算订单的结算状态

    规则：
    1. 订单未送达，或没有送达时间 -> pending
       （即使有 delivered_at 但状态不是 delivered，也按 pending 处理）
    2. 送达后不足 hold -> scheduled，payout_date = delivered_at + hold
    3. 否则 -> completed

    Args:
        order_status: 订单状态
        delivered_at: 送达时间
        now: 当前时间（由调用方注入）
        hold: 冷静期长度

    Returns:
        PayoutDecision: 结算状态和可结算时间
    """
    if order_status != OrderStatus.delivered or delivered_at is None:
        return PayoutDecision(status=PayoutStatus.pending)

    delivered = as_utc(delivered_at)
    payout_date = delivered + hold
    if as_utc(now) - delivered < hold:
        return PayoutDecision(status=PayoutStatus.scheduled, payout_date=payout_date)
    return PayoutDecision(status=PayoutStatus.completed, payout_date=payout_date)
