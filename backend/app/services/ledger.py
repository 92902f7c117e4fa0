"""
订单金额计算

纯函数，没有副作用。所有金额都是最小货币单位（kobo）的整数：
- compute_split: 拆分平台抽成和卖家应得
- apply_minimum_order_floor: 订单金额低于平台最低值时补齐到最低值
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.api.errors import InvalidAmount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Split:
    """平台抽成和卖家应得，platform_fee + seller_amount == 订单总额"""
    platform_fee: int
    seller_amount: int


def _require_positive_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        logger.warning("Rejected non-positive amount: %r", amount)
        raise InvalidAmount()


def compute_split(total_amount: int, fee_rate_percent: Decimal | int | str = 5) -> Split:
    """
    计算平台抽成和卖家应得

    抽成按四舍五入（ROUND_HALF_UP）取整到 kobo，卖家应得用总额减去抽成，
    不单独取整，所以两者相加严格等于总额，舍入的零头归卖家。

    Args:
        total_amount: 订单总额（kobo，正整数）
        fee_rate_percent: 平台抽成比例（0-100，默认 5）

    Returns:
        Split: 平台抽成和卖家应得

    Raises:
        InvalidAmount: 总额不是正整数，或费率不在 [0, 100]

    示例：
        >>> compute_split(10000, 5)
        Split(platform_fee=500, seller_amount=9500)
    """
    _require_positive_amount(total_amount)
    rate = Decimal(str(fee_rate_percent))
    if rate.is_nan() or rate < 0 or rate > 100:
        logger.warning("Rejected platform fee rate: %r", fee_rate_percent)
        raise InvalidAmount("Fee rate must be between 0 and 100")

    fee = (Decimal(total_amount) * rate / 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    platform_fee = int(fee)
    return Split(platform_fee=platform_fee, seller_amount=total_amount - platform_fee)


def apply_minimum_order_floor(subtotals: list[int], minimum: int) -> list[int]:
    """
    最低订单金额补齐

    明细小计之和低于 minimum 时，把差额加到第一条明细的小计上，
    这样"明细小计之和 == 订单总额"仍然成立。

    Args:
        subtotals: 各明细小计（顺序与明细一致）
        minimum: 平台最低订单金额（kobo）

    Returns:
        调整后的小计列表（新列表，不修改入参）

    Raises:
        InvalidAmount: 没有明细或某条小计不是正整数
    """
    if not subtotals:
        raise InvalidAmount("Order must contain at least one item")
    for subtotal in subtotals:
        _require_positive_amount(subtotal)

    adjusted = list(subtotals)
    shortfall = minimum - sum(adjusted)
    if shortfall > 0:
        adjusted[0] += shortfall
    return adjusted
