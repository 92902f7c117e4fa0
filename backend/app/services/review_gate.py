"""
评价资格校验

买家只能评价自己买过、已付款、已送达的商品，同一订单里的同一商品只能评价一次。
"""
from __future__ import annotations

from dataclasses import dataclass, field

from app.enums import OrderStatus, PaymentStatus, ReviewIneligibleReason


@dataclass(frozen=True)
class PurchasedOrder:
    """评价校验需要的订单信息（订单 + 明细里的商品 ID）"""
    buyer_id: int
    status: str
    payment_status: str
    product_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ReviewEligibility:
    eligible: bool
    reason: ReviewIneligibleReason | None = None


ELIGIBLE = ReviewEligibility(eligible=True)


def can_review(
    buyer_id: int,
    product_id: int,
    order: PurchasedOrder | None,
    existing_review: object | None,
) -> ReviewEligibility:
    """
    判断买家能否评价某订单中的某商品

    按顺序检查，返回第一个不满足的原因：
    1. not_purchased: 订单不存在、不是该买家的、订单里没有这个商品，或者未付款
    2. not_delivered: 订单还没送达
    3. already_reviewed: 已经评价过（同一商品 + 买家 + 订单）

    Args:
        buyer_id: 买家用户 ID
        product_id: 商品 ID
        order: 订单（可能为 None）
        existing_review: 已有的评价（没有则为 None）

    Returns:
        ReviewEligibility: eligible 为 True 时 reason 一定为 None
    """
    if (
        order is None
        or order.buyer_id != buyer_id
        or product_id not in order.product_ids
        or order.payment_status != PaymentStatus.paid
    ):
        return ReviewEligibility(eligible=False, reason=ReviewIneligibleReason.not_purchased)
    if order.status != OrderStatus.delivered:
        return ReviewEligibility(eligible=False, reason=ReviewIneligibleReason.not_delivered)
    if existing_review is not None:
        return ReviewEligibility(eligible=False, reason=ReviewIneligibleReason.already_reviewed)
    return ELIGIBLE
