"""评价 CRUD 操作"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from app.api.errors import ReviewNotEligible, review_not_found
from app.enums import OrderStatus, PaymentStatus, ReviewIneligibleReason
from app.models import Order, OrderItem, Product, Review, ReviewHelpful, utc_now
from app.services.review_gate import PurchasedOrder, ReviewEligibility, can_review

logger = logging.getLogger(__name__)

REVIEW_SORTS = {
    "recent": (Review.created_at.desc(),),
    "helpful": (Review.helpful_count.desc(), Review.created_at.desc()),
    "rating_high": (Review.rating.desc(), Review.created_at.desc()),
    "rating_low": (Review.rating.asc(), Review.created_at.desc()),
}


def _find_review(
    *, session: Session, buyer_id: int, product_id: int, order_id: int
) -> Review | None:
    stmt = select(Review).where(
        Review.product_id == product_id,
        Review.buyer_id == buyer_id,
        Review.order_id == order_id,
    )
    return session.exec(stmt).first()


def check_review_eligibility(
    *, session: Session, buyer_id: int, product_id: int, order_id: int
) -> ReviewEligibility:
    """读取订单、明细和已有评价，交给 can_review 判断"""
    order = session.get(Order, order_id)
    purchased = None
    if order is not None:
        product_ids = session.exec(
            select(OrderItem.product_id).where(OrderItem.order_id == order_id)
        ).all()
        purchased = PurchasedOrder(
            buyer_id=order.buyer_id,
            status=order.status,
            payment_status=order.payment_status,
            product_ids=frozenset(product_ids),
        )
    existing = _find_review(
        session=session, buyer_id=buyer_id, product_id=product_id, order_id=order_id
    )
    return can_review(buyer_id, product_id, purchased, existing)


def create_review(
    *,
    session: Session,
    buyer_id: int,
    product_id: int,
    order_id: int,
    rating: int,
    title: str | None = None,
    comment: str | None = None,
) -> Review:
    """
    创建评价

    先过资格校验；两个请求同时提交时由唯一约束兜底，冲突按"已评价"处理。

    Raises:
        ReviewNotEligible: 不满足评价条件
    """
    eligibility = check_review_eligibility(
        session=session, buyer_id=buyer_id, product_id=product_id, order_id=order_id
    )
    if not eligibility.eligible:
        raise ReviewNotEligible(eligibility.reason.value)

    review = Review(
        product_id=product_id,
        buyer_id=buyer_id,
        order_id=order_id,
        rating=rating,
        title=title,
        comment=comment,
    )
    session.add(review)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ReviewNotEligible(ReviewIneligibleReason.already_reviewed.value)
    session.refresh(review)
    logger.info("Review %s created for product %s order %s", review.id, product_id, order_id)
    return review


def get_own_review(*, session: Session, review_id: int, buyer_id: int) -> Review:
    """查询买家自己的评价，不存在或不是自己的统一返回 404"""
    review = session.get(Review, review_id)
    if not review or review.buyer_id != buyer_id:
        raise review_not_found()
    return review


def update_review(
    *, session: Session, review_id: int, buyer_id: int, updates: dict[str, Any]
) -> Review:
    """修改评价（只允许 rating/title/comment）"""
    review = get_own_review(session=session, review_id=review_id, buyer_id=buyer_id)
    for field in ("rating", "title", "comment"):
        if field in updates:
            setattr(review, field, updates[field])
    review.updated_at = utc_now()
    session.add(review)
    session.commit()
    session.refresh(review)
    return review


def delete_review(*, session: Session, review_id: int, buyer_id: int) -> None:
    review = get_own_review(session=session, review_id=review_id, buyer_id=buyer_id)
    for mark in session.exec(select(ReviewHelpful).where(ReviewHelpful.review_id == review_id)):
        session.delete(mark)
    session.delete(review)
    session.commit()
    logger.info("Review %s deleted by buyer %s", review_id, buyer_id)


def toggle_helpful(*, session: Session, review_id: int, user_id: int) -> tuple[bool, int]:
    """
    标记/取消"有用"

    Returns:
        (当前是否已标记, 最新的 helpful_count)
    """
    stmt = select(Review).where(Review.id == review_id).with_for_update()
    review = session.exec(stmt).first()
    if not review:
        raise review_not_found()

    mark = session.exec(
        select(ReviewHelpful).where(
            ReviewHelpful.review_id == review_id, ReviewHelpful.user_id == user_id
        )
    ).first()
    if mark:
        session.delete(mark)
        review.helpful_count = max(review.helpful_count - 1, 0)
        marked = False
    else:
        session.add(ReviewHelpful(review_id=review_id, user_id=user_id))
        review.helpful_count += 1
        marked = True
    session.add(review)
    session.commit()
    session.refresh(review)
    return marked, review.helpful_count


def add_seller_response(
    *, session: Session, review_id: int, seller_id: int, response: str
) -> Review:
    """
    店铺回复评价

    只能回复自己商品的评价；可以重复回复，新回复覆盖旧回复。
    """
    review = session.get(Review, review_id)
    product = session.get(Product, review.product_id) if review else None
    if not review or not product or product.seller_id != seller_id:
        raise review_not_found()

    now = utc_now()
    review.seller_response = response
    review.seller_response_at = now
    review.updated_at = now
    session.add(review)
    session.commit()
    session.refresh(review)
    return review


def list_product_reviews(
    *,
    session: Session,
    product_id: int,
    sort: str = "recent",
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Review], int]:
    """商品的评价列表（分页）"""
    count = session.exec(
        select(func.count()).select_from(Review).where(Review.product_id == product_id)
    ).one()
    stmt = (
        select(Review)
        .where(Review.product_id == product_id)
        .order_by(*REVIEW_SORTS.get(sort, REVIEW_SORTS["recent"]))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(session.exec(stmt).all()), count


def helpful_review_ids(*, session: Session, user_id: int, review_ids: list[int]) -> set[int]:
    """当前用户在这些评价里标记过"有用"的评价 ID"""
    if not review_ids:
        return set()
    stmt = select(ReviewHelpful.review_id).where(
        ReviewHelpful.user_id == user_id, ReviewHelpful.review_id.in_(review_ids)
    )
    return set(session.exec(stmt).all())


def list_buyer_reviews(
    *, session: Session, buyer_id: int, page: int = 1, page_size: int = 20
) -> tuple[list[Review], int]:
    count = session.exec(
        select(func.count()).select_from(Review).where(Review.buyer_id == buyer_id)
    ).one()
    stmt = (
        select(Review)
        .where(Review.buyer_id == buyer_id)
        .order_by(Review.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(session.exec(stmt).all()), count


def list_reviewable_products(*, session: Session, buyer_id: int) -> list[tuple[OrderItem, Order]]:
    """
    买家可以评价的商品

    已付款、已送达、还没评价过的订单明细，按送达时间倒序。
    """
    stmt = (
        select(OrderItem, Order)
        .join(Order, OrderItem.order_id == Order.id)
        .outerjoin(
            Review,
            and_(
                Review.product_id == OrderItem.product_id,
                Review.order_id == Order.id,
                Review.buyer_id == buyer_id,
            ),
        )
        .where(
            Order.buyer_id == buyer_id,
            Order.payment_status == PaymentStatus.paid.value,
            Order.status == OrderStatus.delivered.value,
            Review.id.is_(None),
        )
        .order_by(Order.delivered_at.desc(), OrderItem.id)
    )
    return [(item, order) for item, order in session.exec(stmt).all()]
