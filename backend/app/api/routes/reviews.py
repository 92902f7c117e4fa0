"""
评价路由模块

- 买家：创建/修改/删除评价、查询能否评价、可评价的商品、我的评价
- 所有登录用户：查看商品评价、标记"有用"
- 店铺：回复自己商品的评价
"""
from __future__ import annotations

from fastapi import APIRouter, Query
from sqlmodel import Session

from app import crud
from app.api.deps import CurrentSeller, CurrentUser, SessionDep
from app.api.schemas import (
    ApiEnvelope,
    HelpfulData,
    Message,
    ReviewableProductData,
    ReviewCreateRequest,
    ReviewData,
    ReviewEligibilityData,
    ReviewsData,
    ReviewUpdateRequest,
    SellerResponseRequest,
)
from app.crud import reviews as review_crud
from app.models import Review, as_utc

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _to_review_data(review: Review, marked: bool = False) -> ReviewData:
    return ReviewData(
        id=review.id,
        product_id=review.product_id,
        buyer_id=review.buyer_id,
        order_id=review.order_id,
        rating=review.rating,
        title=review.title,
        comment=review.comment,
        seller_response=review.seller_response,
        seller_response_at=as_utc(review.seller_response_at),
        helpful_count=review.helpful_count,
        marked_helpful_by_user=marked,
        created_at=as_utc(review.created_at),
        updated_at=as_utc(review.updated_at),
    )


def _to_reviews_data(
    session: Session, user_id: int, rows: list[Review], count: int
) -> ReviewsData:
    marked = review_crud.helpful_review_ids(
        session=session, user_id=user_id, review_ids=[r.id for r in rows]
    )
    return ReviewsData(data=[_to_review_data(r, r.id in marked) for r in rows], count=count)


@router.post("", response_model=ApiEnvelope)
def create_review(session: SessionDep, current_user: CurrentUser, body: ReviewCreateRequest) -> ApiEnvelope:
    """
    创建评价

    请求路径: POST /api/v1/reviews

    Raises:
        AppError: 不满足评价条件（403201，data.reason 为具体原因）
    """
    review = crud.create_review(
        session=session,
        buyer_id=current_user.id,
        product_id=body.product_id,
        order_id=body.order_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
    )
    return ApiEnvelope(data=_to_review_data(review))


@router.get("/eligibility", response_model=ApiEnvelope)
def get_eligibility(
    session: SessionDep,
    current_user: CurrentUser,
    product_id: int = Query(),
    order_id: int = Query(),
) -> ApiEnvelope:
    """
    查询能否评价

    请求路径: GET /api/v1/reviews/eligibility?product_id=...&order_id=...
    """
    result = crud.check_review_eligibility(
        session=session, buyer_id=current_user.id, product_id=product_id, order_id=order_id
    )
    return ApiEnvelope(data=ReviewEligibilityData(eligible=result.eligible, reason=result.reason))


@router.get("/reviewable", response_model=ApiEnvelope)
def list_reviewable(session: SessionDep, current_user: CurrentUser) -> ApiEnvelope:
    """
    可以评价的商品（已付款、已送达、还没评价）

    请求路径: GET /api/v1/reviews/reviewable
    """
    rows = review_crud.list_reviewable_products(session=session, buyer_id=current_user.id)
    return ApiEnvelope(
        data=[
            ReviewableProductData(
                product_id=item.product_id,
                product_name=item.product_name,
                order_id=order.id,
                order_number=order.order_number,
                delivered_at=as_utc(order.delivered_at),
            )
            for item, order in rows
        ]
    )


@router.get("/mine", response_model=ApiEnvelope)
def list_my_reviews(
    session: SessionDep,
    current_user: CurrentUser,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    """请求路径: GET /api/v1/reviews/mine"""
    rows, count = review_crud.list_buyer_reviews(
        session=session, buyer_id=current_user.id, page=page, page_size=page_size
    )
    return ApiEnvelope(data=_to_reviews_data(session, current_user.id, rows, count))


@router.get("/product/{product_id}", response_model=ApiEnvelope)
def list_product_reviews(
    session: SessionDep,
    current_user: CurrentUser,
    product_id: int,
    sort: str = Query(default="recent", pattern="^(recent|helpful|rating_high|rating_low)$"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    """
    商品评价列表

    请求路径: GET /api/v1/reviews/product/{product_id}?sort=helpful
    """
    rows, count = review_crud.list_product_reviews(
        session=session, product_id=product_id, sort=sort, page=page, page_size=page_size
    )
    return ApiEnvelope(data=_to_reviews_data(session, current_user.id, rows, count))


@router.patch("/{review_id}", response_model=ApiEnvelope)
def update_review(
    session: SessionDep, current_user: CurrentUser, review_id: int, body: ReviewUpdateRequest
) -> ApiEnvelope:
    """请求路径: PATCH /api/v1/reviews/{review_id}（只能修改自己的评价）"""
    review = review_crud.update_review(
        session=session,
        review_id=review_id,
        buyer_id=current_user.id,
        updates=body.model_dump(exclude_unset=True),
    )
    return ApiEnvelope(data=_to_review_data(review))


@router.delete("/{review_id}", response_model=ApiEnvelope)
def delete_review(session: SessionDep, current_user: CurrentUser, review_id: int) -> ApiEnvelope:
    """请求路径: DELETE /api/v1/reviews/{review_id}（只能删除自己的评价）"""
    review_crud.delete_review(session=session, review_id=review_id, buyer_id=current_user.id)
    return ApiEnvelope(data=Message(message="Review deleted"))


@router.post("/{review_id}/helpful", response_model=ApiEnvelope)
def toggle_helpful(session: SessionDep, current_user: CurrentUser, review_id: int) -> ApiEnvelope:
    """
    标记/取消"有用"

    请求路径: POST /api/v1/reviews/{review_id}/helpful
    """
    marked, helpful_count = review_crud.toggle_helpful(
        session=session, review_id=review_id, user_id=current_user.id
    )
    return ApiEnvelope(data=HelpfulData(marked=marked, helpful_count=helpful_count))


@router.post("/{review_id}/response", response_model=ApiEnvelope)
def respond_to_review(
    session: SessionDep,
    current_seller: CurrentSeller,
    review_id: int,
    body: SellerResponseRequest,
) -> ApiEnvelope:
    """
    店铺回复评价（可重复回复，新回复覆盖旧回复）

    请求路径: POST /api/v1/reviews/{review_id}/response
    """
    review = review_crud.add_seller_response(
        session=session, review_id=review_id, seller_id=current_seller.id, response=body.response
    )
    return ApiEnvelope(data=_to_review_data(review))
