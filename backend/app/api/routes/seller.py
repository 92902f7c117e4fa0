"""
店铺路由模块

店铺的订单列表和销售分析，只有开店的用户可以访问。
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from app import crud
from app.api.deps import CurrentSeller, SessionDep
from app.api.routes.orders import to_order_data
from app.api.schemas import ApiEnvelope, OrdersData, SellerAnalyticsData
from app.crud.orders import list_seller_orders
from app.enums import OrderStatus

router = APIRouter(prefix="/seller", tags=["seller"])


@router.get("/orders", response_model=ApiEnvelope)
def list_orders(
    session: SessionDep,
    current_seller: CurrentSeller,
    status: OrderStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    """
    店铺订单列表

    请求路径: GET /api/v1/seller/orders?status=processing
    """
    rows, count = list_seller_orders(
        session=session,
        seller_id=current_seller.id,
        status=status,
        page=page,
        page_size=page_size,
    )
    return ApiEnvelope(data=OrdersData(data=[to_order_data(o) for o in rows], count=count))


@router.get("/analytics", response_model=ApiEnvelope)
def get_analytics(session: SessionDep, current_seller: CurrentSeller) -> ApiEnvelope:
    """
    店铺销售分析

    请求路径: GET /api/v1/seller/analytics
    """
    data = crud.get_seller_analytics(session=session, seller_id=current_seller.id)
    return ApiEnvelope(data=SellerAnalyticsData.model_validate(data))
