"""CRUD 操作模块"""
from .analytics import get_seller_analytics
from .orders import (
    create_order,
    get_order,
    list_order_history,
    mark_order_paid,
    refresh_payouts,
    transition_order,
)
from .reviews import check_review_eligibility, create_review
from .user import get_seller_by_user_id

__all__ = [
    "get_seller_analytics",
    "create_order",
    "get_order",
    "list_order_history",
    "mark_order_paid",
    "refresh_payouts",
    "transition_order",
    "check_review_eligibility",
    "create_review",
    "get_seller_by_user_id",
]
