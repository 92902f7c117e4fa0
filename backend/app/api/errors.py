"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器，
返回 {"code": ..., "message": ..., "data": ...} 格式。

错误码约定（6 位）：前三位是 HTTP 状态码，后三位区分业务。
- 400101 InvalidAmount: 金额不合法（<= 0 或费率越界），属于数据错误，不重试
- 400102 MixedSellers: 一个订单里的商品必须来自同一个店铺
- 403101 Forbidden: 不是自己的订单/评价
- 403201 ReviewNotEligible: 不满足评价条件，data.reason 给出具体原因
- 404002 SellerNotFound: 店铺不存在（或当前用户没有开店）
- 404101 OrderNotFound: 订单不存在
- 404301 ProductNotFound: 商品不存在或已下架
- 404201 ReviewNotFound: 评价不存在或不属于当前用户
- 409101 InvalidTransition: 状态流转不合法（包括从终态流转）
- 409102 ConcurrencyConflict: 并发修改同一订单，调用方可重新读取后重试一次
"""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """
    应用自定义异常类

    用于业务逻辑中的错误处理，包含：
    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息（用户友好的提示）
    - status_code: HTTP 状态码（400, 404, 500 等）
    - data: 附加数据（可选），例如不能评价的原因

    使用示例：
        raise AppError(code=403101, message="Not your order", status_code=403)
    """

    def __init__(
        self,
        *,
        code: int,
        message: str,
        status_code: int = 400,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.data = data


class InvalidTransition(AppError):
    """请求的状态不在当前状态允许的目标集合里"""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=409101,
            message=f"Cannot change order status from {current} to {target}",
            status_code=409,
            data={"current_status": current, "target_status": target},
        )
        self.current = current
        self.target = target


class OrderNotFound(AppError):
    def __init__(self, order_id: int | str | None = None) -> None:
        super().__init__(code=404101, message="Order not found", status_code=404)
        self.order_id = order_id


class InvalidAmount(AppError):
    def __init__(self, message: str = "Amount must be a positive integer") -> None:
        super().__init__(code=400101, message=message, status_code=400)


class ConcurrencyConflict(AppError):
    def __init__(self, order_id: int | None = None) -> None:
        super().__init__(
            code=409102,
            message="Order was modified by another request, please retry",
            status_code=409,
        )
        self.order_id = order_id


class ReviewNotEligible(AppError):
    """
    不满足评价条件

    reason 取值见 app.enums.ReviewIneligibleReason：
    not_purchased / not_delivered / already_reviewed
    """

    _MESSAGES = {
        "not_purchased": "You can only review products you have purchased",
        "not_delivered": "You can review this product once the order is delivered",
        "already_reviewed": "You have already reviewed this product for this order",
    }

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=403201,
            message=self._MESSAGES.get(reason, "Review not allowed"),
            status_code=403,
            data={"reason": reason},
        )
        self.reason = reason


def forbidden(message: str = "Not allowed") -> AppError:
    """
    创建"无权限"异常（便捷函数）

    使用示例：
        if order.buyer_id != current_user.id:
            raise forbidden("Not your order")
    """
    return AppError(code=403101, message=message, status_code=403)


def review_not_found() -> AppError:
    return AppError(code=404201, message="Review not found or unauthorized", status_code=404)


def product_not_found() -> AppError:
    return AppError(code=404301, message="Product not found or unavailable", status_code=404)
