"""
枚举类型定义模块

定义应用中使用的所有枚举类型。
枚举用于限制字段只能取特定的值，提供类型安全和代码可读性。

所有枚举都继承自 str 和 Enum，这样既可以用作字符串，又具有枚举的特性。
未知的状态字符串在构造时直接抛出 ValueError（例如 OrderStatus("shipped")）。
"""
from enum import Enum  # 枚举类型，用于定义固定的选项集合


class UserRole(str, Enum):
    """
    用户角色枚举

    - buyer: 买家
    - seller: 卖家（拥有店铺）
    - admin: 平台管理员
    """
    buyer = "buyer"
    seller = "seller"
    admin = "admin"


class OrderStatus(str, Enum):
    """
    订单履约状态枚举

    单向流水线：
    pending -> processing -> ready_for_pickup -> in_transit -> delivered
    另外 pending 可以取消（cancelled）。

    - pending: 已下单，等待卖家处理（唯一初始状态）
    - processing: 卖家备货中
    - ready_for_pickup: 已备好，等待取件/发货
    - in_transit: 配送中
    - delivered: 已送达（终态）
    - cancelled: 已取消（终态）
    """
    pending = "pending"
    processing = "processing"
    ready_for_pickup = "ready_for_pickup"
    in_transit = "in_transit"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    """
    支付状态枚举

    与订单状态相互独立，由支付网关回调设置一次 paid，之后不会回退。
    """
    unpaid = "unpaid"
    paid = "paid"


class PayoutStatus(str, Enum):
    """
    卖家结算状态枚举

    - pending: 订单尚未送达，不可结算
    - scheduled: 已送达，处于冷静期（默认 24 小时），到期后可结算
    - completed: 冷静期已过，可以打款给卖家
    """
    pending = "pending"
    scheduled = "scheduled"
    completed = "completed"


class ReviewIneligibleReason(str, Enum):
    """
    不能评价的原因

    调用方根据原因给出不同的提示文案。
    """
    not_purchased = "not_purchased"
    not_delivered = "not_delivered"
    already_reviewed = "already_reviewed"
