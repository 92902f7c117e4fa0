"""
数据库模型定义模块

本模块使用 SQLModel 定义所有数据库表结构。

模型按功能拆分：
- user.py: 用户、店铺模型
- product.py: 商品模型
- order.py: 订单、订单明细、状态历史模型
- review.py: 评价、"有用"标记模型
"""
from sqlmodel import SQLModel

from .base import as_utc, utc_now
from .order import Order, OrderItem, OrderStatusHistory
from .product import Product
from .review import Review, ReviewHelpful
from .user import Seller, User

__all__ = [
    "SQLModel",
    "utc_now",
    "as_utc",
    "User",
    "Seller",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Review",
    "ReviewHelpful",
]
