"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中。
这个 router 会被注册到主应用（app/main.py）上。

路由模块说明：
- orders: 订单相关（创建、查询、状态流转、结算状态）
- reviews: 评价相关（创建、修改、有用标记、店铺回复）
- seller: 店铺相关（订单列表、销售分析）
- utils: 工具相关（健康检查等）
"""
from fastapi import APIRouter

from app.api.routes import (
    orders,  # 订单路由
    reviews,  # 评价路由
    seller,  # 店铺路由
    utils,  # 工具路由
)

# 创建主 API 路由器
api_router = APIRouter()

# 注册所有业务路由模块
# 每个模块的路径前缀在各自的 router 中定义
api_router.include_router(orders.router)  # /orders/*
api_router.include_router(reviews.router)  # /reviews/*
api_router.include_router(seller.router)  # /seller/*
api_router.include_router(utils.router)  # /utils/*
