"""
工具路由模块

提供系统工具类的 API 端点，如健康检查等。
"""
from fastapi import APIRouter
from sqlmodel import select

from app.api.deps import SessionDep

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
def health_check(session: SessionDep) -> bool:
    """
    健康检查端点

    执行一次 SELECT 1 确认数据库可用，返回 True 表示服务正常。

    请求路径: GET /api/v1/utils/health-check/

    使用场景：
    - 负载均衡器健康检查
    - 容器编排系统（如 Kubernetes）的存活探针
    """
    session.exec(select(1))
    return True
