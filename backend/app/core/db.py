"""
数据库连接模块

管理数据库引擎和会话的创建。
使用 SQLModel 的 create_engine 创建数据库连接池。

重要提示：
- 表结构由外部的迁移流程管理，不要在这里创建表
- 确保在使用前导入所有模型（app.models），否则关系可能无法正确初始化
- 订单状态流转依赖数据库事务隔离（SELECT ... FOR UPDATE + 版本号比较）
"""
import logging

from sqlmodel import Session, create_engine, select  # SQLModel 的数据库工具

from app.core.config import settings
from app.enums import UserRole
from app.models import User

logger = logging.getLogger(__name__)

# 创建数据库引擎（连接池）
# pool_pre_ping: 每次取连接前探活，避免使用已断开的连接
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI), pool_pre_ping=True)


def init_db(session: Session) -> User | None:
    """
    初始化种子数据

    配置了 FIRST_ADMIN_EMAIL 时确保存在对应的管理员账号
    （支付服务以管理员身份调用确认付款接口）。重复执行不会重复创建。

    Args:
        session: 数据库会话

    Returns:
        管理员用户；未配置时返回 None
    """
    if not settings.FIRST_ADMIN_EMAIL:
        return None
    admin = session.exec(select(User).where(User.email == settings.FIRST_ADMIN_EMAIL)).first()
    if admin:
        return admin
    admin = User(email=settings.FIRST_ADMIN_EMAIL, first_name="Platform", role=UserRole.admin)
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Created admin user %s", admin.email)
    return admin
