"""
基础模型模块

定义所有模型共用的基础类和工具函数。
"""
from datetime import datetime, timezone

from sqlmodel import SQLModel


def utc_now() -> datetime:
    """
    获取当前 UTC 时间

    也是订单状态机和结算策略默认注入的时钟。

    Returns:
        当前 UTC 时区的日期时间对象
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    统一为带 UTC 时区的时间

    SQLite 读回的 DateTime(timezone=True) 会丢失时区信息，
    比较前先补上 UTC，避免 naive/aware 混用报错。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# 导出 SQLModel 供其他模块使用
__all__ = ["SQLModel", "utc_now", "as_utc"]
