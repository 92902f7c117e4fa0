"""
应用启动前检查脚本

在 API 和 worker 启动前等待依赖服务就绪：
- 数据库（API 和 worker 都需要）
- Redis（worker 的结算扫描锁需要，用 --with-redis 开启检查）

Docker Compose 启动时数据库/Redis 容器可能还在初始化，
这里不断重试，直到成功或超过 5 分钟。

运行方式：
    python -m app.backend_pre_start [--with-redis]
"""
import logging  # 日志记录
import sys

from sqlalchemy import Engine  # SQLAlchemy 引擎类型
from sqlmodel import Session, select  # SQLModel 会话和查询
from tenacity import (  # 重试库，用于实现重试机制
    after_log,  # 重试后的日志记录
    before_log,  # 重试前的日志记录
    retry,  # 重试装饰器
    stop_after_attempt,  # 停止条件：达到最大尝试次数
    wait_fixed,  # 等待策略：固定间隔
)

from app.core.db import engine  # 数据库引擎
from app.core.redis_client import RedisClient, get_redis_client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 最大尝试次数：300 次（5 分钟，每秒一次）
wait_seconds = 1  # 每次重试间隔：1 秒

_retry = retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)


@_retry
def wait_for_db(db_engine: Engine) -> None:
    """执行 select(1)，失败时抛出异常触发重试"""
    try:
        with Session(db_engine) as session:
            session.exec(select(1))
    except Exception as e:
        logger.error(e)
        raise e


@_retry
def wait_for_redis(client: RedisClient) -> None:
    try:
        client.ping()
    except Exception as e:
        logger.error(e)
        raise e


def main(with_redis: bool = False) -> None:
    logger.info("Initializing service")
    wait_for_db(engine)
    if with_redis:
        wait_for_redis(get_redis_client())
    logger.info("Service finished initializing")


if __name__ == "__main__":  # pragma: no cover
    main(with_redis="--with-redis" in sys.argv[1:])
