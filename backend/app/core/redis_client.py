"""
Redis 客户端

只用于定时任务的分布式锁：多个 worker 实例同时运行时，
同一时刻只有一个实例执行结算扫描。
"""

import logging

import redis

logger = logging.getLogger(__name__)

# 只有锁值匹配才删除，避免锁过期后误删其他实例的锁
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisClient:
    """Redis 客户端封装"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
    ):
        self.host = host
        self.port = port
        self.db = db
        self.client = redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True,
        )
        logger.info("Redis client initialized: %s:%s/%s", host, port, db)

    def ping(self) -> bool:
        """测试连接，失败时抛出 redis 异常（启动检查依赖异常触发重试）"""
        return bool(self.client.ping())

    def acquire_lock(self, lock_key: str, lock_value: str, expire_seconds: int = 60) -> bool:
        """
        获取分布式锁（SET key value NX EX）

        Args:
            lock_key: 锁键
            lock_value: 锁值（释放时校验，每次获取用新的随机值）
            expire_seconds: 锁过期时间（秒），进程崩溃时锁也会自动释放

        Returns:
            是否获取成功；Redis 不可用时返回 False，本轮任务跳过
        """
        try:
            return bool(self.client.set(lock_key, lock_value, ex=expire_seconds, nx=True))
        except redis.RedisError:
            logger.exception("Failed to acquire lock %s", lock_key)
            return False

    def release_lock(self, lock_key: str, lock_value: str) -> bool:
        """
        释放分布式锁

        Returns:
            是否释放成功（锁已过期或被其他实例持有时为 False）
        """
        try:
            return self.client.eval(_RELEASE_LOCK_SCRIPT, 1, lock_key, lock_value) == 1
        except redis.RedisError:
            logger.exception("Failed to release lock %s", lock_key)
            return False

    def close(self) -> None:
        self.client.close()
        logger.info("Redis client closed")


# 全局 Redis 客户端实例
_redis_client: RedisClient | None = None


def init_redis_client(
    host: str = "localhost",
    port: int = 6379,
    db: int = 0,
    password: str | None = None,
) -> RedisClient:
    """初始化全局 Redis 客户端"""
    global _redis_client
    _redis_client = RedisClient(host=host, port=port, db=db, password=password)
    return _redis_client


def get_redis_client() -> RedisClient:
    """
    获取全局 Redis 客户端实例

    未初始化时按配置创建。
    """
    if _redis_client is not None:
        return _redis_client

    from app.core.config import settings

    return init_redis_client(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD,
    )
