"""
定时任务逻辑
"""

import logging
from datetime import datetime
from uuid import uuid4

from sqlmodel import Session

from app.core.db import engine
from app.core.redis_client import get_redis_client
from app.crud import refresh_payouts
from app.models import utc_now

logger = logging.getLogger(__name__)

PAYOUT_LOCK_KEY = "orders:payout_sweep:lock"
PAYOUT_LOCK_TTL_SECONDS = 60 * 10


def sweep_payouts(now: datetime | None = None) -> int | None:
    """
    刷新已送达订单的结算状态（scheduled -> completed）

    多实例部署时用 Redis 锁保证同一时刻只有一个实例在扫描。

    Returns:
        更新的订单数；没拿到锁时返回 None
    """
    redis_client = get_redis_client()
    lock_value = str(uuid4())
    acquired = redis_client.acquire_lock(
        PAYOUT_LOCK_KEY,
        lock_value,
        expire_seconds=PAYOUT_LOCK_TTL_SECONDS,
    )
    if not acquired:
        logger.info("Payout sweep already running, skip this run.")
        return None

    try:
        with Session(engine) as session:
            changed = refresh_payouts(session=session, now=now or utc_now())
        logger.info("Payout sweep finished: %d orders updated", changed)
        return changed
    finally:
        redis_client.release_lock(PAYOUT_LOCK_KEY, lock_value)
