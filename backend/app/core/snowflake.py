"""
Snowflake ID 生成器模块

所有表的主键（订单、明细、状态历史、评价……）都用这里生成的 64 位 ID，
不依赖数据库自增，多个实例同时写入也不会冲突，并且大致按时间递增，
同一毫秒内创建的状态历史也能按 id 排出先后。

ID 结构（64 位）：
- 41 位：毫秒时间戳（从 2024-01-01T00:00:00Z 起算）
- 10 位：节点 ID（SNOWFLAKE_NODE_ID，0-1023）
- 12 位：同一毫秒内的序列号
"""
from __future__ import annotations

import threading
import time

from app.core.config import settings

_EPOCH_MS = 1704067200000
_MAX_CLOCK_DRIFT_MS = 5000


class Snowflake:
    """线程安全的 Snowflake ID 生成器"""

    def __init__(self, *, node_id: int) -> None:
        if not (0 <= node_id <= 1023):
            raise ValueError("SNOWFLAKE_NODE_ID must be in [0, 1023]")
        self._node_id = node_id
        self._lock = threading.Lock()
        self._last_ts = -1
        self._seq = 0

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    def next_id(self) -> int:
        """
        生成下一个 ID

        时钟回拨小于 5 秒时等待时间追上；超过 5 秒直接报错，
        宁可失败也不能生成重复的订单 ID。

        Raises:
            RuntimeError: 时钟回拨超过 5 秒
        """
        with self._lock:
            ts = self._now_ms()
            if ts < self._last_ts:
                drift = self._last_ts - ts
                if drift > _MAX_CLOCK_DRIFT_MS:
                    raise RuntimeError(
                        f"Clock moved backwards by {drift}ms. "
                        "Refusing to generate IDs to prevent duplicates."
                    )
                ts = self._wait_until(self._last_ts)

            if ts == self._last_ts:
                self._seq = (self._seq + 1) & 0xFFF
                if self._seq == 0:
                    # 序列号用完，等下一毫秒
                    ts = self._wait_until(self._last_ts + 1)
            else:
                self._seq = 0

            self._last_ts = ts
            return ((ts - _EPOCH_MS) << 22) | (self._node_id << 12) | self._seq

    @classmethod
    def _wait_until(cls, target_ms: int) -> int:
        ts = cls._now_ms()
        while ts < target_ms:
            time.sleep(0.001)
            ts = cls._now_ms()
        return ts


_GENERATOR: Snowflake | None = None


def generate_id() -> int:
    """
    生成唯一 ID（模型的 default_factory）

    全局生成器在第一次调用时按配置的节点 ID 创建。
    """
    global _GENERATOR
    if _GENERATOR is None:
        _GENERATOR = Snowflake(node_id=settings.SNOWFLAKE_NODE_ID)
    return _GENERATOR.next_id()
