"""
并发限制器

所有下载任务共享的计数信号量，限制同时进行的网络请求数量。
"""

import asyncio

from smollauncher.models.config import DEFAULT_MAX_CONCURRENT


class ConcurrencyLimiter:
    """
    计数准入控制。

    用法::

        async with limiter:
            ...  # 网络请求

    无论请求成功或失败，退出上下文时都会归还名额。
    """

    def __init__(self, capacity: int = DEFAULT_MAX_CONCURRENT):
        if capacity <= 0:
            raise ValueError("capacity 必须为正整数")
        self.capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self.active = 0
        self.peak = 0

    async def acquire(self):
        await self._semaphore.acquire()
        self.active += 1
        if self.active > self.peak:
            self.peak = self.active

    def release(self):
        self.active -= 1
        self._semaphore.release()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
