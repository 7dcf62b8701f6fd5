"""
下载管理器

收集一组下载任务，按目标路径去重，并发执行并汇总结果。
所有组共享同一个 ConcurrencyLimiter。
"""

import asyncio
from dataclasses import dataclass
from typing import List, Set

from loguru import logger

from smollauncher.download.fetcher import ArtifactFetcher, FetchTask
from smollauncher.exceptions import DownloadError, DownloadGroupError


@dataclass
class DownloadStats:
    """下载统计"""

    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0


class DownloadManager:
    """一组并发下载"""

    def __init__(self, fetcher: ArtifactFetcher, name: str = "files"):
        self.fetcher = fetcher
        self.name = name
        self.stats = DownloadStats()
        self._tasks: List[FetchTask] = []
        self._paths: Set[str] = set()

    @property
    def tasks(self) -> List[FetchTask]:
        return list(self._tasks)

    def enqueue(self, task: FetchTask) -> bool:
        """
        添加下载任务

        Returns:
            True 如果任务是新添加的，False 如果目标路径已在本组中
        """
        if task.path in self._paths:
            return False

        self._paths.add(task.path)
        self._tasks.append(task)
        self.stats.total += 1
        logger.debug(f"[队列] {task.category} '{task.path}' 已加入下载队列")
        return True

    def skip(self, path: str):
        """记录一个已存在、无需下载的文件"""
        self.stats.skipped += 1
        logger.debug(f"[跳过] '{path}' 已存在")

    async def _run_one(self, task: FetchTask) -> str:
        try:
            path = await self.fetcher.fetch(task)
        except DownloadError as e:
            self.stats.failed += 1
            logger.error(f"[错误] 下载失败 {task.url} -> {task.path}: {e}")
            raise
        self.stats.completed += 1
        logger.debug(f"[完成] '{task.path}' 下载完成")
        return path

    async def run(self) -> List[str]:
        """
        并发执行所有任务，等待全部结束后再汇总错误。

        Returns:
            下载完成的文件路径，按加入顺序排列

        Raises:
            DownloadGroupError: 至少一个任务失败
        """
        if not self._tasks:
            return []

        logger.info(f"[启动] {self.name}: {len(self._tasks)} 个文件待下载")
        results = await asyncio.gather(
            *(self._run_one(task) for task in self._tasks),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for error in errors:
                if not isinstance(error, DownloadError):
                    raise error
            raise DownloadGroupError(errors)

        logger.success(
            f"[完成] {self.name}: {self.stats.completed} 个文件下载完成, "
            f"{self.stats.skipped} 个跳过"
        )
        return list(results)

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats
