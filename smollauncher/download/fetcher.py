"""
单文件下载器

获取内容、校验 SHA1、写入磁盘。校验通过之前不会写入任何文件。
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Optional

import aiofiles
import aiohttp
from loguru import logger

from smollauncher.download.limiter import ConcurrencyLimiter
from smollauncher.download.verifier import FileVerifier
from smollauncher.exceptions import (
    DownloadChecksumError,
    DownloadFileError,
    DownloadNetworkError,
)


@dataclass
class FetchTask:
    """下载任务"""

    url: str
    sha1: Optional[str]
    path: str
    category: str = "files"


class ArtifactFetcher:
    """下载并校验单个文件"""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        limiter: ConcurrencyLimiter,
        verifier: Optional[FileVerifier] = None,
    ):
        self.session = session
        self.limiter = limiter
        self.verifier = verifier or FileVerifier()
        self.bytes_downloaded = 0
        self.requests = 0

    async def fetch(self, task: FetchTask) -> str:
        """
        下载单个文件

        Returns:
            写入的文件路径

        Raises:
            DownloadNetworkError: 网络错误或非 200 状态码
            DownloadChecksumError: SHA1 不匹配
            DownloadFileError: 写入失败
        """
        logger.debug(f"[开始] 下载 {task.category}: {task.url} -> {task.path}")

        async with self.limiter:
            data = await self._get(task)

        if not self.verifier.verify_bytes(data, task.sha1):
            raise DownloadChecksumError(
                f"SHA1 校验失败: {os.path.basename(task.path)}",
                context={
                    "expected": task.sha1,
                    "actual": self.verifier.sha1_hex(data),
                },
                url=task.url,
                path=task.path,
            )

        await self._write(task, data)
        self.bytes_downloaded += len(data)
        return task.path

    async def _get(self, task: FetchTask) -> bytes:
        self.requests += 1
        try:
            async with self.session.get(task.url) as response:
                if response.status != 200:
                    raise DownloadNetworkError(
                        f"HTTP {response.status}",
                        context={"status": response.status},
                        url=task.url,
                        path=task.path,
                    )
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DownloadNetworkError(
                f"网络错误: {e}", url=task.url, path=task.path
            ) from e

    async def _write(self, task: FetchTask, data: bytes):
        # 目标路径上只会出现完整的文件
        part_path = f"{task.path}.part"
        try:
            os.makedirs(os.path.dirname(task.path), exist_ok=True)
            async with aiofiles.open(part_path, "wb") as f:
                await f.write(data)
            os.replace(part_path, task.path)
        except OSError as e:
            if os.path.exists(part_path):
                try:
                    os.remove(part_path)
                except OSError:
                    pass
            raise DownloadFileError(
                f"写入文件失败: {e}", url=task.url, path=task.path
            ) from e
