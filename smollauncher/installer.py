"""
安装流程

解析版本清单，按平台规则筛选库文件，并发下载缺失的库文件、客户端和资源文件，
最后拼接 classpath。已存在的文件直接信任，不再校验。
"""

import asyncio
import os
from typing import List, Optional, Set

import aiofiles
from loguru import logger

from smollauncher.download import (
    ArtifactFetcher,
    DownloadManager,
    FetchTask,
    FileVerifier,
)
from smollauncher.exceptions import (
    DownloadChecksumError,
    DownloadFileError,
    InstallError,
    LauncherError,
)
from smollauncher.models import VersionDescriptor, VersionManifestDocument
from smollauncher.models.manifest import RESOURCES_BASE_URL
from smollauncher.services import MojangClient, PlatformMatcher


class Installer:
    """版本安装器"""

    def __init__(
        self,
        client: MojangClient,
        fetcher: ArtifactFetcher,
        matcher: Optional[PlatformMatcher] = None,
        resources_url: str = RESOURCES_BASE_URL,
    ):
        self.client = client
        self.fetcher = fetcher
        self.matcher = matcher or PlatformMatcher()
        self.verifier = FileVerifier()
        self.resources_url = resources_url

    async def install(self, descriptor: VersionDescriptor, root: str) -> str:
        """
        安装指定版本

        Args:
            descriptor: 版本描述
            root: 安装根目录

        Returns:
            classpath 字符串

        Raises:
            InstallError: 清单获取、下载、校验或写入任一失败
        """
        logger.info(f"[安装] 开始安装 {descriptor.id}")
        try:
            manifest = await self.client.get_version_manifest(descriptor)

            # 库文件/客户端与资源文件互不依赖，同时进行
            results = await asyncio.gather(
                self._install_classpath(manifest, root),
                self._install_assets(manifest, root),
                return_exceptions=True,
            )
        except InstallError:
            raise
        except LauncherError as e:
            raise InstallError(
                f"安装 {descriptor.id} 失败: {e.message}", context=e.context
            ) from e

        for result in results:
            if isinstance(result, InstallError):
                raise result
            if isinstance(result, LauncherError):
                raise InstallError(
                    f"安装 {descriptor.id} 失败: {result.message}",
                    context=result.context,
                ) from result
            if isinstance(result, BaseException):
                raise result

        logger.success(f"[安装] {descriptor.id} 安装完成")
        return results[0]

    async def _install_classpath(
        self, manifest: VersionManifestDocument, root: str
    ) -> str:
        """下载库文件和客户端，返回 classpath"""
        group = DownloadManager(self.fetcher, name=f"{manifest.id} 库文件")
        present: List[str] = []
        seen: Set[str] = set()

        libraries = self.matcher.filter(manifest.libraries)
        logger.debug(
            f"{len(manifest.libraries) - len(libraries)} 个库文件不适用于当前平台"
        )
        for library in libraries:
            self._partition(
                group,
                present,
                seen,
                FetchTask(
                    library.url,
                    library.sha1,
                    library.storage_path(root),
                    "libraries",
                ),
            )

        self._partition(
            group,
            present,
            seen,
            FetchTask(
                manifest.client.url,
                manifest.client.sha1,
                manifest.client.storage_path(root, manifest.id),
                "client",
            ),
        )

        fetched = await group.run()
        return self.matcher.classpath_separator.join(present + fetched)

    def _partition(
        self,
        group: DownloadManager,
        present: List[str],
        seen: Set[str],
        task: FetchTask,
    ):
        if task.path in seen:
            return
        seen.add(task.path)
        if self.verifier.exists(task.path):
            present.append(task.path)
            group.skip(task.path)
        else:
            group.enqueue(task)

    async def _install_assets(self, manifest: VersionManifestDocument, root: str):
        """下载资源索引与资源文件（不参与 classpath）"""
        reference = manifest.asset_index
        raw, objects = await self.client.get_asset_index(reference)

        if not self.verifier.verify_bytes(raw, reference.sha1):
            raise DownloadChecksumError(
                f"资源索引 SHA1 校验失败: {reference.id}",
                url=reference.url,
            )

        index_path = reference.storage_path(root, manifest.id)
        if not self.verifier.exists(index_path):
            await self._write_index(reference.url, index_path, raw)

        group = DownloadManager(self.fetcher, name=f"{manifest.id} 资源文件")
        for obj in objects:
            path = obj.storage_path(root)
            if self.verifier.exists(path):
                group.skip(path)
            else:
                group.enqueue(
                    FetchTask(obj.download_url(self.resources_url), obj.hash, path, "assets")
                )

        await group.run()

    async def _write_index(self, url: str, path: str, raw: bytes):
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(raw)
        except OSError as e:
            raise DownloadFileError(f"写入资源索引失败: {e}", url=url, path=path) from e
