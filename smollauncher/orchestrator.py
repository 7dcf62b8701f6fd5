"""
主协调器

加载记录，解析目标版本，安装与认证并行执行，成功后写回记录。
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
from loguru import logger

from smollauncher.download import ArtifactFetcher, ConcurrencyLimiter
from smollauncher.installer import Installer
from smollauncher.models import (
    AuthResult,
    InstalledVersionsRecord,
    LauncherConfig,
    VersionDescriptor,
)
from smollauncher.models.manifest import RESOURCES_BASE_URL
from smollauncher.services import (
    AuthEndpoints,
    MicrosoftAuthenticator,
    MojangClient,
    PlatformMatcher,
)
from smollauncher.services.authenticator import Notifier
from smollauncher.services.api_client import VERSION_MANIFEST_URL
from smollauncher.storage import load_record, record_path, save_record


@dataclass
class LaunchContext:
    """启动所需的全部信息"""

    version: VersionDescriptor
    auth: AuthResult
    classpath: str
    installed: bool


class LauncherOrchestrator:
    """smollauncher 主协调器"""

    def __init__(
        self,
        config: LauncherConfig,
        notify: Optional[Notifier] = None,
        session: Optional[aiohttp.ClientSession] = None,
        catalog_url: str = VERSION_MANIFEST_URL,
        resources_url: str = RESOURCES_BASE_URL,
        endpoints: Optional[AuthEndpoints] = None,
        matcher: Optional[PlatformMatcher] = None,
    ):
        self.config = config
        self.notify = notify
        self.catalog_url = catalog_url
        self.resources_url = resources_url
        self.endpoints = endpoints
        self.matcher = matcher
        self.limiter = ConcurrencyLimiter(config.max_concurrent)
        self.record_path = record_path(config.data_dir)
        self._session = session
        self._owned_session = session is None

    async def run(self) -> LaunchContext:
        """运行完整流程"""
        record = await load_record(self.record_path)

        session = self._session or aiohttp.ClientSession(
            headers={"User-Agent": self.config.user_agent}
        )
        try:
            return await self._run(session, record)
        finally:
            if self._owned_session:
                await session.close()

    async def _run(
        self, session: aiohttp.ClientSession, record: InstalledVersionsRecord
    ) -> LaunchContext:
        client = MojangClient(session, catalog_url=self.catalog_url)
        catalog = await client.get_catalog()
        descriptor = catalog.resolve(self.config.version, self.config.snapshot)
        logger.info(f"版本: {descriptor.id}")

        authenticator = MicrosoftAuthenticator(
            client_id=self.config.client_id,
            session=session,
            notify=self.notify,
            endpoints=self.endpoints,
        )

        need_install = not record.is_installed(descriptor.id)
        if need_install:
            installer = Installer(
                client,
                ArtifactFetcher(session, self.limiter),
                matcher=self.matcher,
                resources_url=self.resources_url,
            )
            install = installer.install(descriptor, self.config.data_dir)
        else:
            logger.info(f"版本 {descriptor.id} 已安装，跳过安装")
            install = _installed(record.classpath_for(descriptor.id))

        # 安装与认证互不依赖，同时进行
        classpath, auth = await asyncio.gather(
            install,
            authenticator.authenticate(record.refresh_token),
            return_exceptions=True,
        )

        install_failed = isinstance(classpath, BaseException)
        auth_failed = isinstance(auth, BaseException)
        if auth_failed:
            if install_failed:
                logger.error(f"认证同样失败: {auth}")
                raise classpath
            raise auth

        record.refresh_token = auth.refresh_token
        if install_failed:
            # 只保存新的刷新令牌，版本不标记为已安装
            await save_record(self.record_path, record)
            raise classpath

        if need_install:
            record.mark_installed(descriptor.id, classpath)
        else:
            record.classpath = classpath
        await save_record(self.record_path, record)

        return LaunchContext(
            version=descriptor,
            auth=auth,
            classpath=classpath,
            installed=need_install,
        )


async def _installed(classpath: str) -> str:
    return classpath

