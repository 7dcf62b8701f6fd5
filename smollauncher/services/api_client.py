"""
Mojang 元数据客户端

获取版本目录、版本清单和资源索引。
"""

import json
from typing import Any, List, Optional, Tuple

import aiohttp

from smollauncher.models import (
    AssetIndexReference,
    AssetObject,
    VersionCatalog,
    VersionDescriptor,
    VersionManifestDocument,
    parse_asset_index,
)
from smollauncher.exceptions import (
    APIError,
    APINotFoundError,
    APIServerError,
    ManifestError,
    TRANSPORT_ERRORS,
)


VERSION_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"


class MojangClient:
    """Mojang 元数据 API 客户端"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        catalog_url: str = VERSION_MANIFEST_URL,
    ):
        self._session = session
        self._owned_session = session is None
        self.catalog_url = catalog_url

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _request_bytes(self, url: str) -> bytes:
        """发送 GET 请求并返回原始内容"""
        try:
            async with self.session.get(url) as response:
                if response.status == 200:
                    return await response.read()
                elif response.status == 404:
                    raise APINotFoundError(f"资源不存在: {url}", response=response)
                elif response.status >= 500:
                    raise APIServerError(
                        f"服务器错误 (状态码: {response.status})", response=response
                    )
                else:
                    raise APIError(
                        f"API 请求失败 (状态码: {response.status})",
                        response=response,
                    )
        except TRANSPORT_ERRORS as e:
            raise APIError(f"网络错误: {e}", context={"url": url}) from e

    async def _request(self, url: str) -> Any:
        """发送 GET 请求并解析 JSON"""
        raw = await self._request_bytes(url)
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ManifestError(f"无效的 JSON: {url}", context={"url": url}) from e

    async def get_catalog(self) -> VersionCatalog:
        """获取版本目录"""
        return VersionCatalog.from_mojang(await self._request(self.catalog_url))

    async def get_version_manifest(
        self, descriptor: VersionDescriptor
    ) -> VersionManifestDocument:
        """获取单个版本的清单"""
        return VersionManifestDocument.from_mojang(await self._request(descriptor.url))

    async def get_asset_index(
        self, reference: AssetIndexReference
    ) -> Tuple[bytes, List[AssetObject]]:
        """
        获取资源索引

        Returns:
            tuple: (原始内容, 资源对象列表)
        """
        raw = await self._request_bytes(reference.url)
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ManifestError(f"无效的资源索引: {reference.url}") from e
        return raw, parse_asset_index(data)

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
