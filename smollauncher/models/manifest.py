"""
版本清单数据模型

定义版本目录、版本清单、库文件、客户端与资源索引等数据类。
所有 from_mojang 构造器在 JSON 结构不符时抛出 ManifestError，不做静默默认。
"""

import os
import platform
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from smollauncher.exceptions import ManifestError


RESOURCES_BASE_URL = "https://resources.download.minecraft.net"


class OsFamily(Enum):
    """操作系统家族"""

    OSX = "osx"
    WINDOWS = "windows"
    LINUX = "linux"

    @classmethod
    def current(cls, system: Optional[str] = None) -> "OsFamily":
        """根据 platform.system() 判断当前系统"""
        system = system or platform.system()
        if system == "Windows":
            return cls.WINDOWS
        elif system == "Darwin":
            return cls.OSX
        return cls.LINUX

    @property
    def classpath_separator(self) -> str:
        return ";" if self == OsFamily.WINDOWS else ":"


@dataclass(frozen=True)
class VersionDescriptor:
    """版本目录中的一项，指向该版本的清单地址"""

    id: str
    url: str
    type: str = "release"

    @classmethod
    def from_mojang(cls, data: dict) -> "VersionDescriptor":
        try:
            return cls(id=data["id"], url=data["url"], type=data.get("type", "release"))
        except (KeyError, TypeError) as e:
            raise ManifestError(f"版本目录条目格式错误: {e}") from e


@dataclass
class VersionCatalog:
    """
    版本目录 (version_manifest_v2.json)。
    """

    latest_release: str
    latest_snapshot: str
    versions: List[VersionDescriptor] = field(default_factory=list)

    @classmethod
    def from_mojang(cls, data: dict) -> "VersionCatalog":
        try:
            latest = data["latest"]
            return cls(
                latest_release=latest["release"],
                latest_snapshot=latest["snapshot"],
                versions=[VersionDescriptor.from_mojang(v) for v in data["versions"]],
            )
        except (KeyError, TypeError) as e:
            raise ManifestError(f"版本目录格式错误: {e}") from e

    def resolve(
        self, version_id: Optional[str] = None, snapshot: bool = False
    ) -> VersionDescriptor:
        """
        查找版本描述

        Args:
            version_id: 指定版本，None 表示最新版本
            snapshot: 未指定版本时是否选择最新快照

        Returns:
            对应的 VersionDescriptor
        """
        if version_id is None:
            version_id = self.latest_snapshot if snapshot else self.latest_release

        for version in self.versions:
            if version.id == version_id:
                return version

        raise ManifestError(f"未知的版本: {version_id}", context={"version": version_id})


@dataclass(frozen=True)
class LibraryRule:
    """库文件规则，os 为 None 表示对所有系统生效"""

    allow: bool
    os: Optional[OsFamily] = None

    @classmethod
    def from_mojang(cls, data: dict) -> "LibraryRule":
        action = data.get("action", "allow")
        if action not in ("allow", "disallow"):
            raise ManifestError(f"未知的规则动作: {action}")

        os_rule = data.get("os")
        os_family = None
        if os_rule and "name" in os_rule:
            try:
                os_family = OsFamily(os_rule["name"])
            except ValueError as e:
                raise ManifestError(f"未知的系统规则: {os_rule['name']}") from e
        return cls(allow=action == "allow", os=os_family)


@dataclass
class LibraryEntry:
    """库文件，rules 为空表示适用于所有平台"""

    path: str
    url: str
    sha1: str
    rules: List[LibraryRule] = field(default_factory=list)

    @classmethod
    def from_mojang(cls, data: dict) -> Optional["LibraryEntry"]:
        """
        将清单中的 libraries[] 条目转换为 LibraryEntry。

        没有 downloads.artifact 的条目（仅含 natives 的旧格式）返回 None。
        """
        try:
            artifact = data.get("downloads", {}).get("artifact")
            if artifact is None:
                return None

            return cls(
                path=artifact["path"],
                url=artifact["url"],
                sha1=artifact["sha1"],
                rules=[LibraryRule.from_mojang(r) for r in data.get("rules") or []],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ManifestError(
                f"库文件条目格式错误: {data.get('name', '?')}"
            ) from e

    def storage_path(self, root: str) -> str:
        return os.path.join(root, "libraries", *self.path.split("/"))


@dataclass
class ClientArtifact:
    """客户端 jar"""

    url: str
    sha1: str

    def storage_path(self, root: str, version_id: str) -> str:
        return os.path.join(root, "versions", f"{version_id}.jar")


@dataclass
class AssetIndexReference:
    """资源索引引用"""

    id: str
    url: str
    sha1: Optional[str] = None

    def storage_path(self, root: str, version_id: str) -> str:
        return os.path.join(root, "assets", "indexes", f"{version_id}.json")


@dataclass
class AssetObject:
    """
    资源对象。

    存储路径由哈希决定：assets/objects/<前两位>/<完整哈希>。
    """

    name: str
    hash: str

    @property
    def prefix(self) -> str:
        return self.hash[:2]

    def download_url(self, base_url: str = RESOURCES_BASE_URL) -> str:
        return f"{base_url}/{self.prefix}/{self.hash}"

    def storage_path(self, root: str) -> str:
        return os.path.join(root, "assets", "objects", self.prefix, self.hash)


def parse_asset_index(data: dict) -> List[AssetObject]:
    """解析资源索引中的 objects 表"""
    try:
        objects: Dict[str, dict] = data["objects"]
        return [AssetObject(name=name, hash=obj["hash"]) for name, obj in objects.items()]
    except (KeyError, TypeError, AttributeError) as e:
        raise ManifestError(f"资源索引格式错误: {e}") from e


@dataclass
class VersionManifestDocument:
    """
    单个版本的元数据清单。
    """

    id: str
    libraries: List[LibraryEntry]
    client: ClientArtifact
    asset_index: AssetIndexReference

    @classmethod
    def from_mojang(cls, data: dict) -> "VersionManifestDocument":
        """
        将 Mojang 返回的版本 JSON 转换为 VersionManifestDocument 对象。
        """
        try:
            libraries = []
            for lib in data["libraries"]:
                entry = LibraryEntry.from_mojang(lib)
                if entry is not None:
                    libraries.append(entry)

            client = data["downloads"]["client"]
            asset_index = data["assetIndex"]

            return cls(
                id=data["id"],
                libraries=libraries,
                client=ClientArtifact(url=client["url"], sha1=client["sha1"]),
                asset_index=AssetIndexReference(
                    id=asset_index.get("id", data["id"]),
                    url=asset_index["url"],
                    sha1=asset_index.get("sha1"),
                ),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ManifestError(f"版本清单格式错误: {e}") from e
