"""
smollauncher 数据模型包

包含配置模型、版本清单模型、认证模型和持久化记录。
"""

from smollauncher.models.config import LauncherConfig
from smollauncher.models.manifest import (
    OsFamily,
    VersionDescriptor,
    VersionCatalog,
    LibraryEntry,
    LibraryRule,
    ClientArtifact,
    AssetIndexReference,
    AssetObject,
    VersionManifestDocument,
    parse_asset_index,
)
from smollauncher.models.auth import (
    DeviceAuthError,
    DeviceAuthSession,
    TokenSet,
    RelyingPartyToken,
    AuthResult,
)
from smollauncher.models.record import InstalledVersionsRecord

__all__ = [
    # 配置模型
    "LauncherConfig",
    # 清单模型
    "OsFamily",
    "VersionDescriptor",
    "VersionCatalog",
    "LibraryEntry",
    "LibraryRule",
    "ClientArtifact",
    "AssetIndexReference",
    "AssetObject",
    "VersionManifestDocument",
    "parse_asset_index",
    # 认证模型
    "DeviceAuthError",
    "DeviceAuthSession",
    "TokenSet",
    "RelyingPartyToken",
    "AuthResult",
    # 持久化记录
    "InstalledVersionsRecord",
]
