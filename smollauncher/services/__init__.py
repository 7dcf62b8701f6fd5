"""
smollauncher 服务层

包含业务逻辑服务：Mojang 元数据客户端、平台规则匹配、微软账户认证。
"""

from smollauncher.services.api_client import MojangClient
from smollauncher.services.platform_matcher import PlatformMatcher
from smollauncher.services.authenticator import (
    AuthEndpoints,
    AuthState,
    MicrosoftAuthenticator,
)

__all__ = [
    "MojangClient",
    "PlatformMatcher",
    "AuthEndpoints",
    "AuthState",
    "MicrosoftAuthenticator",
]
