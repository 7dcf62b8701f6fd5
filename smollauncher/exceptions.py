"""
smollauncher 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
顶层调用者只需区分 AuthenticationError（认证失败）与 InstallError（安装失败）。
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp


# 传输层错误（DNS、连接、超时）
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class LauncherError(Exception):
    """smollauncher 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(LauncherError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(LauncherError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class APINotFoundError(APIError):
    """API 资源不存在"""

    def _get_default_code(self) -> str:
        return "E404"


class APIServerError(APIError):
    """API 服务器错误"""

    def _get_default_code(self) -> str:
        return "E500"


class ManifestError(LauncherError):
    """清单格式错误（JSON 结构不符合预期）"""

    def _get_default_code(self) -> str:
        return "E210"


class InstallError(LauncherError):
    """安装失败"""

    def _get_default_code(self) -> str:
        return "E300"


class DownloadError(InstallError):
    """下载相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message, code, context)
        self.url = url
        self.path = path
        if url:
            self.context["url"] = url
        if path:
            self.context["path"] = path

    def _get_default_code(self) -> str:
        return "E300"


class DownloadNetworkError(DownloadError):
    """下载网络错误"""

    def _get_default_code(self) -> str:
        return "E301"


class DownloadChecksumError(DownloadError):
    """下载校验错误"""

    def _get_default_code(self) -> str:
        return "E302"


class DownloadFileError(DownloadError):
    """下载文件操作错误"""

    def _get_default_code(self) -> str:
        return "E303"


class DownloadGroupError(InstallError):
    """一组并发下载中出现的全部错误"""

    def __init__(self, errors: List[DownloadError]):
        first = errors[0]
        super().__init__(
            f"{len(errors)} 个文件下载失败, 首个: {first.message} "
            f"({first.url} -> {first.path})",
            context={
                "failed": [
                    {"url": e.url, "path": e.path, "code": e.code} for e in errors
                ]
            },
        )
        self.errors = errors

    def _get_default_code(self) -> str:
        return "E310"


class AuthenticationError(LauncherError):
    """认证失败"""

    def _get_default_code(self) -> str:
        return "E600"


class DeviceFlowError(AuthenticationError):
    """设备码登录终止（拒绝、错误的代码、过期或网络错误）"""

    def __init__(
        self,
        message: str,
        reason: Any = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, context)
        self.reason = reason
        if reason is not None:
            self.context["reason"] = getattr(reason, "value", reason)

    def _get_default_code(self) -> str:
        return "E601"


class RelyingPartyError(AuthenticationError):
    """Xbox Live / XSTS / 游戏服务登录失败"""

    def _get_default_code(self) -> str:
        return "E602"


class ProfileError(AuthenticationError):
    """获取玩家档案失败"""

    def _get_default_code(self) -> str:
        return "E603"


class RefreshError(AuthenticationError):
    """刷新令牌失效，由状态机内部捕获后回退到设备码登录"""

    def _get_default_code(self) -> str:
        return "E604"


__all__ = [
    # 基础异常
    "LauncherError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # API 异常
    "APIError",
    "APINotFoundError",
    "APIServerError",
    "ManifestError",
    # 安装异常
    "InstallError",
    "DownloadError",
    "DownloadNetworkError",
    "DownloadChecksumError",
    "DownloadFileError",
    "DownloadGroupError",
    # 认证异常
    "AuthenticationError",
    "DeviceFlowError",
    "RelyingPartyError",
    "ProfileError",
    "RefreshError",
    "TRANSPORT_ERRORS",
]
