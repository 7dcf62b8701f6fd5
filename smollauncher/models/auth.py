"""
认证数据模型

定义设备码会话、令牌对、Xbox 中间令牌和最终认证结果。
"""

from dataclasses import dataclass
from enum import Enum

from smollauncher.exceptions import AuthenticationError


class DeviceAuthError(Enum):
    """设备码轮询时身份提供方返回的 error 字段"""

    AUTHORIZATION_PENDING = "authorization_pending"
    AUTHORIZATION_DECLINED = "authorization_declined"
    BAD_VERIFICATION_CODE = "bad_verification_code"
    EXPIRED_TOKEN = "expired_token"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "DeviceAuthError":
        """未知的取值一律视为终止错误"""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def retryable(self) -> bool:
        return self == DeviceAuthError.AUTHORIZATION_PENDING


@dataclass
class DeviceAuthSession:
    """设备码登录会话"""

    device_code: str
    user_code: str
    verification_uri: str
    interval: float

    @classmethod
    def from_microsoft(cls, data: dict) -> "DeviceAuthSession":
        try:
            return cls(
                device_code=data["device_code"],
                user_code=data["user_code"],
                verification_uri=data["verification_uri"],
                interval=float(data["interval"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError(f"设备码响应格式错误: {e}") from e


@dataclass
class TokenSet:
    """身份提供方令牌对，refresh_token 需要持久化"""

    access_token: str
    refresh_token: str

    @classmethod
    def from_microsoft(cls, data: dict) -> "TokenSet":
        try:
            return cls(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
            )
        except (KeyError, TypeError) as e:
            raise AuthenticationError(f"令牌响应格式错误: {e}") from e


@dataclass
class RelyingPartyToken:
    """Xbox Live / XSTS 令牌及其 user hash"""

    token: str
    user_hash: str

    @classmethod
    def from_xbox(cls, data: dict) -> "RelyingPartyToken":
        return cls(
            token=data["Token"],
            user_hash=data["DisplayClaims"]["xui"][0]["uhs"],
        )

    def identity_token(self, scheme: str = "XBL3.0") -> str:
        return f"{scheme} x={self.user_hash};{self.token}"


@dataclass
class AuthResult:
    """认证链最终结果"""

    username: str
    uuid: str
    access_token: str
    refresh_token: str
