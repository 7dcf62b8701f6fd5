"""
微软账户认证服务

微软 OAuth (刷新令牌或设备码) -> Xbox Live -> XSTS -> Minecraft 服务 -> 玩家档案。
刷新令牌和设备码两条路径在取得微软令牌后汇合，共享后续所有步骤。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp
from loguru import logger

from smollauncher.models import (
    AuthResult,
    DeviceAuthError,
    DeviceAuthSession,
    RelyingPartyToken,
    TokenSet,
)
from smollauncher.models.config import APPLICATION_ID
from smollauncher.exceptions import (
    AuthenticationError,
    DeviceFlowError,
    ProfileError,
    RefreshError,
    RelyingPartyError,
    TRANSPORT_ERRORS,
)


SCOPE = "XboxLive.signin offline_access"
DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"


@dataclass
class AuthEndpoints:
    """认证链各步骤的地址"""

    device_code: str = "https://login.microsoftonline.com/consumers/oauth2/v2.0/devicecode"
    token: str = "https://login.microsoftonline.com/consumers/oauth2/v2.0/token"
    xbox: str = "https://user.auth.xboxlive.com/user/authenticate"
    xsts: str = "https://xsts.auth.xboxlive.com/xsts/authorize"
    login: str = "https://api.minecraftservices.com/authentication/login_with_xbox"
    profile: str = "https://api.minecraftservices.com/minecraft/profile"


class AuthState(Enum):
    """认证状态"""

    START = "start"
    REFRESH_ATTEMPT = "refresh_attempt"
    DEVICE_FLOW = "device_flow"
    POLLING = "polling"
    IDENTITY_OBTAINED = "identity_obtained"
    XBOX_EXCHANGE = "xbox_exchange"
    XSTS_EXCHANGE = "xsts_exchange"
    GAME_SERVICE_LOGIN = "game_service_login"
    PROFILE_FETCH = "profile_fetch"
    DONE = "done"
    FAILED = "failed"


Notifier = Callable[[DeviceAuthSession], None]


def log_notifier(device: DeviceAuthSession):
    """默认的设备码提示：写入日志"""
    logger.info(f"[认证] 请打开 {device.verification_uri} 并输入代码 {device.user_code}")


class MicrosoftAuthenticator:
    """微软账户认证链"""

    def __init__(
        self,
        client_id: str = APPLICATION_ID,
        session: Optional[aiohttp.ClientSession] = None,
        notify: Optional[Notifier] = None,
        endpoints: Optional[AuthEndpoints] = None,
    ):
        self.client_id = client_id
        self.notify = notify or log_notifier
        self.endpoints = endpoints or AuthEndpoints()
        self.state = AuthState.START
        self.polls = 0
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _enter(self, state: AuthState):
        logger.debug(f"[认证] {self.state.value} -> {state.value}")
        self.state = state

    async def authenticate(self, refresh_token: Optional[str] = None) -> AuthResult:
        """
        执行完整认证链

        Args:
            refresh_token: 上次保存的刷新令牌，可选

        Returns:
            AuthResult，包含新的刷新令牌

        Raises:
            AuthenticationError: 任何一步终止失败
        """
        try:
            tokens = await self._obtain_identity(refresh_token)
            self._enter(AuthState.IDENTITY_OBTAINED)

            xbl = await self.xbox_exchange(tokens.access_token)
            xsts = await self.xsts_exchange(xbl)
            access_token = await self.game_service_login(xsts)
            username, uuid = await self.fetch_profile(access_token)
        except AuthenticationError as e:
            self._enter(AuthState.FAILED)
            logger.error(f"[认证] 认证失败: {e}")
            raise

        self._enter(AuthState.DONE)
        logger.success(f"[认证] 已登录: {username}")
        return AuthResult(
            username=username,
            uuid=uuid,
            access_token=access_token,
            refresh_token=tokens.refresh_token,
        )

    async def _obtain_identity(self, refresh_token: Optional[str]) -> TokenSet:
        if refresh_token:
            self._enter(AuthState.REFRESH_ATTEMPT)
            try:
                return await self.refresh(refresh_token)
            except RefreshError as e:
                logger.warning(f"[认证] 刷新令牌不可用，改用设备码登录: {e}")
        return await self.device_flow()

    async def _send(
        self, method: str, url: str, **kwargs
    ) -> Tuple[int, Optional[Any]]:
        """发送请求，返回状态码和 JSON（无法解析时为 None）"""
        async with self.session.request(method, url, **kwargs) as response:
            try:
                data = await response.json(content_type=None)
            except ValueError:
                data = None
            return response.status, data

    async def refresh(self, refresh_token: str) -> TokenSet:
        """用刷新令牌换取新的微软令牌对，任何失败都抛出 RefreshError"""
        form = {
            "client_id": self.client_id,
            "scope": SCOPE,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            status, data = await self._send("POST", self.endpoints.token, data=form)
        except TRANSPORT_ERRORS as e:
            raise RefreshError(f"网络错误: {e}") from e

        if status != 200 or not isinstance(data, dict):
            raise RefreshError(f"刷新失败 (状态码: {status})", context=_error_context(data))

        try:
            return TokenSet.from_microsoft(data)
        except AuthenticationError as e:
            raise RefreshError(e.message) from e

    async def device_flow(self) -> TokenSet:
        """请求设备码，提示用户，然后轮询直到授权完成或终止"""
        self._enter(AuthState.DEVICE_FLOW)
        form = {"client_id": self.client_id, "scope": SCOPE}
        try:
            status, data = await self._send(
                "POST", self.endpoints.device_code, data=form
            )
        except TRANSPORT_ERRORS as e:
            raise DeviceFlowError(f"请求设备码失败: {e}") from e

        if status != 200 or not isinstance(data, dict):
            raise DeviceFlowError(
                f"请求设备码失败 (状态码: {status})", context=_error_context(data)
            )

        device = DeviceAuthSession.from_microsoft(data)
        self.notify(device)
        return await self.poll(device)

    async def poll(self, device: DeviceAuthSession) -> TokenSet:
        """
        按服务器给出的间隔轮询令牌。

        只有 authorization_pending 会继续等待；没有客户端超时，
        由服务器返回 expired_token 结束。
        """
        self._enter(AuthState.POLLING)
        form = {
            "grant_type": DEVICE_CODE_GRANT,
            "client_id": self.client_id,
            "device_code": device.device_code,
        }

        while True:
            await asyncio.sleep(device.interval)
            self.polls += 1
            try:
                status, data = await self._send("POST", self.endpoints.token, data=form)
            except TRANSPORT_ERRORS as e:
                raise DeviceFlowError(f"轮询失败: {e}") from e

            if status == 200 and isinstance(data, dict):
                return TokenSet.from_microsoft(data)

            if not isinstance(data, dict) or "error" not in data:
                raise DeviceFlowError(f"轮询失败 (状态码: {status})")

            reason = DeviceAuthError.parse(data["error"])
            if reason.retryable:
                logger.debug("[认证] 等待用户授权...")
                continue

            raise DeviceFlowError(
                f"设备码登录失败: {data['error']}",
                reason=reason,
                context=_error_context(data),
            )

    async def _relying_party(
        self, hop: str, url: str, payload: Dict[str, Any]
    ) -> RelyingPartyToken:
        try:
            status, data = await self._send(
                "POST", url, json=payload, headers={"Accept": "application/json"}
            )
        except TRANSPORT_ERRORS as e:
            raise RelyingPartyError(f"{hop} 认证失败: {e}", context={"hop": hop}) from e

        if status != 200 or not isinstance(data, dict):
            context = {"hop": hop, "status": status}
            if isinstance(data, dict) and "XErr" in data:
                context["xerr"] = data["XErr"]
            raise RelyingPartyError(
                f"{hop} 认证失败 (状态码: {status})", context=context
            )

        try:
            return RelyingPartyToken.from_xbox(data)
        except (KeyError, IndexError, TypeError) as e:
            raise RelyingPartyError(
                f"{hop} 响应格式错误: {e}", context={"hop": hop}
            ) from e

    async def xbox_exchange(self, ms_access_token: str) -> RelyingPartyToken:
        """微软令牌 -> Xbox Live 用户令牌"""
        self._enter(AuthState.XBOX_EXCHANGE)
        return await self._relying_party(
            "xbox",
            self.endpoints.xbox,
            {
                "Properties": {
                    "AuthMethod": "RPS",
                    "SiteName": "user.auth.xboxlive.com",
                    "RpsTicket": f"d={ms_access_token}",
                },
                "RelyingParty": "http://auth.xboxlive.com",
                "TokenType": "JWT",
            },
        )

    async def xsts_exchange(self, xbl: RelyingPartyToken) -> RelyingPartyToken:
        """Xbox Live 用户令牌 -> Minecraft 服务的 XSTS 令牌"""
        self._enter(AuthState.XSTS_EXCHANGE)
        return await self._relying_party(
            "xsts",
            self.endpoints.xsts,
            {
                "Properties": {"SandboxId": "RETAIL", "UserTokens": [xbl.token]},
                "RelyingParty": "rp://api.minecraftservices.com/",
                "TokenType": "JWT",
            },
        )

    async def game_service_login(self, xsts: RelyingPartyToken) -> str:
        """XSTS 令牌 -> Minecraft 访问令牌"""
        self._enter(AuthState.GAME_SERVICE_LOGIN)
        try:
            status, data = await self._send(
                "POST",
                self.endpoints.login,
                json={"identityToken": xsts.identity_token()},
            )
        except TRANSPORT_ERRORS as e:
            raise RelyingPartyError(
                f"Minecraft 登录失败: {e}", context={"hop": "login"}
            ) from e

        if status != 200 or not isinstance(data, dict) or "access_token" not in data:
            raise RelyingPartyError(
                f"Minecraft 登录失败 (状态码: {status})",
                context={"hop": "login", "status": status},
            )
        return data["access_token"]

    async def fetch_profile(self, access_token: str) -> Tuple[str, str]:
        """
        获取玩家档案

        Returns:
            tuple: (用户名, UUID)
        """
        self._enter(AuthState.PROFILE_FETCH)
        try:
            status, data = await self._send(
                "GET",
                self.endpoints.profile,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except TRANSPORT_ERRORS as e:
            raise ProfileError(f"获取玩家档案失败: {e}") from e

        if status == 404:
            raise ProfileError("该账户未拥有 Minecraft", context={"status": status})
        if status != 200 or not isinstance(data, dict):
            raise ProfileError(
                f"获取玩家档案失败 (状态码: {status})", context={"status": status}
            )

        try:
            return data["name"], data["id"]
        except KeyError as e:
            raise ProfileError(f"玩家档案格式错误: 缺少 {e}") from e

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


def _error_context(data: Optional[Any]) -> Dict[str, Any]:
    if isinstance(data, dict):
        return {k: data[k] for k in ("error", "error_description") if k in data}
    return {}
