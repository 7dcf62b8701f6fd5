import asyncio

import aiohttp
import pytest

from smollauncher.exceptions import (
    AuthenticationError,
    DeviceFlowError,
    ProfileError,
    RefreshError,
    RelyingPartyError,
)
from smollauncher.models import DeviceAuthError
from smollauncher.services import AuthEndpoints, AuthState, MicrosoftAuthenticator

from helpers import PENDING, SUCCESS, AuthFake, serve_auth


def _runner(fake, refresh_token=None):
    """返回 (协程函数, 保存认证器的字典, 收到的设备码提示)"""
    notified = []
    holder = {}

    async def run():
        async with serve_auth(fake):
            async with aiohttp.ClientSession() as session:
                holder["auth"] = MicrosoftAuthenticator(
                    client_id="client-id",
                    session=session,
                    notify=notified.append,
                    endpoints=fake.endpoints,
                )
                return await holder["auth"].authenticate(refresh_token)

    return run, holder, notified


def _authenticate(fake, refresh_token=None):
    run, holder, notified = _runner(fake, refresh_token)
    result = asyncio.run(run())
    return result, holder["auth"], notified

def test_device_flow_polls_until_authorized():
    fake = AuthFake(poll_script=[PENDING, PENDING, PENDING, SUCCESS])
    result, auth, notified = _authenticate(fake)

    assert fake.hits["poll"] == 4
    assert auth.polls == 4
    assert auth.state == AuthState.DONE
    assert result.username == "Steve"
    assert result.uuid == "uuid-1"
    assert result.access_token == "mc-access"
    assert result.refresh_token == "ms-refresh"

    # 设备码只提示一次
    assert len(notified) == 1
    assert notified[0].user_code == "ABCD-EFGH"
    assert fake.requests["devicecode"] == {
        "client_id": "client-id",
        "scope": "XboxLive.signin offline_access",
    }
    assert fake.requests["poll"]["device_code"] == "device-123"
    assert fake.requests["poll"]["grant_type"] == "urn:ietf:params:oauth:grant-type:device_code"


def test_relying_party_chain_payloads():
    fake = AuthFake(poll_script=[SUCCESS])
    _authenticate(fake)

    assert fake.requests["xbox"] == {
        "Properties": {
            "AuthMethod": "RPS",
            "SiteName": "user.auth.xboxlive.com",
            "RpsTicket": "d=ms-access",
        },
        "RelyingParty": "http://auth.xboxlive.com",
        "TokenType": "JWT",
    }
    assert fake.requests["xsts"] == {
        "Properties": {"SandboxId": "RETAIL", "UserTokens": ["xbl-token"]},
        "RelyingParty": "rp://api.minecraftservices.com/",
        "TokenType": "JWT",
    }
    assert fake.requests["login"] == {"identityToken": "XBL3.0 x=uhs-1;xsts-token"}
    assert fake.requests["profile"] == "Bearer mc-access"


def test_refresh_token_skips_device_flow():
    fake = AuthFake()
    result, auth, notified = _authenticate(fake, refresh_token="stored-refresh")

    assert fake.hits["refresh"] == 1
    assert fake.hits["devicecode"] == 0
    assert fake.hits["poll"] == 0
    assert notified == []
    assert fake.requests["refresh"]["refresh_token"] == "stored-refresh"
    assert fake.requests["xbox"]["Properties"]["RpsTicket"] == "d=ms-access-refreshed"
    assert result.refresh_token == "ms-refresh-2"


def test_rejected_refresh_falls_back_to_device_flow():
    fake = AuthFake(poll_script=[PENDING, SUCCESS], refresh_ok=False)
    result, auth, notified = _authenticate(fake, refresh_token="revoked")

    assert fake.hits["refresh"] == 1
    assert fake.hits["devicecode"] == 1
    assert fake.hits["poll"] == 2
    assert fake.hits["profile"] == 1
    assert len(notified) == 1
    assert auth.state == AuthState.DONE
    assert result.refresh_token == "ms-refresh"


def test_unreachable_refresh_raises_refresh_error():

    async def run():
        async with aiohttp.ClientSession() as session:
            auth = MicrosoftAuthenticator(
                session=session,
                endpoints=AuthEndpoints(token="http://127.0.0.1:1/token"),
            )
            await auth.refresh("stored")

    with pytest.raises(RefreshError):
        asyncio.run(run())


@pytest.mark.parametrize(
    "error",
    ["authorization_declined", "bad_verification_code", "expired_token"],
)
def test_terminal_device_flow_errors(error):
    fake = AuthFake(poll_script=[PENDING, (400, {"error": error})])
    run, holder, notified = _runner(fake)

    with pytest.raises(DeviceFlowError) as info:
        asyncio.run(run())

    assert info.value.reason == DeviceAuthError(error)
    assert fake.hits["poll"] == 2
    assert fake.hits["xbox"] == 0
    assert holder["auth"].state == AuthState.FAILED


def test_unknown_device_flow_error_fails_closed():
    fake = AuthFake(poll_script=[(400, {"error": "something_new"})])
    run, holder, notified = _runner(fake)

    with pytest.raises(DeviceFlowError) as info:
        asyncio.run(run())
    assert info.value.reason == DeviceAuthError.UNKNOWN
    assert fake.hits["poll"] == 1


def test_unstructured_poll_failure_is_terminal():
    fake = AuthFake(poll_script=[(500, {})])
    run, holder, notified = _runner(fake)

    with pytest.raises(DeviceFlowError):
        asyncio.run(run())


def test_xsts_failure_is_terminal():
    fake = AuthFake(poll_script=[SUCCESS], xsts_status=401)
    run, holder, notified = _runner(fake)

    with pytest.raises(RelyingPartyError) as info:
        asyncio.run(run())
    assert info.value.context["hop"] == "xsts"
    assert info.value.context["xerr"] == 2148916233
    assert fake.hits["xsts"] == 1
    assert fake.hits["login"] == 0


def test_profile_not_found():
    fake = AuthFake(poll_script=[SUCCESS], profile_status=404)
    run, holder, notified = _runner(fake)

    with pytest.raises(ProfileError) as info:
        asyncio.run(run())
    assert isinstance(info.value, AuthenticationError)
    assert fake.hits["profile"] == 1
