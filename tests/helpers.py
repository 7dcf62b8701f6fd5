"""
测试辅助：本地 aiohttp 服务器模拟 Mojang 与微软的接口
"""

import hashlib
import json
from collections import Counter
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

from aiohttp import web
from aiohttp.test_utils import TestServer

from smollauncher.services import AuthEndpoints


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


@asynccontextmanager
async def serve(app: web.Application):
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


class FileServer:
    """按路径返回静态内容的服务器，记录每个路径的请求次数"""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.hits: Counter = Counter()
        self.app = web.Application()
        self.app.router.add_get("/{tail:.*}", self._handle)
        self.base = ""

    async def _handle(self, request: web.Request) -> web.Response:
        path = request.path
        self.hits[path] += 1
        if path not in self.files:
            return web.Response(status=404)
        return web.Response(body=self.files[path])

    def add(self, path: str, data: bytes) -> str:
        self.files[path] = data
        return self.base + path

    def add_json(self, path: str, data: dict) -> str:
        return self.add(path, json.dumps(data).encode())

    def fetches(self, prefix: str) -> int:
        return sum(n for p, n in self.hits.items() if p.startswith(prefix))


class MojangFake(FileServer):
    """
    模拟版本目录、版本清单、资源索引和文件下载。

    在 serve_files() 内调用 publish_version() 生成各文件。
    """

    def publish_version(
        self,
        version_id: str,
        libraries: List[Tuple[str, bytes, Optional[str]]],
        client: bytes,
        assets: Optional[Dict[str, bytes]] = None,
        bad_sha1: Tuple[str, ...] = (),
    ):
        """
        Args:
            libraries: (相对路径, 内容, 系统规则) 列表
            client: 客户端 jar 内容
            assets: 资源名 -> 内容
            bad_sha1: 声明错误 SHA1 的库文件路径，"client" 表示客户端
        """
        lib_entries = []
        for rel_path, data, os_name in libraries:
            url = self.add(f"/libraries/{rel_path}", data)
            digest = "0" * 40 if rel_path in bad_sha1 else sha1(data)
            entry = {
                "name": rel_path,
                "downloads": {
                    "artifact": {"path": rel_path, "url": url, "sha1": digest}
                },
            }
            if os_name:
                entry["rules"] = [{"action": "allow", "os": {"name": os_name}}]
            lib_entries.append(entry)

        objects = {}
        for name, data in (assets or {}).items():
            digest = sha1(data)
            self.add(f"/resources/{digest[:2]}/{digest}", data)
            objects[name] = {"hash": digest, "size": len(data)}
        index_raw = json.dumps({"objects": objects}).encode()
        index_url = self.add(f"/indexes/{version_id}.json", index_raw)

        client_sha1 = "0" * 40 if "client" in bad_sha1 else sha1(client)
        client_url = self.add(f"/client/{version_id}.jar", client)

        manifest_url = self.add_json(
            f"/versions/{version_id}.json",
            {
                "id": version_id,
                "libraries": lib_entries,
                "downloads": {"client": {"url": client_url, "sha1": client_sha1}},
                "assetIndex": {
                    "id": version_id,
                    "url": index_url,
                    "sha1": sha1(index_raw),
                },
            },
        )

        self.add_json(
            "/catalog.json",
            {
                "latest": {"release": version_id, "snapshot": version_id},
                "versions": [{"id": version_id, "type": "release", "url": manifest_url}],
            },
        )
        return manifest_url

    @property
    def catalog_url(self) -> str:
        return self.base + "/catalog.json"

    @property
    def resources_url(self) -> str:
        return self.base + "/resources"


@asynccontextmanager
async def serve_files(fake: FileServer):
    async with serve(fake.app) as server:
        fake.base = f"http://{server.host}:{server.port}"
        yield fake


class AuthFake:
    """
    模拟微软 / Xbox / Minecraft 服务。

    poll_script 中的每一项是一次轮询的响应：(状态码, JSON)。
    """

    def __init__(
        self,
        poll_script: Optional[List[Tuple[int, dict]]] = None,
        refresh_ok: bool = True,
        xsts_status: int = 200,
        profile_status: int = 200,
    ):
        self.poll_script = list(poll_script or [])
        self.refresh_ok = refresh_ok
        self.xsts_status = xsts_status
        self.profile_status = profile_status
        self.hits: Counter = Counter()
        self.requests: Dict[str, object] = {}
        self.base = ""

        self.app = web.Application()
        self.app.router.add_post("/devicecode", self._devicecode)
        self.app.router.add_post("/token", self._token)
        self.app.router.add_post("/xbox", self._xbox)
        self.app.router.add_post("/xsts", self._xsts)
        self.app.router.add_post("/login", self._login)
        self.app.router.add_get("/profile", self._profile)

    @property
    def endpoints(self) -> AuthEndpoints:
        return AuthEndpoints(
            device_code=self.base + "/devicecode",
            token=self.base + "/token",
            xbox=self.base + "/xbox",
            xsts=self.base + "/xsts",
            login=self.base + "/login",
            profile=self.base + "/profile",
        )

    async def _devicecode(self, request: web.Request) -> web.Response:
        self.hits["devicecode"] += 1
        self.requests["devicecode"] = dict(await request.post())
        return web.json_response(
            {
                "device_code": "device-123",
                "user_code": "ABCD-EFGH",
                "verification_uri": "https://microsoft.com/link",
                "interval": 0,
                "expires_in": 900,
            }
        )

    async def _token(self, request: web.Request) -> web.Response:
        form = dict(await request.post())
        if form.get("grant_type") == "refresh_token":
            self.hits["refresh"] += 1
            self.requests["refresh"] = form
            if not self.refresh_ok:
                return web.json_response(
                    {"error": "invalid_grant", "error_description": "revoked"},
                    status=400,
                )
            return web.json_response(
                {"access_token": "ms-access-refreshed", "refresh_token": "ms-refresh-2"}
            )

        self.hits["poll"] += 1
        self.requests["poll"] = form
        status, body = self.poll_script.pop(0)
        return web.json_response(body, status=status)

    async def _xbox(self, request: web.Request) -> web.Response:
        self.hits["xbox"] += 1
        self.requests["xbox"] = await request.json()
        return web.json_response(
            {"Token": "xbl-token", "DisplayClaims": {"xui": [{"uhs": "uhs-1"}]}}
        )

    async def _xsts(self, request: web.Request) -> web.Response:
        self.hits["xsts"] += 1
        self.requests["xsts"] = await request.json()
        if self.xsts_status != 200:
            return web.json_response(
                {"XErr": 2148916233, "Message": ""}, status=self.xsts_status
            )
        return web.json_response(
            {"Token": "xsts-token", "DisplayClaims": {"xui": [{"uhs": "uhs-1"}]}}
        )

    async def _login(self, request: web.Request) -> web.Response:
        self.hits["login"] += 1
        self.requests["login"] = await request.json()
        return web.json_response({"access_token": "mc-access", "expires_in": 86400})

    async def _profile(self, request: web.Request) -> web.Response:
        self.hits["profile"] += 1
        self.requests["profile"] = request.headers.get("Authorization")
        if self.profile_status != 200:
            return web.json_response({"error": "NOT_FOUND"}, status=self.profile_status)
        return web.json_response({"id": "uuid-1", "name": "Steve"})


@asynccontextmanager
async def serve_auth(fake: AuthFake):
    async with serve(fake.app) as server:
        fake.base = f"http://{server.host}:{server.port}"
        yield fake


PENDING = (400, {"error": "authorization_pending"})
SUCCESS = (200, {"access_token": "ms-access", "refresh_token": "ms-refresh"})
