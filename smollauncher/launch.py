"""
游戏启动

构造 java 命令行并启动游戏进程。
"""

import os
import subprocess
from typing import List, Optional

from loguru import logger

from smollauncher import __version__
from smollauncher.models import AuthResult, LauncherConfig, OsFamily, VersionDescriptor


MAIN_CLASS = "net.minecraft.client.main.Main"


def game_dir(data_dir: str) -> str:
    return os.path.join(data_dir, ".minecraft")


def build_command(
    config: LauncherConfig,
    descriptor: VersionDescriptor,
    auth: AuthResult,
    classpath: str,
    os_family: Optional[OsFamily] = None,
) -> List[str]:
    """构造启动命令"""
    os_family = os_family or OsFamily.current()
    data_dir = config.data_dir

    command = [
        config.java,
        f"-Djava.library.path={os.path.join(data_dir, 'libraries')}",
        "-Dminecraft.launcher.brand=smol.",
        f"-Dminecraft.launcher.version={__version__}",
        "-cp",
        classpath,
    ]

    if os_family == OsFamily.OSX:
        command.append("-XstartOnFirstThread")
    elif os_family == OsFamily.WINDOWS:
        command.extend(["-Dos.name=Windows 10", "-Dos.version=10.0"])

    command.append(MAIN_CLASS)
    command.extend(
        [
            "--username", auth.username,
            "--version", descriptor.id,
            "--gameDir", game_dir(data_dir),
            "--assetsDir", os.path.join(data_dir, "assets"),
            "--assetIndex", descriptor.id,
            "--uuid", auth.uuid,
            "--accessToken", auth.access_token,
            "--userType", "msa",
            "--versionType", "snapshot" if descriptor.type == "snapshot" else "release",
        ]
    )
    return command


def start_game(
    config: LauncherConfig,
    descriptor: VersionDescriptor,
    auth: AuthResult,
    classpath: str,
) -> subprocess.Popen:
    """创建游戏目录并启动进程"""
    cwd = game_dir(config.data_dir)
    os.makedirs(cwd, exist_ok=True)

    command = build_command(config, descriptor, auth, classpath)
    logger.info(f"[启动] 正在启动 Minecraft {descriptor.id}...")
    return subprocess.Popen(command, cwd=cwd)
