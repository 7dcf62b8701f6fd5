"""
CLI 模块

命令行接口实现。
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import click
import toml
import yaml
from loguru import logger

from smollauncher import __version__
from smollauncher.exceptions import (
    AuthenticationError,
    ConfigParseError,
    InstallError,
    LauncherError,
)
from smollauncher.launch import start_game
from smollauncher.logger import setup_logger
from smollauncher.models import DeviceAuthSession, LauncherConfig
from smollauncher.orchestrator import LauncherOrchestrator


def load_config(config_path: Optional[str]) -> dict:
    """加载配置文件，未指定时返回空配置"""
    if config_path is None:
        return {}

    path = Path(config_path)
    suffix = path.suffix.lower()

    try:
        if suffix == ".toml":
            return toml.load(config_path)
        elif suffix == ".json":
            return json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, ValueError, toml.TomlDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(f"无法解析配置文件 {config_path}: {e}") from e

    raise ConfigParseError(f"不支持的配置文件格式: {suffix}")


def echo_device_code(device: DeviceAuthSession):
    """在终端显示设备码"""
    logger.info("[认证] 需要登录微软账户")
    click.echo(f"请在浏览器中打开 {device.verification_uri}")
    click.echo(f"并输入代码: {click.style(device.user_code, bold=True)}")


async def run_async(config: LauncherConfig):
    """异步运行"""
    orchestrator = LauncherOrchestrator(config, notify=echo_device_code)
    context = await orchestrator.run()

    if not config.launch:
        logger.success(f"准备完成: {context.version.id} ({context.auth.username})")
        return

    start_game(config, context.version, context.auth, context.classpath)


@click.command()
@click.argument("config", type=click.Path(exists=True), required=False)
@click.option("--version-id", help="要启动的 Minecraft 版本（默认最新正式版）")
@click.option("--snapshot", is_flag=True, help="使用最新快照版本")
@click.option("--data-dir", type=click.Path(file_okay=False), help="数据目录")
@click.option("--no-launch", is_flag=True, help="只安装和登录，不启动游戏")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
def main(
    config: Optional[str],
    version_id: Optional[str],
    snapshot: bool,
    data_dir: Optional[str],
    no_launch: bool,
    debug: bool,
):
    """smollauncher - 小巧的 Minecraft 启动器"""
    setup_logger(level="DEBUG" if debug else None)

    try:
        options = load_config(config)
        if version_id is not None:
            options["version"] = version_id
        if snapshot:
            options["snapshot"] = True
        if data_dir is not None:
            options["data_dir"] = data_dir
        if no_launch:
            options["launch"] = False

        launcher_config = LauncherConfig.from_dict(options)
        asyncio.run(run_async(launcher_config))

    except AuthenticationError as e:
        logger.error(f"认证失败: {e}")
        raise click.ClickException(str(e))
    except InstallError as e:
        logger.error(f"安装失败: {e}")
        for item in e.context.get("failed", []):
            click.echo(f"  {item['url']} -> {item['path']}", err=True)
        raise click.ClickException(str(e))
    except LauncherError as e:
        logger.error(f"错误: {e}")
        raise click.ClickException(str(e))


if __name__ == "__main__":
    main()
