"""
持久化记录读写

data.json 保存已安装版本、上次的 classpath 和刷新令牌。写入采用临时文件替换，保证原子性。
"""

import json
import os

import aiofiles
from loguru import logger

from smollauncher.models import InstalledVersionsRecord


RECORD_FILENAME = "data.json"


def record_path(data_dir: str) -> str:
    return os.path.join(data_dir, RECORD_FILENAME)


async def load_record(path: str) -> InstalledVersionsRecord:
    """读取记录，文件不存在或损坏时返回空记录"""
    if not os.path.exists(path):
        logger.debug(f"[记录] {path} 不存在，视为首次运行")
        return InstalledVersionsRecord()

    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            data = json.loads(await f.read())
        return InstalledVersionsRecord.from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"[记录] 无法读取 {path}，将重新开始: {e}")
        return InstalledVersionsRecord()


async def save_record(path: str, record: InstalledVersionsRecord):
    """原子写入记录"""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.tmp"
    async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(record.to_dict(), indent=2))
    os.replace(tmp_path, path)
    logger.debug(f"[记录] 已写入 {path}")
