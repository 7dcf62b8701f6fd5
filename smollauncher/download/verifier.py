"""
文件校验器

实现 SHA1 计算与校验、文件存在性检查。
"""

import hashlib
import os
from typing import Optional


class FileVerifier:
    """文件校验器"""

    @staticmethod
    def sha1_hex(data: bytes) -> str:
        """计算字节内容的 SHA1（小写十六进制）"""
        return hashlib.sha1(data).hexdigest()

    @staticmethod
    def verify_bytes(data: bytes, expected_sha1: Optional[str]) -> bool:
        """
        校验字节内容的 SHA1 是否与预期值完全一致（区分大小写）

        Args:
            data: 下载得到的完整内容
            expected_sha1: 预期的 SHA1 值

        Returns:
            是否匹配（如果没有预期值则返回 True）
        """
        if not expected_sha1:
            return True
        return FileVerifier.sha1_hex(data) == expected_sha1

    @staticmethod
    def exists(file_path: str) -> bool:
        """检查文件是否存在（已存在的文件直接信任，不再校验）"""
        return os.path.exists(file_path)
