"""
smollauncher 下载层

包含下载管理、并发控制、单文件下载和 SHA1 校验。
"""

from smollauncher.download.fetcher import ArtifactFetcher, FetchTask
from smollauncher.download.limiter import ConcurrencyLimiter
from smollauncher.download.manager import DownloadManager, DownloadStats
from smollauncher.download.verifier import FileVerifier

__all__ = [
    "ArtifactFetcher",
    "FetchTask",
    "ConcurrencyLimiter",
    "DownloadManager",
    "DownloadStats",
    "FileVerifier",
]
