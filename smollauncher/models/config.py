"""
配置数据模型

定义启动器配置及其从字典构造的逻辑。
"""

from dataclasses import dataclass, field
from typing import Optional

from platformdirs import user_data_dir

from smollauncher import __version__
from smollauncher.exceptions import ConfigValidationError


APPLICATION_ID = "e8eab6e8-494c-4c9c-a800-2836b8468fda"
DEFAULT_MAX_CONCURRENT = 100


def default_data_dir() -> str:
    return user_data_dir("smol launcher", "piuvas")


@dataclass
class LauncherConfig:
    """启动器配置"""

    data_dir: str = field(default_factory=default_data_dir)
    version: Optional[str] = None
    snapshot: bool = False
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    client_id: str = APPLICATION_ID
    java: str = "java"
    user_agent: str = f"smollauncher/{__version__}"
    launch: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "LauncherConfig":
        """
        从配置字典创建配置对象，未知键会被忽略。

        Raises:
            ConfigValidationError: 字段类型或取值无效
        """
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        config = cls(**known)
        config.validate()
        return config

    def validate(self):
        """验证配置"""
        if not isinstance(self.max_concurrent, int) or self.max_concurrent <= 0:
            raise ConfigValidationError(
                "max_concurrent 必须为正整数",
                context={"max_concurrent": self.max_concurrent},
            )

        if self.version is not None and not isinstance(self.version, str):
            raise ConfigValidationError("version 必须为字符串")

        if not self.data_dir:
            raise ConfigValidationError("data_dir 不能为空")
