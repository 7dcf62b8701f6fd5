"""
已安装版本记录

在多次运行之间持久化：已安装版本、各版本的 classpath、上次使用的 classpath 和刷新令牌。
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class InstalledVersionsRecord:
    """已安装版本记录"""

    versions: List[str] = field(default_factory=list)
    classpath: Optional[str] = None
    refresh_token: Optional[str] = None
    classpaths: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "InstalledVersionsRecord":
        versions = data.get("versions") or []
        if not isinstance(versions, list):
            raise TypeError("versions 必须为列表")
        classpaths = data.get("classpaths") or {}
        if not isinstance(classpaths, dict):
            raise TypeError("classpaths 必须为对象")
        return cls(
            versions=[str(v) for v in versions],
            classpath=data.get("classpath"),
            refresh_token=data.get("refresh_token"),
            classpaths={str(k): str(v) for k, v in classpaths.items()},
        )

    def to_dict(self) -> dict:
        return {
            "versions": list(self.versions),
            "classpath": self.classpath,
            "refresh_token": self.refresh_token,
            "classpaths": dict(self.classpaths),
        }

    def is_installed(self, version_id: str) -> bool:
        return version_id in self.versions and version_id in self.classpaths

    def classpath_for(self, version_id: str) -> Optional[str]:
        return self.classpaths.get(version_id)

    def mark_installed(self, version_id: str, classpath: str):
        """仅在安装流程成功后调用"""
        if version_id not in self.versions:
            self.versions.append(version_id)
        self.classpaths[version_id] = classpath
        self.classpath = classpath
