"""
平台规则匹配服务

根据库文件的系统规则判断是否适用于当前平台。
"""

from typing import Iterable, List, Optional

from smollauncher.models import LibraryEntry, OsFamily


class PlatformMatcher:
    """平台匹配器"""

    def __init__(self, os_family: Optional[OsFamily] = None):
        self.os_family = os_family or OsFamily.current()

    @property
    def classpath_separator(self) -> str:
        return self.os_family.classpath_separator

    def matches(self, library: LibraryEntry) -> bool:
        """
        检查库文件是否适用于当前平台

        没有规则的库文件适用于所有平台。有规则时按顺序检查：系统不符的规则忽略，
        命中 disallow 立即排除，至少命中一条 allow 才适用。
        """
        if not library.rules:
            return True

        allowed = False
        for rule in library.rules:
            if rule.os is not None and rule.os != self.os_family:
                continue
            if not rule.allow:
                return False
            allowed = True
        return allowed

    def filter(self, libraries: Iterable[LibraryEntry]) -> List[LibraryEntry]:
        return [library for library in libraries if self.matches(library)]
