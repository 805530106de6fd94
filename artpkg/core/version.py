"""版本号与版本约束

- Version: major.minor.patch + 可选的预发布后缀，全序可比较
- VersionConstraint: 精确版本 / 最低版本 两种约束
- VersionedLocation: 磁盘（或注册中心）上的一个具体版本产物
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

from artpkg.core.exceptions import VersionError

_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+)(?:\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?)?"
    r"(?P<extra>(?:[-+]|[A-Za-z])[0-9A-Za-z.+\-]*)?$"
)


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """语义化版本号

    排序规则: 依次比较 major / minor / patch；三者相同时比较 extra，
    空 extra（正式版）排在任何预发布标签之后，即 1.2.3 > 1.2.3-beta。
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    extra: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """解析 "1.4.0" / "1.4.0-beta" / "v2.0" 形式的版本字符串

        Raises:
            VersionError: 格式不合法
        """
        m = _VERSION_RE.match(text.strip())
        # 版本号会作为缓存目录名，后缀中不允许出现 ..
        if m is None or ".." in (m.group("extra") or ""):
            raise VersionError(f"无法解析版本号: {text!r}")
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor") or 0),
            patch=int(m.group("patch") or 0),
            extra=m.group("extra") or "",
        )

    def _sort_key(self) -> tuple[int, int, int, bool, str]:
        return (self.major, self.minor, self.patch, self.extra == "", self.extra)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}{self.extra}"


NO_VERSION = Version()


@dataclass(frozen=True)
class VersionConstraint:
    """版本约束: wants_minimum=False 表示精确匹配，True 表示 ">= version"

    (False, 0.0.0) 是"无约束"的编码，调用方必须通过 is_any 识别，
    不能把它当作"精确要求 0.0.0"。
    """

    wants_minimum: bool = False
    version: Version = NO_VERSION

    @classmethod
    def exact(cls, version: Version | str) -> VersionConstraint:
        if isinstance(version, str):
            version = Version.parse(version)
        return cls(False, version)

    @classmethod
    def minimum(cls, version: Version | str) -> VersionConstraint:
        if isinstance(version, str):
            version = Version.parse(version)
        return cls(True, version)

    @classmethod
    def parse(cls, text: str | None) -> VersionConstraint:
        """解析命令行形式: "" / "1.2.0" / "=1.2.0" / ">=1.2.0" / ">1.2.0" """
        if not text or not text.strip():
            return ANY_VERSION
        s = text.strip()
        for op in (">=", ">"):
            if s.startswith(op):
                return cls.minimum(s[len(op):].strip())
        for op in ("==", "="):
            if s.startswith(op):
                return cls.exact(s[len(op):].strip())
        return cls.exact(s)

    @property
    def is_any(self) -> bool:
        return not self.wants_minimum and self.version == NO_VERSION

    @property
    def is_exact(self) -> bool:
        return not self.wants_minimum and not self.is_any

    def satisfied_by(self, version: Version) -> bool:
        if self.is_any:
            return True
        if self.wants_minimum:
            return version >= self.version
        return version == self.version

    def __str__(self) -> str:
        if self.is_any:
            return "*"
        return f"{'>=' if self.wants_minimum else '='}{self.version}"


ANY_VERSION = VersionConstraint()


@dataclass(frozen=True)
class VersionedLocation:
    """一个具体版本所在的位置；NO_VERSION_LOCATION 为"未找到"哨兵"""

    path: str = ""
    version: Version = NO_VERSION

    def __bool__(self) -> bool:
        return self.path != ""


NO_VERSION_LOCATION = VersionedLocation()
