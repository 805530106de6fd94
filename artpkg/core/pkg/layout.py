"""本地缓存目录布局

目录规则 (packages_dir 下):
  specs/<pkg>/<version>.art   原始描述文档
  cache/<pkg>/<version>/      解压后的源码树
  tmp/                        进行中的下载 / 解压（每次操作唯一路径）
  tmp/<repo>@<owner>/         代码仓地址简写的检出目录
  locks/<key>.lock            安装锁

布局只追加：安装新版本不会删除已有版本。文件系统即唯一事实来源，
不在内存中维护注册表。
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from artpkg.core.exceptions import ValidationError, VersionError
from artpkg.core.pkg.resolver import best_version
from artpkg.core.version import Version, VersionConstraint, VersionedLocation

logger = logging.getLogger(__name__)

_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]*$")


def validate_package_name(name: str) -> str:
    """包名会直接拼进路径和域名，只允许安全字符"""
    if not _SAFE_NAME_RE.match(name) or ".." in name:
        raise ValidationError(f"包名包含非法字符: {name!r}")
    return name


def version_segment(version: Version) -> str:
    """版本号作为目录 / 文件名使用前的检查，拒绝路径分隔符与 .."""
    text = str(version)
    if "/" in text or "\\" in text or ".." in text:
        raise ValidationError(f"版本号不能用作缓存路径: {text!r}")
    return text


class CacheLayout:
    """缓存目录布局 - 只做路径计算与目录扫描"""

    def __init__(self, root: str | Path, source_ext: str = ".art") -> None:
        self.root = Path(root)
        self.source_ext = source_ext

    @property
    def specs_dir(self) -> Path:
        return self.root / "specs"

    @property
    def cache_root(self) -> Path:
        return self.root / "cache"

    @property
    def tmp_dir(self) -> Path:
        return self.root / "tmp"

    @property
    def locks_dir(self) -> Path:
        return self.root / "locks"

    def spec_file(self, pkg: str, version: Version) -> Path:
        name = f"{version_segment(version)}{self.source_ext}"
        return self.specs_dir / validate_package_name(pkg) / name

    def package_dir(self, pkg: str) -> Path:
        return self.cache_root / validate_package_name(pkg)

    def version_dir(self, pkg: str, version: Version) -> Path:
        return self.package_dir(pkg) / version_segment(version)

    def repo_dir(self, owner: str, repo: str) -> Path:
        return self.tmp_dir / f"{repo}@{owner}"

    def list_local_versions(self, pkg: str) -> list[VersionedLocation]:
        """列出包在缓存中的所有版本，按版本号降序

        子目录名无法解析为版本号（如 latest）或以 . 开头时跳过，
        不影响其余版本的可见性。
        """
        base = self.package_dir(pkg)
        if not base.is_dir():
            return []

        found: list[VersionedLocation] = []
        for d in base.iterdir():
            if not d.is_dir() or d.name.startswith("."):
                continue
            try:
                version = Version.parse(d.name)
            except VersionError:
                logger.debug("跳过无法识别的缓存目录: %s", d)
                continue
            found.append(VersionedLocation(str(d), version))

        return sorted(found, key=lambda loc: loc.version, reverse=True)

    def package_exists_locally(
        self, pkg: str, constraint: VersionConstraint,
    ) -> tuple[bool, VersionedLocation]:
        """缓存中是否有满足约束的版本"""
        got = best_version(self.list_local_versions(pkg), constraint)
        return bool(got), got

    def list_packages(self) -> dict[str, list[Version]]:
        """列出缓存中所有包及其版本（降序）"""
        if not self.cache_root.is_dir():
            return {}
        result: dict[str, list[Version]] = {}
        for d in sorted(self.cache_root.iterdir()):
            if not d.is_dir() or not _SAFE_NAME_RE.match(d.name):
                continue
            versions = [loc.version for loc in self.list_local_versions(d.name)]
            if versions:
                result[d.name] = versions
        return result

    def clean_scratch(self) -> int:
        """清理 tmp/ 下失败操作遗留的临时文件，保留代码仓检出目录"""
        if not self.tmp_dir.is_dir():
            return 0
        removed = 0
        for entry in self.tmp_dir.iterdir():
            if "@" in entry.name and entry.is_dir():
                continue
            if entry.is_dir():
                shutil.rmtree(entry, ignore_errors=True)
            else:
                entry.unlink(missing_ok=True)
            removed += 1
        logger.info("已清理临时文件 %d 个: %s", removed, self.tmp_dir)
        return removed
