"""版本选择与本地解析

职责:
- 在候选版本中按约束挑选最佳版本
- 解析本地缓存中满足约束的版本及其描述文档（不触发下载）
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from artpkg.core.pkg.models import PackageSpec
from artpkg.core.pkg.spec import read_spec_file
from artpkg.core.protocols import SpecEvaluator
from artpkg.core.version import NO_VERSION_LOCATION, VersionConstraint, VersionedLocation

if TYPE_CHECKING:
    from artpkg.core.pkg.layout import CacheLayout

logger = logging.getLogger(__name__)


def best_version(
    candidates: Sequence[VersionedLocation], constraint: VersionConstraint,
) -> VersionedLocation:
    """按调用方给定的顺序（通常为降序）线性扫描，返回第一个满足约束的候选

    - 最低版本约束: 降序下即满足下限的最高版本
    - 精确约束: 版本完全相等
    - 无约束: 第一个候选（最高版本）
    - 无匹配: NO_VERSION_LOCATION
    """
    for loc in candidates:
        if constraint.satisfied_by(loc.version):
            return loc
    return NO_VERSION_LOCATION


class PackageResolver:
    """本地解析器 - 仅做本地查找，不触发下载"""

    def __init__(self, layout: CacheLayout, evaluator: SpecEvaluator) -> None:
        self.layout = layout
        self.evaluator = evaluator

    def resolve(
        self, pkg: str, constraint: VersionConstraint,
    ) -> tuple[VersionedLocation, PackageSpec] | None:
        """返回本地满足约束的 (位置, 描述文档)，本地不可用时返回 None

        缓存目录存在但描述文档缺失视为"本地不可用"，由上层重新安装。

        Raises:
            SpecError: 本地描述文档内容非法
        """
        exists, loc = self.layout.package_exists_locally(pkg, constraint)
        if not exists:
            return None

        spec_file = self.layout.spec_file(pkg, loc.version)
        if not spec_file.is_file():
            logger.warning(
                "缓存目录存在但描述文档缺失，视为未安装: %s %s (%s)",
                pkg, loc.version, spec_file,
            )
            return None

        return loc, read_spec_file(self.evaluator, spec_file)

    def read_local_spec(self, pkg: str, constraint: VersionConstraint) -> PackageSpec | None:
        found = self.resolve(pkg, constraint)
        return found[1] if found else None
