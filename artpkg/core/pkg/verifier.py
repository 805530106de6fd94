"""依赖校验器

逐个确保依赖声明可用（本地缓存优先，失败则远程安装）。

- 不短路: 某个依赖失败后仍继续处理其余依赖，结果为所有依赖的合取
- 不回滚: 失败前已安装的依赖保留在缓存中，并记录在上下文里
- 环检测: ResolutionContext.chain 记录递归路径，重入即 DependencyCycleError，
  该依赖直接记为失败，不再尝试远程
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from artpkg.core.exceptions import ArtPkgError, DependencyCycleError, InstallError
from artpkg.core.pkg.models import (
    Dependency,
    DependencyFailure,
    ResolutionContext,
    VerificationReport,
)
from artpkg.core.version import VersionConstraint

if TYPE_CHECKING:
    from artpkg.core.pkg.loader import PackageLoader

logger = logging.getLogger(__name__)


class DependencyVerifier:
    """依赖校验器"""

    def __init__(self, loader: PackageLoader) -> None:
        self.loader = loader

    def verify(
        self, deps: Sequence[Dependency], ctx: ResolutionContext | None = None,
    ) -> VerificationReport:
        ctx = ctx or ResolutionContext()
        report = VerificationReport()

        for dep in deps:
            constraint = dep.constraint
            try:
                report.resolved[dep.name] = self.resolve_one(dep.name, constraint, ctx)
                logger.debug("依赖就绪: %s (%s)", dep.name, constraint)
            except ArtPkgError as e:
                logger.warning("依赖无法满足: %s (%s) - %s", dep.name, constraint, e)
                report.failures.append(DependencyFailure(dep.name, constraint, e))
            except OSError as e:
                logger.warning("依赖安装出错: %s (%s) - %s", dep.name, constraint, e)
                report.failures.append(
                    DependencyFailure(dep.name, constraint, InstallError(str(e))),
                )

        if report.failures:
            logger.warning(
                "依赖校验汇总: %d 成功, %d 失败 (%s)",
                len(report.resolved), len(report.failures),
                ", ".join(f.name for f in report.failures),
            )
        return report

    def resolve_one(self, name: str, constraint: VersionConstraint, ctx: ResolutionContext) -> Path:
        """单个依赖: 本地加载，失败则远程加载"""
        try:
            local = self.loader.load_local(name, constraint, ctx)
        except DependencyCycleError:
            raise
        except ArtPkgError as e:
            logger.info("本地包不可用，转为远程拉取: %s (%s) - %s", name, constraint, e)
            local = None

        if local is not None:
            return local
        return self.loader.load_remote(name, constraint, ctx)
