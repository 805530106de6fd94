"""包加载器 - 本地缓存加载 + 远程安装回退

load_local / load_remote / 依赖校验三者互相递归:
  load_local  -> 校验依赖 -> (依赖的) load_local / load_remote
  load_remote -> 校验依赖 -> 安装 -> load_local
"""

from __future__ import annotations

import logging
from pathlib import Path

from artpkg.core.exceptions import (
    DependencyCycleError,
    DependencyError,
    EntryPointError,
    InstallError,
)
from artpkg.core.pkg.entry import EntryPointDeriver
from artpkg.core.pkg.fetcher import PackageFetcher
from artpkg.core.pkg.models import InstalledPackage, PackageSpec, ResolutionContext
from artpkg.core.pkg.resolver import PackageResolver
from artpkg.core.pkg.verifier import DependencyVerifier
from artpkg.core.version import Version, VersionConstraint

logger = logging.getLogger(__name__)


class PackageLoader:
    """本地优先 + 远程回退的包加载器"""

    def __init__(
        self,
        resolver: PackageResolver,
        fetcher: PackageFetcher,
        deriver: EntryPointDeriver,
    ) -> None:
        self.resolver = resolver
        self.fetcher = fetcher
        self.deriver = deriver
        self.verifier = DependencyVerifier(self)
        if deriver.verify is None:
            deriver.verify = self.verifier.verify

    def load_local(
        self, pkg: str, constraint: VersionConstraint, ctx: ResolutionContext,
    ) -> Path | None:
        """从缓存加载，返回入口文件；缓存中无满足约束的版本时返回 None

        Raises:
            SpecError: 本地描述文档非法
            DependencyError / DependencyCycleError: 依赖无法满足
            EntryPointError: 描述文档声明的入口文件不存在
        """
        found = self.resolver.resolve(pkg, constraint)
        if found is None:
            return None
        loc, spec = found

        with ctx.entering(pkg, loc.version):
            logger.info("加载本地包: %s %s", pkg, loc.version)
            self._require_dependencies(pkg, loc.version, spec, ctx)

        entry = self.deriver.entry_file(Path(loc.path), spec.entry)
        if not entry.is_file():
            raise EntryPointError(f"包 {pkg} {loc.version} 的入口文件不存在: {entry}")
        return entry

    def load_remote(
        self, pkg: str, constraint: VersionConstraint, ctx: ResolutionContext,
    ) -> Path:
        """从注册中心安装后按本地路径加载，返回入口文件

        依赖无法满足时不安装该包。

        Raises:
            NotFoundError / FetchError / SpecError / DependencyError / InstallError
        """
        fetched = self.fetcher.fetch_spec(pkg, constraint)

        with ctx.entering(pkg, fetched.version):
            self._require_dependencies(pkg, fetched.version, fetched.spec, ctx)
            path, fresh = self.fetcher.install(fetched)

        if fresh:
            ctx.installed.append(InstalledPackage(pkg, fetched.version, path))

        entry = self.load_local(pkg, VersionConstraint.exact(fetched.version), ctx)
        if entry is None:
            raise InstallError(f"安装后缓存中仍找不到: {pkg} {fetched.version}")
        return entry

    def load(
        self,
        pkg: str,
        constraint: VersionConstraint,
        ctx: ResolutionContext,
        *,
        want_latest: bool = False,
    ) -> Path:
        """本地加载，未命中时远程加载；want_latest 时跳过本地缓存"""
        if not want_latest:
            entry = self.load_local(pkg, constraint, ctx)
            if entry is not None:
                return entry
        return self.load_remote(pkg, constraint, ctx)

    def _require_dependencies(
        self, pkg: str, version: Version, spec: PackageSpec, ctx: ResolutionContext,
    ) -> None:
        if not spec.depends:
            return
        report = self.verifier.verify(spec.depends, ctx)
        if report:
            return
        # 环错误原样上抛
        for failure in report.failures:
            if isinstance(failure.error, DependencyCycleError):
                raise failure.error
        raise DependencyError(
            f"包 {pkg} {version} 的依赖无法满足: {report.summary()}", report,
        )
