"""包管理器

把缓存布局、本地解析、远程拉取、依赖校验、入口推导和五阶段定位组装在一起，
对运行时和 CLI 暴露统一入口。

用法:
    from artpkg.core.pkg_manager import PkgManager
    from artpkg.core.version import VersionConstraint

    pm = PkgManager()
    res = pm.locate("grafito", VersionConstraint.minimum("1.2.0"))
    if res:
        run(res.path)
    else:
        print(res.describe())

    # 仅本地查询（不下载）
    versions = pm.list_local_versions("grafito")
"""

from __future__ import annotations

import logging
from pathlib import Path

from artpkg.core.config import Config, get_config
from artpkg.core.exceptions import ArtPkgError
from artpkg.core.pkg.archive import ZipExtractor
from artpkg.core.pkg.entry import EntryPointDeriver
from artpkg.core.pkg.evaluator import YamlSpecEvaluator
from artpkg.core.pkg.fetcher import PackageFetcher
from artpkg.core.pkg.layout import CacheLayout
from artpkg.core.pkg.loader import PackageLoader
from artpkg.core.pkg.locator import PackageLocator, default_strategies
from artpkg.core.pkg.models import (
    Dependency,
    PackageSpec,
    Resolution,
    ResolutionContext,
    VerificationReport,
)
from artpkg.core.pkg.resolver import PackageResolver
from artpkg.core.protocols import ArchiveExtractor, SpecEvaluator
from artpkg.core.version import ANY_VERSION, Version, VersionConstraint, VersionedLocation

logger = logging.getLogger(__name__)


class PkgManager:
    """包管理器门面"""

    def __init__(
        self,
        config: Config | None = None,
        evaluator: SpecEvaluator | None = None,
        extractor: ArchiveExtractor | None = None,
    ) -> None:
        self.config = config or get_config()
        cfg = self.config
        self.evaluator = evaluator or YamlSpecEvaluator()

        self.layout = CacheLayout(cfg.packages_dir, cfg.source_ext)
        self.resolver = PackageResolver(self.layout, self.evaluator)
        self.fetcher = PackageFetcher(
            self.layout, self.evaluator, extractor or ZipExtractor(),
            registry_domain=cfg.registry_domain,
            request_timeout=cfg.request_timeout,
            lock_timeout=cfg.lock_timeout,
            lock_stale_seconds=cfg.lock_stale_seconds,
            repo_archive_branch=cfg.repo_archive_branch,
        )
        self.deriver = EntryPointDeriver(
            self.evaluator,
            source_ext=cfg.source_ext,
            default_entry=cfg.default_entry,
            info_file=cfg.info_file,
        )
        self.loader = PackageLoader(self.resolver, self.fetcher, self.deriver)
        self.locator = PackageLocator(default_strategies(self.loader, source_ext=cfg.source_ext))

    # ------------------------------------------------------------------
    # 定位 / 安装 / 校验
    # ------------------------------------------------------------------

    def locate(
        self,
        reference: str,
        constraint: VersionConstraint = ANY_VERSION,
        want_latest: bool = False,
    ) -> Resolution:
        """按五阶段把引用解析为入口文件，失败信息在 Resolution 中"""
        return self.locator.locate(reference, constraint, want_latest)

    def install(self, pkg: str, constraint: VersionConstraint = ANY_VERSION) -> bool:
        """从注册中心安装（含依赖），成功返回 True；已安装视为成功"""
        try:
            self.loader.load_remote(pkg, constraint, ResolutionContext())
        except (ArtPkgError, OSError) as e:
            logger.error("安装失败: %s (%s) - %s", pkg, constraint, e)
            return False
        return True

    def verify(self, deps: list[Dependency]) -> VerificationReport:
        """确保一组依赖声明全部可用（不短路）"""
        return self.loader.verifier.verify(deps, ResolutionContext())

    def derive_entry_point(self, folder: str | Path) -> Path:
        return self.deriver.derive(folder)

    # ------------------------------------------------------------------
    # 本地查询（不下载）
    # ------------------------------------------------------------------

    def list_local_versions(self, pkg: str) -> list[VersionedLocation]:
        return self.layout.list_local_versions(pkg)

    def package_exists_locally(
        self, pkg: str, constraint: VersionConstraint = ANY_VERSION,
    ) -> tuple[bool, VersionedLocation]:
        return self.layout.package_exists_locally(pkg, constraint)

    def list_packages(self) -> dict[str, list[Version]]:
        return self.layout.list_packages()

    def read_local_spec(
        self, pkg: str, constraint: VersionConstraint = ANY_VERSION,
    ) -> PackageSpec | None:
        return self.resolver.read_local_spec(pkg, constraint)

    def clean_scratch(self) -> int:
        return self.layout.clean_scratch()
