"""包定位器 - 按固定顺序尝试各解析阶段

阶段顺序（首个成功者胜出）:
  1. local-file       引用本身（或追加扩展名后）是文件
  2. local-folder     引用是目录，按入口文件推导
  3. repository       引用是代码仓 URL，拉取归档后按入口文件推导
  4. local-cache      本地缓存（want_latest 时跳过）
  5. remote-registry  注册中心安装

阶段返回 None 表示"不适用"，抛出 ArtPkgError 表示"适用但失败"。
失败不会中断后续阶段；全部不成功时返回首个失败原因，
没有任何阶段适用时返回 NotFoundError。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from artpkg.core.exceptions import ArtPkgError, InstallError, NotFoundError, ValidationError
from artpkg.core.pkg.entry import EntryPointDeriver
from artpkg.core.pkg.fetcher import PackageFetcher
from artpkg.core.pkg.layout import validate_package_name
from artpkg.core.pkg.loader import PackageLoader
from artpkg.core.pkg.models import Resolution, ResolutionContext
from artpkg.core.version import ANY_VERSION, VersionConstraint
from artpkg.utils import net

logger = logging.getLogger(__name__)


class ResolutionStrategy(Protocol):
    """单个解析阶段"""

    name: str

    def resolve(
        self, reference: str, constraint: VersionConstraint,
        want_latest: bool, ctx: ResolutionContext,
    ) -> Path | None: ...


class LocalFileStrategy:
    name = "local-file"

    def __init__(self, source_ext: str = ".art") -> None:
        self.source_ext = source_ext

    def resolve(self, reference, constraint, want_latest, ctx):
        for candidate in (Path(reference), Path(reference + self.source_ext)):
            if candidate.is_file():
                return candidate
        return None


class LocalFolderStrategy:
    name = "local-folder"

    def __init__(self, deriver: EntryPointDeriver) -> None:
        self.deriver = deriver

    def resolve(self, reference, constraint, want_latest, ctx):
        folder = Path(reference)
        if not folder.is_dir():
            return None
        return self.deriver.derive(folder, ctx)


class RepositoryUrlStrategy:
    name = "repository"

    def __init__(self, fetcher: PackageFetcher, deriver: EntryPointDeriver) -> None:
        self.fetcher = fetcher
        self.deriver = deriver

    def resolve(self, reference, constraint, want_latest, ctx):
        if not net.is_url(reference):
            return None
        folder = self.fetcher.fetch_repo(reference, refresh=want_latest)
        return self.deriver.derive(folder, ctx)


class LocalCacheStrategy:
    name = "local-cache"

    def __init__(self, loader: PackageLoader) -> None:
        self.loader = loader

    def resolve(self, reference, constraint, want_latest, ctx):
        if want_latest or not _is_package_name(reference):
            return None
        return self.loader.load_local(reference, constraint, ctx)


class RemoteRegistryStrategy:
    name = "remote-registry"

    def __init__(self, loader: PackageLoader) -> None:
        self.loader = loader

    def resolve(self, reference, constraint, want_latest, ctx):
        if not _is_package_name(reference):
            return None
        return self.loader.load_remote(reference, constraint, ctx)


def _is_package_name(reference: str) -> bool:
    try:
        validate_package_name(reference)
    except ValidationError:
        return False
    return True


def default_strategies(
    loader: PackageLoader, *, source_ext: str = ".art",
) -> list[ResolutionStrategy]:
    """标准五阶段解析链"""
    return [
        LocalFileStrategy(source_ext),
        LocalFolderStrategy(loader.deriver),
        RepositoryUrlStrategy(loader.fetcher, loader.deriver),
        LocalCacheStrategy(loader),
        RemoteRegistryStrategy(loader),
    ]


class PackageLocator:
    """把引用解析为可执行的入口文件"""

    def __init__(self, strategies: Sequence[ResolutionStrategy]) -> None:
        self.strategies = list(strategies)

    def locate(
        self,
        reference: str,
        constraint: VersionConstraint = ANY_VERSION,
        want_latest: bool = False,
    ) -> Resolution:
        ctx = ResolutionContext()
        result = Resolution(reference=reference, constraint=constraint, installed=ctx.installed)

        for strategy in self.strategies:
            try:
                path = strategy.resolve(reference, constraint, want_latest, ctx)
            except ArtPkgError as e:
                logger.warning("阶段 %s 失败: %s (%s) - %s", strategy.name, reference, constraint, e)
                if result.error is None:
                    result.error, result.stage = e, strategy.name
                continue
            except OSError as e:
                logger.warning("阶段 %s 出错: %s - %s", strategy.name, reference, e)
                if result.error is None:
                    result.error, result.stage = InstallError(str(e)), strategy.name
                continue

            if path is not None:
                logger.info("已定位: %s (%s) -> %s [%s]", reference, constraint, path, strategy.name)
                result.path, result.stage = path, strategy.name
                result.error = None
                return result

        if result.error is None:
            result.error = NotFoundError(f"找不到包: {reference} ({constraint})")
        return result
