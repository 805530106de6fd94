"""远程拉取器

职责:
- 查询注册中心描述文档（最新 / 指定版本）
- 下载归档、解压、原子移动进缓存目录
- 代码仓地址简写的归档拉取

并发约定:
- 每次下载 / 解压使用 tmp/ 下唯一的临时文件和目录
- 同一 (包, 版本) 的安装由 InstallLock 串行化，目标目录已存在即视为已安装
- 进入缓存目录只有一次 rename，读者不会看到半成品
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from artpkg.core.exceptions import FetchError, InstallError, NotFoundError, ValidationError
from artpkg.core.pkg.archive import ZipExtractor, unpack_root
from artpkg.core.pkg.layout import CacheLayout, validate_package_name
from artpkg.core.pkg.lock import InstallLock
from artpkg.core.pkg.models import PackageSpec
from artpkg.core.pkg.spec import parse_spec_text, require_remote_fields
from artpkg.core.protocols import ArchiveExtractor, SpecEvaluator
from artpkg.core.version import Version, VersionConstraint
from artpkg.utils import net
from artpkg.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class FetchedSpec:
    """从注册中心取回、尚未安装的描述文档"""

    name: str
    version: Version
    spec: PackageSpec
    source_url: str


def parse_repo_url(url: str) -> tuple[str, str]:
    """https://github.com/<owner>/<repo>[.git] -> (owner, repo)"""
    parts = [p for p in urlparse(url).path.split("/") if p]
    if len(parts) < 2:
        raise ValidationError(f"无法从地址解析代码仓 owner/repo: {url}")
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


class PackageFetcher:
    """远程拉取器 - 查询、下载、安装"""

    def __init__(
        self,
        layout: CacheLayout,
        evaluator: SpecEvaluator,
        extractor: ArchiveExtractor | None = None,
        *,
        registry_domain: str = "pkgr.art",
        request_timeout: float = 60.0,
        lock_timeout: float = 300.0,
        lock_stale_seconds: float = 1800.0,
        repo_archive_branch: str = "main",
    ) -> None:
        self.layout = layout
        self.evaluator = evaluator
        self.extractor = extractor or ZipExtractor()
        self.registry_domain = registry_domain
        self.request_timeout = request_timeout
        self.lock_timeout = lock_timeout
        self.lock_stale_seconds = lock_stale_seconds
        self.repo_archive_branch = repo_archive_branch

    # ------------------------------------------------------------------
    # 注册中心查询
    # ------------------------------------------------------------------

    def spec_url(self, pkg: str, constraint: VersionConstraint) -> str:
        """精确约束查询指定版本，无约束 / 最低版本约束查询最新版本"""
        if constraint.is_exact:
            return f"https://{pkg}.{self.registry_domain}/{constraint.version}/spec"
        return f"https://{pkg}.{self.registry_domain}/spec"

    def fetch_spec(self, pkg: str, constraint: VersionConstraint) -> FetchedSpec:
        """下载并解析注册中心描述文档

        Raises:
            NotFoundError: 注册中心没有该包，或返回的版本不满足约束
            FetchError: 网络失败
            SpecError: 描述文档非法或缺少 version / url
        """
        validate_package_name(pkg)
        url = self.spec_url(pkg, constraint)
        logger.info("查询远程包: %s (%s) <- %s", pkg, constraint, url)
        try:
            text = net.http_get_text(url, timeout=self.request_timeout, context=f"spec {pkg}")
        except FetchError as e:
            if e.status == 404:
                raise NotFoundError(f"注册中心不存在该包: {pkg} ({constraint})") from e
            raise

        spec = parse_spec_text(self.evaluator, text, source=url)
        version = require_remote_fields(spec, source=url)
        if not constraint.satisfied_by(version):
            raise NotFoundError(
                f"注册中心最新版本 {version} 不满足约束 {constraint}: {pkg}"
            )
        return FetchedSpec(name=pkg, version=version, spec=spec, source_url=url)

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(self, fetched: FetchedSpec) -> tuple[Path, bool]:
        """把已取回的包安装进缓存，返回 (版本目录, 是否本次新安装)

        依赖校验由调用方在此之前完成。重复安装同一版本不会改变已有目录。

        Raises:
            FetchError / InstallError / LockTimeoutError
        """
        name, version = fetched.name, fetched.version
        target = self.layout.version_dir(name, version)
        spec_file = self.layout.spec_file(name, version)

        with self._lock(f"{name}@{version}"):
            if target.is_dir():
                if not self._spec_matches(spec_file, fetched.spec.raw):
                    logger.warning("修复缓存描述文档: %s", spec_file)
                    atomic_write(spec_file, fetched.spec.raw)
                logger.info("已在缓存中，跳过安装: %s %s", name, version)
                return target, False

            logger.info("安装包: %s %s", name, version)
            atomic_write(spec_file, fetched.spec.raw)
            self._download_into(fetched.spec.url, target, context=f"package {name}")

        logger.info("安装完成: %s %s -> %s", name, version, target)
        return target, True

    def fetch_repo(self, url: str, *, refresh: bool = False) -> Path:
        """拉取代码仓归档到 tmp/<repo>@<owner>/；已存在且不要求刷新时直接复用"""
        owner, repo = parse_repo_url(url)
        target = self.layout.repo_dir(owner, repo)

        with self._lock(f"{repo}@{owner}"):
            if target.is_dir() and not refresh:
                logger.info("复用代码仓检出目录: %s", target)
                return target
            archive_url = f"{url.rstrip('/')}/archive/{self.repo_archive_branch}.zip"
            logger.info("拉取代码仓: %s", archive_url)
            self._download_into(archive_url, target, context=f"repo {owner}/{repo}", replace=True)

        return target

    # ------------------------------------------------------------------
    # 内部实现
    # ------------------------------------------------------------------

    def _lock(self, key: str) -> InstallLock:
        return InstallLock(
            self.layout.locks_dir, key,
            timeout=self.lock_timeout, stale_seconds=self.lock_stale_seconds,
        )

    @staticmethod
    def _spec_matches(spec_file: Path, raw: str) -> bool:
        try:
            return spec_file.read_text(encoding="utf-8") == raw
        except OSError:
            return False

    def _download_into(self, archive_url: str, target: Path, *, context: str, replace: bool = False) -> None:
        """下载 -> 解压 -> 原子移动到 target；临时文件无论成败都清理"""
        tmp_dir = self.layout.tmp_dir
        tmp_dir.mkdir(parents=True, exist_ok=True)
        fd, archive_name = tempfile.mkstemp(dir=str(tmp_dir), prefix="pkg-", suffix=".zip")
        os.close(fd)
        archive = Path(archive_name)
        scratch = Path(tempfile.mkdtemp(dir=str(tmp_dir), prefix="unpack-"))

        try:
            net.download_file(archive_url, archive, timeout=self.request_timeout, context=context)
            root = unpack_root(self.extractor, archive, scratch)
            target.parent.mkdir(parents=True, exist_ok=True)
            self._move_into_place(root, target, replace=replace)
        finally:
            archive.unlink(missing_ok=True)
            shutil.rmtree(scratch, ignore_errors=True)

    def _move_into_place(self, root: Path, target: Path, *, replace: bool) -> None:
        backup: Path | None = None
        try:
            if replace and target.exists():
                backup = self.layout.tmp_dir / f"old-{uuid.uuid4().hex}"
                os.rename(target, backup)
            os.rename(root, target)
        except OSError as e:
            if backup is not None and not target.exists():
                os.rename(backup, target)
                backup = None
            raise InstallError(f"移动到缓存目录失败: {root} -> {target} - {e}") from e
        finally:
            if backup is not None:
                shutil.rmtree(backup, ignore_errors=True)
