"""包解析与缓存模块

拆分说明:
- models.py: 数据模型（依赖声明 / 描述文档 / 校验报告 / 定位结果）
- spec.py / evaluator.py: 描述文档解析
- layout.py: 缓存目录布局
- resolver.py: 版本选择与本地解析
- lock.py / archive.py / fetcher.py: 远程拉取与安装
- entry.py: 入口文件推导
- verifier.py / loader.py: 依赖校验与本地 / 远程加载
- locator.py: 五阶段定位
"""

from artpkg.core.pkg.entry import EntryPointDeriver
from artpkg.core.pkg.evaluator import YamlSpecEvaluator
from artpkg.core.pkg.fetcher import FetchedSpec, PackageFetcher
from artpkg.core.pkg.layout import CacheLayout, validate_package_name
from artpkg.core.pkg.loader import PackageLoader
from artpkg.core.pkg.locator import PackageLocator, default_strategies
from artpkg.core.pkg.models import (
    BareDependency,
    Dependency,
    ExactDependency,
    InstalledPackage,
    MinimumDependency,
    PackageSpec,
    Resolution,
    ResolutionContext,
    VerificationReport,
)
from artpkg.core.pkg.resolver import PackageResolver, best_version
from artpkg.core.pkg.verifier import DependencyVerifier

__all__ = [
    "BareDependency",
    "CacheLayout",
    "Dependency",
    "DependencyVerifier",
    "EntryPointDeriver",
    "ExactDependency",
    "FetchedSpec",
    "InstalledPackage",
    "MinimumDependency",
    "PackageFetcher",
    "PackageLoader",
    "PackageLocator",
    "PackageResolver",
    "PackageSpec",
    "Resolution",
    "ResolutionContext",
    "VerificationReport",
    "YamlSpecEvaluator",
    "best_version",
    "default_strategies",
    "validate_package_name",
]
