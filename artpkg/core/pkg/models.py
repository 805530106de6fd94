"""包解析数据模型

数据类:
- PackageSpec: 描述文档解析结果
- BareDependency / ExactDependency / MinimumDependency: 三种依赖声明
- InstalledPackage: 一次安装的副作用记录
- DependencyFailure / VerificationReport: 依赖校验结果
- ResolutionContext: 一次解析中贯穿递归的上下文（环检测 + 副作用）
- Resolution: 定位器对外的结果对象
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from artpkg.core.exceptions import ArtPkgError, DependencyCycleError
from artpkg.core.version import ANY_VERSION, Version, VersionConstraint


@dataclass(frozen=True)
class BareDependency:
    """只有包名，无版本约束"""

    name: str

    @property
    def constraint(self) -> VersionConstraint:
        return ANY_VERSION


@dataclass(frozen=True)
class ExactDependency:
    """包名 + 精确版本"""

    name: str
    version: Version

    @property
    def constraint(self) -> VersionConstraint:
        return VersionConstraint.exact(self.version)


@dataclass(frozen=True)
class MinimumDependency:
    """包名 + 比较运算符 (>= 或 >) + 版本，统一按最低版本处理"""

    name: str
    version: Version
    operator: str = ">="

    @property
    def constraint(self) -> VersionConstraint:
        return VersionConstraint.minimum(self.version)


Dependency = Union[BareDependency, ExactDependency, MinimumDependency]


@dataclass
class PackageSpec:
    """包描述文档"""

    version: Version | None = None
    url: str = ""
    entry: str = ""
    depends: list[Dependency] = field(default_factory=list)
    raw: str = ""
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InstalledPackage:
    name: str
    version: Version
    path: Path

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass
class DependencyFailure:
    """单个依赖的失败原因"""

    name: str
    constraint: VersionConstraint
    error: ArtPkgError

    def __str__(self) -> str:
        return f"{self.name} ({self.constraint}): {self.error}"


@dataclass
class VerificationReport:
    """依赖校验报告，bool(report) 为所有依赖结果的合取"""

    resolved: dict[str, Path] = field(default_factory=dict)
    failures: list[DependencyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def __bool__(self) -> bool:
        return self.ok

    def summary(self) -> str:
        return "; ".join(str(f) for f in self.failures)


@dataclass
class ResolutionContext:
    """一次顶层解析的上下文

    chain 记录当前递归路径上正在解析的 (包名, 版本)，用于检测循环依赖；
    同一个包在不同分支上重复出现（菱形依赖）不算环。
    installed 记录本次解析过程中新安装到缓存的包，失败时也不回滚。
    """

    chain: list[tuple[str, Version]] = field(default_factory=list)
    installed: list[InstalledPackage] = field(default_factory=list)

    @contextmanager
    def entering(self, name: str, version: Version) -> Iterator[None]:
        key = (name, version)
        if key in self.chain:
            start = self.chain.index(key)
            cycle = [f"{n}@{v}" for n, v in self.chain[start:]]
            cycle.append(f"{name}@{version}")
            raise DependencyCycleError(cycle)
        self.chain.append(key)
        try:
            yield
        finally:
            self.chain.pop()


@dataclass
class Resolution:
    """定位结果: 成功时 path 非空；失败时 error/stage 说明原因"""

    reference: str
    constraint: VersionConstraint
    path: Path | None = None
    stage: str = ""
    error: ArtPkgError | None = None
    installed: list[InstalledPackage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.path is not None

    def __bool__(self) -> bool:
        return self.ok

    def describe(self) -> str:
        """面向用户的一行诊断信息"""
        if self.ok:
            return f"{self.reference} ({self.constraint}) -> {self.path} [{self.stage}]"
        stage = f" [阶段: {self.stage}]" if self.stage else ""
        code = self.error.code if self.error else "NOT_FOUND"
        return (
            f"无法解析包 {self.reference} ({self.constraint}){stage}: "
            f"{code} - {self.error}"
        )
