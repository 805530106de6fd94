"""包描述文档解析

把求值器得到的字典转换为 PackageSpec，依赖声明在此一次性规范化为
(包名, 版本约束)，使用方不再重复解释三种书写形式。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from artpkg.core.exceptions import SpecError, VersionError
from artpkg.core.pkg.models import (
    BareDependency,
    Dependency,
    ExactDependency,
    MinimumDependency,
    PackageSpec,
)
from artpkg.core.protocols import SpecEvaluator
from artpkg.core.version import Version

logger = logging.getLogger(__name__)

_EXACT_OPS = frozenset(("=", "=="))
_MINIMUM_OPS = frozenset((">=", ">", "≥"))


def _as_version(value: Any, *, context: str) -> Version:
    # YAML 会把未加引号的 1.10 解析为浮点数 1.1，这里拒绝而不是猜
    if isinstance(value, (bool, float)):
        raise SpecError(f"{context}: 版本号必须写成字符串，如 \"1.2.0\" (实际: {value!r})")
    if isinstance(value, Version):
        return value
    if not isinstance(value, (str, int)):
        raise SpecError(f"{context}: 版本号类型非法 ({type(value).__name__})")
    try:
        return Version.parse(str(value))
    except VersionError as e:
        raise SpecError(f"{context}: {e}") from e


def _as_name(value: Any, *, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SpecError(f"{context}: 包名必须为非空字符串 (实际: {value!r})")
    return value.strip()


def parse_dependency(raw: Any) -> Dependency:
    """解析单个依赖声明

    支持:
        "name"                    -> BareDependency
        ["name"]                  -> BareDependency
        ["name", "1.2.0"]         -> ExactDependency
        ["name", ">=", "1.2.0"]   -> MinimumDependency（> 同样视为最低版本）
        ["name", "=", "1.2.0"]    -> ExactDependency
        "name >= 1.2.0"           -> 同列表形式
    """
    if isinstance(raw, str):
        parts: list[Any] = raw.split()
        if not parts:
            raise SpecError("依赖声明不能为空字符串")
    elif isinstance(raw, (list, tuple)):
        parts = list(raw)
    else:
        raise SpecError(f"无法识别的依赖声明: {raw!r}")

    context = f"依赖声明 {raw!r}"
    if len(parts) == 1:
        return BareDependency(_as_name(parts[0], context=context))
    if len(parts) == 2:
        return ExactDependency(
            _as_name(parts[0], context=context),
            _as_version(parts[1], context=context),
        )
    if len(parts) == 3:
        name = _as_name(parts[0], context=context)
        op = str(parts[1]).strip()
        version = _as_version(parts[2], context=context)
        if op in _EXACT_OPS:
            return ExactDependency(name, version)
        if op in _MINIMUM_OPS:
            return MinimumDependency(name, version, ">=" if op == "≥" else op)
        raise SpecError(f"{context}: 不支持的比较运算符 '{op}'，仅支持 =, >=, >")
    raise SpecError(f"{context}: 元素个数必须为 1~3 (实际 {len(parts)})")


def parse_dependencies(raw: Any) -> list[Dependency]:
    """解析 depends 字段；缺省视为无依赖"""
    if raw is None:
        return []
    if isinstance(raw, str):
        return [parse_dependency(raw)]
    if isinstance(raw, (list, tuple)):
        return [parse_dependency(item) for item in raw]
    raise SpecError(f"depends 必须是列表 (实际类型: {type(raw).__name__})")


def build_spec(data: dict[str, Any], *, raw: str = "", source: str = "<spec>") -> PackageSpec:
    """字典 -> PackageSpec，字段类型错误时抛出 SpecError"""
    version = None
    if data.get("version") is not None:
        version = _as_version(data["version"], context=f"{source} version")

    url = data.get("url", "")
    if not isinstance(url, str):
        raise SpecError(f"{source}: url 必须为字符串")

    entry = data.get("entry", "")
    if entry is None:
        entry = ""
    if not isinstance(entry, str):
        raise SpecError(f"{source}: entry 必须为字符串")

    try:
        depends = parse_dependencies(data.get("depends"))
    except SpecError as e:
        raise SpecError(f"{source}: {e}") from e

    known = {"version", "url", "entry", "depends"}
    return PackageSpec(
        version=version,
        url=url.strip(),
        entry=entry.strip(),
        depends=depends,
        raw=raw,
        extra={k: v for k, v in data.items() if k not in known},
    )


def parse_spec_text(evaluator: SpecEvaluator, text: str, *, source: str) -> PackageSpec:
    return build_spec(evaluator.evaluate(text, source=source), raw=text, source=source)


def read_spec_file(evaluator: SpecEvaluator, path: Path) -> PackageSpec:
    """读取并解析磁盘上的描述文档

    Raises:
        SpecError: 文件不可读或内容非法
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecError(f"描述文档无法读取: {path} - {e}") from e
    return parse_spec_text(evaluator, text, source=str(path))


def require_remote_fields(spec: PackageSpec, *, source: str) -> Version:
    """注册中心返回的描述文档必须带 version 与 url"""
    missing = [k for k, v in (("version", spec.version), ("url", spec.url)) if not v]
    if missing or spec.version is None:
        raise SpecError(f"{source}: 缺少必需字段 {', '.join(missing)}")
    return spec.version
