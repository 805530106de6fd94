"""入口文件推导

在包源码目录中确定解释器应首先执行的文件:
  - 默认 <folder>/main.art
  - 若存在 <folder>/info.art 且声明了 entry，则为 <folder>/<entry>.art
  - info.art 声明的 depends 先于入口文件检查校验，校验失败则推导失败；
    入口文件缺失时依赖已安装，副作用保留
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from artpkg.core.exceptions import DependencyError, EntryPointError
from artpkg.core.pkg.models import Dependency, ResolutionContext, VerificationReport
from artpkg.core.pkg.spec import read_spec_file
from artpkg.core.protocols import SpecEvaluator

logger = logging.getLogger(__name__)

VerifyFn = Callable[[list[Dependency], ResolutionContext], VerificationReport]


class EntryPointDeriver:
    """入口文件推导器"""

    def __init__(
        self,
        evaluator: SpecEvaluator,
        verify: VerifyFn | None = None,
        *,
        source_ext: str = ".art",
        default_entry: str = "main",
        info_file: str = "info",
    ) -> None:
        self.evaluator = evaluator
        self.verify = verify
        self.source_ext = source_ext
        self.default_entry = default_entry
        self.info_file = info_file

    def entry_file(self, folder: Path, entry: str = "") -> Path:
        """entry 名 -> 文件路径；已带扩展名时不重复追加"""
        name = entry or self.default_entry
        if not name.endswith(self.source_ext):
            name += self.source_ext
        return folder / name

    def derive(self, folder: str | Path, ctx: ResolutionContext | None = None) -> Path:
        """推导目录的入口文件

        Raises:
            EntryPointError: 入口文件不存在
            SpecError: info.art 内容非法
            DependencyError: info.art 声明的依赖无法满足
        """
        folder = Path(folder)
        entry = ""
        depends: list[Dependency] = []

        info_path = folder / f"{self.info_file}{self.source_ext}"
        if info_path.is_file():
            info = read_spec_file(self.evaluator, info_path)
            entry = info.entry
            depends = info.depends

        if depends:
            if self.verify is None:
                logger.warning("未配置依赖校验，跳过 %s 的 %d 个依赖", info_path, len(depends))
            else:
                report = self.verify(depends, ctx or ResolutionContext())
                if not report:
                    raise DependencyError(
                        f"{info_path} 的依赖无法满足: {report.summary()}", report,
                    )

        path = self.entry_file(folder, entry)
        if not path.is_file():
            raise EntryPointError(f"入口文件不存在: {path}")

        logger.debug("入口文件: %s", path)
        return path
