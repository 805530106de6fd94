"""外部协作者协议定义

解析引擎只通过这两个窄接口使用运行时的其余部分：
  - SpecEvaluator: 把描述文档文本求值为字典（语言的解析器 / 求值器）
  - ArchiveExtractor: 把归档解压到目录（归档编解码器）
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol


class SpecEvaluator(Protocol):
    """描述文档求值器协议"""

    def evaluate(self, text: str, *, source: str = "<string>") -> dict[str, Any]:
        """求值文档文本，返回键值字典；文档非法时抛出 SpecError"""
        ...


class ArchiveExtractor(Protocol):
    """归档解压器协议"""

    def unpack(self, archive: Path, dest: Path) -> list[str]:
        """解压 archive 到 dest，按归档顺序返回顶层条目名；失败时抛出 InstallError"""
        ...
