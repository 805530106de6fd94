"""YAML 与缓存文本文件读写

- parse_yaml / load_yaml: 描述文档与配置文件的安全解析（safe_load + 大小上限）
- atomic_write: 缓存目录下的描述文档写入，读者只会看到旧内容或完整新内容
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 描述文档 / 配置文件的大小上限 (10MB)，注册中心返回异常大的响应时直接拒绝
MAX_YAML_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """写同目录下的临时文件后 os.replace 到 path

    写入失败时删除临时文件并抛出原异常 (OSError)。
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def parse_yaml(text: str, *, source: str = "<string>") -> Any:
    """解析 YAML 文本，返回任意类型的结果（由调用方检查是否为映射）

    Raises:
        ValueError: 超过 MAX_YAML_SIZE
        yaml.YAMLError: 语法错误
    """
    size = len(text.encode("utf-8"))
    if size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文档过大: {source} ({size} 字节，上限 {MAX_YAML_SIZE})")
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.error("YAML 语法错误: %s - %s", source, e)
        raise


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 映射文件；文件不存在、为空或顶层不是映射时返回 {}

    Raises:
        OSError: 文件不可读
        ValueError: 文件过大
        yaml.YAMLError: 语法错误
    """
    p = Path(path)
    if not p.is_file():
        return {}
    if p.stat().st_size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文件过大: {p} (上限 {MAX_YAML_SIZE} 字节)")

    data = parse_yaml(p.read_text(encoding="utf-8"), source=str(p))
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("%s 顶层不是映射 (%s)，按空配置处理", p, type(data).__name__)
        return {}
    return data
