"""默认的描述文档求值器 - 以 YAML 映射书写的 .art 描述文档

示例 (info.art / 注册中心返回的 spec):

    version: 1.2.0
    url: https://example.com/foo-1.2.0.zip
    entry: start
    depends:
      - bar
      - [baz, 2.0.0]
      - [qux, ">=", 1.1.0]
"""

from __future__ import annotations

from typing import Any

import yaml

from artpkg.core.exceptions import SpecError
from artpkg.utils.yaml_io import parse_yaml


class YamlSpecEvaluator:
    """把 YAML 文本求值为字典"""

    def evaluate(self, text: str, *, source: str = "<string>") -> dict[str, Any]:
        try:
            data = parse_yaml(text, source=source)
        except (yaml.YAMLError, ValueError) as e:
            raise SpecError(f"描述文档无法解析: {source} - {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SpecError(
                f"描述文档必须是键值映射: {source} "
                f"(实际类型: {type(data).__name__})"
            )
        return data
