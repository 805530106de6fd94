"""集中配置管理

替代各模块散落的路径 / 域名常量，提供统一的配置入口。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields

from artpkg.core.exceptions import ConfigError
from artpkg.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "~/.arturo/artpkg.yml"


@dataclass
class Config:
    """全局配置"""

    # 缓存根目录，下含 specs/ cache/ tmp/ locks/
    packages_dir: str = "~/.arturo/packages"

    # 远程注册中心: https://{pkg}.{registry_domain}/spec
    registry_domain: str = "pkgr.art"

    # 源文件约定
    source_ext: str = ".art"
    default_entry: str = "main"
    info_file: str = "info"

    # 代码仓地址简写拉取的分支归档: <url>/archive/<branch>.zip
    repo_archive_branch: str = "main"

    # 网络与锁（秒）
    request_timeout: float = 60.0
    lock_timeout: float = 300.0
    lock_stale_seconds: float = 1800.0

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.packages_dir = os.path.expanduser(str(self.packages_dir))
        if not self.source_ext.startswith("."):
            self.source_ext = "." + self.source_ext
        for name in ("request_timeout", "lock_timeout", "lock_stale_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"配置项 {name} 必须为正数: {value!r}")

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(os.path.expanduser(path))
        if not data:
            return cls()
        known = {f.name for f in fields(cls)} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
