"""artpkg 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os

import click
import yaml

from artpkg import __version__
from artpkg.core.config import DEFAULT_CONFIG_FILE, init_config
from artpkg.core.exceptions import ArtPkgError
from artpkg.core.pkg_manager import PkgManager
from artpkg.utils.logger import setup_logging_from_env


def _manager() -> PkgManager:
    """基于当前全局配置构造包管理器"""
    return PkgManager()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path",
    default=lambda: os.getenv("ARTPKG_CONFIG", DEFAULT_CONFIG_FILE),
    help="配置文件路径（默认 ~/.arturo/artpkg.yml，可用 ARTPKG_CONFIG 覆盖）",
)
@click.option("--verbose", "-v", is_flag=True, help="输出调试日志")
def main(config_path: str, verbose: bool) -> None:
    """artpkg - 包解析与缓存引擎"""
    setup_logging_from_env(verbose)
    try:
        init_config(config_path)
    except (ArtPkgError, OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"配置加载失败: {config_path} - {e}") from e


# 注册各领域子命令
from artpkg.cli.cmd_pkg import register as _reg_pkg  # noqa: E402

_reg_pkg(main)
