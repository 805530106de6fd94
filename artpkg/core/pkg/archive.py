"""归档解压

默认的 ArchiveExtractor 实现（zip），以及从解压结果中定位包根目录的辅助函数。
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath

from artpkg.core.exceptions import InstallError
from artpkg.core.protocols import ArchiveExtractor

logger = logging.getLogger(__name__)


class ZipExtractor:
    """zip 归档解压器"""

    def unpack(self, archive: Path, dest: Path) -> list[str]:
        dest.mkdir(parents=True, exist_ok=True)
        try:
            with zipfile.ZipFile(archive) as zf:
                names = zf.namelist()
                for name in names:
                    p = PurePosixPath(name)
                    if p.is_absolute() or ".." in p.parts:
                        raise InstallError(f"归档包含非法路径: {name} ({archive})")
                zf.extractall(dest)
        except zipfile.BadZipFile as e:
            raise InstallError(f"不是有效的 zip 归档: {archive} - {e}") from e
        except OSError as e:
            raise InstallError(f"解压失败: {archive} - {e}") from e

        top: list[str] = []
        for name in names:
            first = PurePosixPath(name).parts[0] if name.strip("/") else ""
            if first and first not in top:
                top.append(first)
        return top


def unpack_root(extractor: ArchiveExtractor, archive: Path, scratch: Path) -> Path:
    """解压到 scratch 并返回包根目录

    归档的第一个顶层条目即包根目录（GitHub 归档、注册中心归档均如此）；
    若第一个条目是文件（平铺归档），则 scratch 本身就是根目录。
    """
    entries = extractor.unpack(archive, scratch)
    if not entries:
        raise InstallError(f"归档为空: {archive}")
    root = scratch / entries[0]
    if root.is_dir():
        return root
    logger.debug("平铺归档，以解压目录为根: %s", archive)
    return scratch
