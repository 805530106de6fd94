"""共享测试夹具 - 缓存目录、假注册中心、zip 归档构造"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import yaml

from artpkg.core.config import Config
from artpkg.core.exceptions import FetchError
from artpkg.core.pkg_manager import PkgManager


def build_zip(files: dict[str, str], root: str = "") -> bytes:
    """内存中构造 zip；root 非空时所有文件放在 root/ 下"""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            arcname = f"{root}/{name}" if root else name
            zf.writestr(arcname, content)
    return buf.getvalue()


def spec_text(version: str, url: str = "", entry: str = "", depends: list | None = None) -> str:
    data: dict[str, Any] = {"version": version}
    if url:
        data["url"] = url
    if entry:
        data["entry"] = entry
    if depends:
        data["depends"] = depends
    return yaml.safe_dump(data, allow_unicode=True)


def install_local(
    home: Path,
    name: str,
    version: str,
    files: dict[str, str] | None = None,
    *,
    entry: str = "",
    depends: list | None = None,
    with_spec: bool = True,
) -> Path:
    """直接在缓存目录布局中放置一个已安装版本"""
    target = home / "cache" / name / version
    target.mkdir(parents=True)
    for rel, content in (files if files is not None else {"main.art": "print 1"}).items():
        (target / rel).parent.mkdir(parents=True, exist_ok=True)
        (target / rel).write_text(content, encoding="utf-8")
    if with_spec:
        spec = home / "specs" / name / f"{version}.art"
        spec.parent.mkdir(parents=True, exist_ok=True)
        spec.write_text(spec_text(version, entry=entry, depends=depends), encoding="utf-8")
    return target


class FakeRegistry:
    """替换 artpkg.utils.net 的假注册中心，记录所有请求"""

    def __init__(self, domain: str = "pkgr.art") -> None:
        self.domain = domain
        self.texts: dict[str, str] = {}
        self.blobs: dict[str, bytes] = {}
        self.text_requests: list[str] = []
        self.downloads: list[str] = []

    def publish(
        self,
        name: str,
        version: str,
        files: dict[str, str] | None = None,
        *,
        entry: str = "",
        depends: list | None = None,
        latest: bool = True,
        flat: bool = False,
    ) -> str:
        url = f"https://files.example.com/{name}-{version}.zip"
        root = "" if flat else f"{name}-{version}"
        self.blobs[url] = build_zip(files if files is not None else {"main.art": "print 1"}, root)
        text = spec_text(version, url=url, entry=entry, depends=depends)
        self.texts[f"https://{name}.{self.domain}/{version}/spec"] = text
        if latest:
            self.texts[f"https://{name}.{self.domain}/spec"] = text
        return url

    def get_text(self, url: str, *, timeout: float, context: str = "") -> str:
        self.text_requests.append(url)
        if url not in self.texts:
            raise FetchError(f"请求失败: {url} - HTTP 404", status=404)
        return self.texts[url]

    def download(self, url: str, dest: Path, *, timeout: float, context: str = "") -> Path:
        self.downloads.append(url)
        if url not in self.blobs:
            raise FetchError(f"下载失败: {url} - HTTP 404", status=404)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.blobs[url])
        return dest


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "packages"
    path.mkdir()
    return path


@pytest.fixture
def config(home: Path) -> Config:
    return Config(packages_dir=str(home), request_timeout=5, lock_timeout=5)


@pytest.fixture
def registry() -> Iterator[FakeRegistry]:
    reg = FakeRegistry()
    with patch("artpkg.utils.net.http_get_text", side_effect=reg.get_text), \
            patch("artpkg.utils.net.download_file", side_effect=reg.download):
        yield reg


@pytest.fixture
def pm(config: Config, registry: FakeRegistry) -> PkgManager:
    return PkgManager(config=config)


@pytest.fixture
def local(home: Path):
    """在缓存中放置已安装版本: local("foo", "1.0.0", {...}, depends=[...])"""
    def _install(name: str, version: str, files: dict[str, str] | None = None, **kwargs: Any) -> Path:
        return install_local(home, name, version, files, **kwargs)
    return _install


@pytest.fixture
def make_zip(tmp_path: Path):
    """在 tmp_path 下写出 zip 文件: make_zip("a.zip", {...}, root="pkg")"""
    def _make(filename: str, files: dict[str, str], root: str = "") -> Path:
        path = tmp_path / filename
        path.write_bytes(build_zip(files, root))
        return path
    return _make
