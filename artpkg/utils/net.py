"""网络工具 - URL 校验、文本获取与文件下载

所有远程访问统一走这里，测试只需 patch 本模块的函数即可隔离网络。
"""

from __future__ import annotations

import logging
import re
import shutil
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urlparse

from artpkg.core.exceptions import FetchError, ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

_URL_RE = re.compile(
    r"^(?:http(s)?://)[\w.-]+(?:\.[\w.-]+)+[\w\-._~:/?#\[\]@!$&'()*+,;=.]+$"
)


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def is_url(text: str) -> bool:
    """判断引用是否为 web URL（用于识别代码仓地址简写）"""
    return _URL_RE.match(text) is not None


def http_get_text(url: str, *, timeout: float, context: str = "") -> str:
    """阻塞 GET 请求，返回 UTF-8 文本

    Raises:
        ValidationError: URL 协议非法
        FetchError: 连接失败、HTTP 错误状态或超时
    """
    validate_url_scheme(url, context=context)
    logger.debug("GET %s", url)
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:  # nosec B310
            return resp.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        raise FetchError(f"请求失败: {url} - HTTP {e.code}", status=e.code) from e
    except (urllib.error.URLError, OSError, UnicodeDecodeError) as e:
        raise FetchError(f"请求失败: {url} - {e}") from e


def download_file(url: str, dest: Path, *, timeout: float, context: str = "") -> Path:
    """下载 URL 内容到 dest，失败时删除不完整文件

    Raises:
        ValidationError: URL 协议非法
        FetchError: 下载失败
    """
    validate_url_scheme(url, context=context)
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info("  下载: %s", url)
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp, \
                open(dest, "wb") as f:  # nosec B310
            shutil.copyfileobj(resp, f)
    except urllib.error.HTTPError as e:
        dest.unlink(missing_ok=True)
        raise FetchError(f"下载失败: {url} - HTTP {e.code}", status=e.code) from e
    except (urllib.error.URLError, OSError) as e:
        dest.unlink(missing_ok=True)
        raise FetchError(f"下载失败: {url} - {e}") from e
    logger.debug("  已保存: %s", dest)
    return dest
