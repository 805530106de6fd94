"""统一异常体系

所有业务异常继承 ArtPkgError，替代散落的 ValueError / OSError。
各阶段抛出带类型的异常，定位器在边界处转换为 Resolution 结果，
CLI 层据此输出"哪个包、哪个版本、哪个阶段失败"的友好提示。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from artpkg.core.pkg.models import VerificationReport


class ArtPkgError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ArtPkgError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(ArtPkgError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class VersionError(ArtPkgError):
    """版本字符串无法解析"""

    code = "VERSION_ERROR"


class SpecError(ArtPkgError):
    """包描述文档缺少必需字段或字段类型错误"""

    code = "MALFORMED_SPEC"


class EntryPointError(ArtPkgError):
    """入口文件不存在"""

    code = "ENTRY_POINT_MISSING"


class NotFoundError(ArtPkgError):
    """任何阶段都未找到满足条件的包"""

    code = "NOT_FOUND"


class DependencyError(ArtPkgError):
    """依赖无法满足（本地和远程均失败）"""

    code = "DEPENDENCY_UNSATISFIABLE"

    def __init__(self, message: str, report: VerificationReport | None = None) -> None:
        super().__init__(message)
        self.report = report


class DependencyCycleError(DependencyError):
    """依赖图中存在环"""

    code = "DEPENDENCY_CYCLE"

    def __init__(self, chain: list[str]) -> None:
        super().__init__("检测到循环依赖: " + " -> ".join(chain))
        self.chain = chain


class FetchError(ArtPkgError):
    """网络请求或下载失败，status 为 HTTP 状态码（连接级失败时为 None）"""

    code = "FETCH_ERROR"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class InstallError(ArtPkgError):
    """解压或写入缓存目录失败"""

    code = "INSTALL_ERROR"


class LockTimeoutError(ArtPkgError):
    """等待安装锁超时"""

    code = "LOCK_TIMEOUT"
