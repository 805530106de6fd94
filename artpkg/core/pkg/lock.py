"""安装锁

基于锁文件的咨询锁，串行化同一 (包, 版本) 的并发安装。
锁文件以 O_CREAT | O_EXCL 原子创建，跨进程、跨线程均有效；
内容为持有者信息 (JSON)。持有时间超过 stale_seconds
的锁视为遗留锁（持有进程已崩溃），可被强制接管；接管经由
<key>.lock.break 串行化，释放时只删除自己创建的锁文件（按 token 判断）。
"""

from __future__ import annotations

import json
import logging
import os
import socket
import time
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from types import TracebackType

from artpkg.core.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)

# .break 标记超过该时长视为接管者崩溃后的残留
BREAKER_STALE_SECONDS = 10.0


@dataclass
class LockInfo:
    """锁持有者信息"""

    key: str
    pid: int = field(default_factory=os.getpid)
    hostname: str = ""
    started_at: float = field(default_factory=time.time)
    token: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if not self.hostname:
            try:
                self.hostname = socket.gethostname()
            except OSError:
                self.hostname = "unknown"

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str) -> LockInfo:
        obj = json.loads(data)
        return cls(
            key=obj["key"],
            pid=int(obj.get("pid", 0)),
            hostname=obj.get("hostname", ""),
            started_at=float(obj.get("started_at", 0.0)),
            token=str(obj.get("token", "")),
        )


class InstallLock:
    """锁文件: <locks_dir>/<key>.lock

    用法:
        with InstallLock(layout.locks_dir, "foo@1.2.0", timeout=300):
            ...  # 检查目标目录 / 下载 / 原子移动
    """

    def __init__(
        self,
        locks_dir: Path,
        key: str,
        *,
        timeout: float = 300.0,
        stale_seconds: float = 1800.0,
        poll_interval: float = 0.05,
    ) -> None:
        self.key = key
        safe_key = key.replace("/", "_").replace("\\", "_")
        self.path = locks_dir / f"{safe_key}.lock"
        self.timeout = timeout
        self.stale_seconds = stale_seconds
        self.poll_interval = poll_interval
        self._held = False
        self._token = ""

    def acquire(self) -> None:
        """阻塞直到获得锁

        Raises:
            LockTimeoutError: 超过 timeout 仍未获得
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if self._break_if_stale():
                    continue
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(
                        f"等待安装锁超时 ({self.timeout}s): {self.key}，"
                        f"持有者: {self._holder()}"
                    ) from None
                time.sleep(self.poll_interval)
                continue
            info = LockInfo(key=self.key)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(info.to_json())
            self._token = info.token
            self._held = True
            logger.debug("已获取安装锁: %s", self.path)
            return

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        if self._current_token() != self._token:
            # 锁已被当作遗留锁接管，不能删除别人的锁文件
            logger.warning("安装锁已被他人接管: %s", self.path)
            return
        self.path.unlink(missing_ok=True)
        logger.debug("已释放安装锁: %s", self.path)

    def _break_if_stale(self) -> bool:
        """接管遗留锁；返回 True 表示应立即重试获取

        接管由 <key>.lock.break 串行化：只有创建了它的等待者才复查并删除锁文件。
        复查时 inode 或 mtime 已变化，说明锁已被别人接管后重建，不删除。
        """
        try:
            st = self.path.stat()
        except FileNotFoundError:
            # 持有者刚好释放，立即重试
            return True
        age = time.time() - st.st_mtime
        if age <= self.stale_seconds:
            return False

        breaker = self.path.with_name(f"{self.path.name}.break")
        try:
            fd = os.open(str(breaker), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            self._clear_stale_breaker(breaker)
            return False
        os.close(fd)
        try:
            try:
                now = self.path.stat()
            except FileNotFoundError:
                return True
            if (now.st_ino, now.st_mtime_ns) != (st.st_ino, st.st_mtime_ns):
                return False
            logger.warning("接管遗留安装锁 (%.0fs): %s，原持有者: %s", age, self.path, self._holder())
            self.path.unlink(missing_ok=True)
            return True
        finally:
            breaker.unlink(missing_ok=True)

    def _clear_stale_breaker(self, breaker: Path) -> None:
        # 接管过程只持有 .break 片刻，残留说明接管者已崩溃
        try:
            age = time.time() - breaker.stat().st_mtime
        except FileNotFoundError:
            return
        if age > BREAKER_STALE_SECONDS:
            logger.warning("清理残留的锁接管标记: %s", breaker)
            breaker.unlink(missing_ok=True)

    def _current_token(self) -> str | None:
        try:
            return LockInfo.from_json(self.path.read_text(encoding="utf-8")).token
        except (OSError, ValueError, KeyError):
            return None

    def _holder(self) -> str:
        try:
            info = LockInfo.from_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError, KeyError):
            return "unknown"
        return f"pid={info.pid}@{info.hostname}"

    def __enter__(self) -> InstallLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
