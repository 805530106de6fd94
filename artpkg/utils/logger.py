"""artpkg 日志配置

日志统一写 stderr，stdout 只留给命令结果（入口文件路径等），
便于运行时直接捕获 `artpkg locate` 的输出。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

# 日志记录上这些属性由 logging 自身设置，其余视为调用方通过 extra= 传入的字段
_RESERVED = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """单行 JSON 日志，字段: timestamp / level / logger / message / location，
    以及通过 extra= 附加的键（如 package、version）"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and key not in entry:
                entry[key] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器（重复调用会替换之前的 handler）"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        JSONFormatter() if json_output
        else logging.Formatter("%(asctime)s [%(levelname)-7s] %(name)s: %(message)s")
    )
    root.addHandler(handler)


def setup_logging_from_env(verbose: bool = False, default_level: str = "WARNING") -> None:
    """按 ARTPKG_LOG_LEVEL / ARTPKG_LOG_JSON 配置；verbose 时强制 DEBUG"""
    setup_logging(
        level="DEBUG" if verbose else os.getenv("ARTPKG_LOG_LEVEL", default_level),
        json_output=os.getenv("ARTPKG_LOG_JSON", "") == "1",
    )


def reset_logging() -> None:
    """移除并关闭根日志器上的所有 handler"""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
