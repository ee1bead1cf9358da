"""vendlock 日志配置

进程级日志只由 CLI 入口配置一次；Resolver / 拉取器 / Library 只接收
显式传入的 logger 句柄，从不自行挂 handler。

依赖相关的日志可通过 extra={"import_path": ...} 附带导入路径，
JSON 输出时单独成字段，便于在 CI 中按依赖过滤。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

LEVEL_ENV = "VENDLOCK_LOG_LEVEL"
JSON_ENV = "VENDLOCK_LOG_JSON"

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """单行 JSON 日志

    字段: timestamp, level, logger, message, location；
    可选 import_path（来自 extra）与 exception。
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.lineno}",
        }
        import_path = getattr(record, "import_path", None)
        if import_path:
            entry["import_path"] = import_path
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，输出到 stderr；重复调用会替换之前的 handler"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


def setup_logging_from_env() -> None:
    """按 VENDLOCK_LOG_LEVEL / VENDLOCK_LOG_JSON 配置日志"""
    setup_logging(
        level=os.getenv(LEVEL_ENV, "INFO"),
        json_output=os.getenv(JSON_ENV, "") == "1",
    )


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
