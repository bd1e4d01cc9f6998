"""sitedeploy 日志配置

支持人类可读文本和结构化 JSON 两种输出。
进度事件经 LoggingSink 写日志时会附带 step / task / state 字段，
JSON 格式下这些字段会被单独输出，便于 CI 流水线按步骤过滤。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# LoggingSink 通过 extra= 注入的字段
PROGRESS_FIELDS = ("step", "task", "state")


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器

    输出格式:
        {
            "timestamp": "2024-01-01T12:00:00+00:00",
            "level": "INFO",
            "logger": "sitedeploy.core.reporter",
            "message": "...",
            "module": "reporter",
            "function": "on_event",
            "line": 42,
            "step": "Deploying static site",   (仅进度事件)
            "task": "Building static site",    (仅进度事件)
            "state": "failed",                 (仅进度事件)
            "exception": "traceback..."        (仅在有异常时)
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            # 用 record.created 记录事件发生时间而非格式化时间
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for name in PROGRESS_FIELDS:
            value = getattr(record, name, None)
            if value:
                log_entry[name] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，输出到 stderr

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        json_output: True 时使用 JSON 格式（适用于 CI）

    重复调用会先清理已有 handlers，避免日志重复输出。
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        fmt = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"
        handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)


def reset_logging() -> None:
    """移除根日志器上的全部 handlers（测试中重新配置时使用）"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
