"""
描述: 日志工具库
主要功能:
    - JSON / 文本两种格式输出
    - 自动注入当前请求 ID
    - API Key 脱敏
    - 统一日志配置初始化
"""

from __future__ import annotations

import json
import logging
from typing import Any

from phantombuster_mcp.config import LoggingSettings
from phantombuster_mcp.context import current_request_id


_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "asctime", "taskName",
})


def mask_secret(value: str | None, visible: int = 4) -> str:
    """仅保留末尾若干位"""
    if not value:
        return "<none>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


# region 日志 Formatter
class JsonFormatter(logging.Formatter):
    """JSON 日志格式化器"""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if request_id := current_request_id():
            payload["request_id"] = request_id

        # extra 字段（通过 logger.info("msg", extra={...}) 传入）
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class SimpleFormatter(logging.Formatter):
    """简单文本格式化器（开发环境用）"""

    def format(self, record: logging.LogRecord) -> str:
        base = f"[{self.formatTime(record)}] {record.levelname:5} {record.name}: {record.getMessage()}"
        if request_id := current_request_id():
            base += f" (req={request_id})"
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base
# endregion


# region 日志初始化
def setup_logging(settings: LoggingSettings) -> None:
    """
    初始化日志系统

    参数:
        settings: 日志配置对象
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    if settings.format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(SimpleFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # 降低第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
# endregion
