import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER_NAME = "gemini_mcp"

# 配置里的级别名 -> logging 级别
LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

logger = logging.getLogger(LOGGER_NAME)


class JsonFormatter(logging.Formatter):
    """每条日志输出一行 JSON，extra 字段合并到顶层。"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(level: str = "info", log_dir: Optional[str] = None) -> logging.Logger:
    """配置 gemini_mcp 日志器。

    stdout 专用于协议输出，日志只写 stderr；log_dir 非空时额外写入
    log_dir/gemini_mcp.log。重复调用会替换已有 handler。
    """
    log = logging.getLogger(LOGGER_NAME)
    numeric = LEVELS.get(level, logging.INFO)
    log.setLevel(numeric)
    log.propagate = False
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter()
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(numeric)
    sh.setFormatter(formatter)
    log.addHandler(sh)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path / "gemini_mcp.log", encoding="utf-8")
        fh.setLevel(numeric)
        fh.setFormatter(formatter)
        log.addHandler(fh)
    return log


def log_event(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
    payload = dict(log_ctx)
    payload.update(fields)
    logger.log(level, message, extra={"extra": payload})
