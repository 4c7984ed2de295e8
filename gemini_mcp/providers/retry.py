"""上游调用的重试策略。

- is_retryable_error: 只有带可重试状态（UNAVAILABLE / RESOURCE_EXHAUSTED / INTERNAL）
  或错误码（429 / 503）的 UpstreamApiError 才会重试。
- get_retry_delay: 指数退避，min(base * 2^n, 16000) 毫秒。
- with_retry: 按上述规则重复执行 operation，重试耗尽后抛出最后一次的异常。
"""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from gemini_mcp.domain.exceptions import UpstreamApiError, UpstreamCause, UpstreamStatus
from gemini_mcp.infrastructure.logging.logger import log_event

T = TypeVar("T")

MAX_RETRY_DELAY_MS = 16000
RETRYABLE_STATUSES = frozenset(
    {UpstreamStatus.UNAVAILABLE, UpstreamStatus.RESOURCE_EXHAUSTED, UpstreamStatus.INTERNAL}
)
RETRYABLE_CODES = frozenset({429, 503})


def is_retryable_error(error: BaseException) -> bool:
    if not isinstance(error, UpstreamApiError):
        return False
    cause = error.cause
    return cause.status in RETRYABLE_STATUSES or cause.code in RETRYABLE_CODES


def get_retry_delay(attempt: int, base_delay: int = 1000) -> int:
    """第 attempt 次失败后（从 0 开始）等待的毫秒数。"""
    return min(base_delay * 2**attempt, MAX_RETRY_DELAY_MS)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    base_delay: int = 1000,
    sleep: Callable[[float], Any] = time.sleep,
    log_ctx: Optional[dict] = None,
) -> T:
    """执行 operation，可重试错误在退避后重新尝试，最多 max_attempts 次。"""
    attempts = max(1, max_attempts)
    last_error: Optional[Exception] = None
    for attempt in range(attempts):
        try:
            return operation()
        except Exception as exc:
            if not is_retryable_error(exc):
                raise
            last_error = exc
            if attempt == attempts - 1:
                break
            delay = get_retry_delay(attempt, base_delay)
            log_event(
                logging.WARNING,
                "Retrying upstream call",
                log_ctx or {},
                attempt=attempt + 1,
                max_attempts=attempts,
                delay_ms=delay,
                error=str(exc),
            )
            sleep(delay / 1000.0)
    raise last_error


def handle_gemini_error(payload: Any, http_status: Optional[int] = None) -> UpstreamApiError:
    """把上游错误响应体转换为 UpstreamApiError，结构化原因在此一次性确定。"""
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        status = UpstreamStatus.parse(error.get("status"))
        code = error.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            code = http_status
        message = error.get("message")
        if not message:
            message = f"Gemini API error: {status.value}" if status is not None else "Gemini API error"
        return UpstreamApiError(message, UpstreamCause(status=status, code=code, message=message, raw=error))
    raw = payload if payload not in (None, "") else None
    return UpstreamApiError("Unknown Gemini API error", UpstreamCause(code=http_status, raw=raw))
