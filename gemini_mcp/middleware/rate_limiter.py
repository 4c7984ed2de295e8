"""进程内限流器。

按 key 计数的窗口限流：窗口到期后整段重置，而不是逐条滑动。
后台定时清理已过期的条目，进程退出前必须调用 destroy() 停止定时器。
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from gemini_mcp.domain.exceptions import RateLimitError
from gemini_mcp.infrastructure.logging.logger import log_event

DEFAULT_KEY = "default"
DEFAULT_SWEEP_INTERVAL_MS = 60000


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


class RateLimiter:
    """按 key 的窗口计数限流。

    Args:
        max_requests: 单个窗口内允许的请求数。
        window_ms: 窗口长度（毫秒）。
        enabled: False 时 check() 永远放行。
        clock: 返回当前毫秒时间戳的函数，测试中可替换。
        sweep_interval_ms: 后台清理周期；为 None 时不启动后台线程。
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60000,
        enabled: bool = True,
        clock: Callable[[], float] = _now_ms,
        sweep_interval_ms: Optional[int] = DEFAULT_SWEEP_INTERVAL_MS,
    ):
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.enabled = enabled
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._sweep_interval_ms = sweep_interval_ms
        self._timer: Optional[threading.Timer] = None
        self._destroyed = False
        if sweep_interval_ms:
            self._schedule_sweep()

    def check(self, key: str = DEFAULT_KEY) -> None:
        """记录一次请求；超过限额时抛出 RateLimitError。"""
        if not self.enabled:
            return
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now >= entry.window_reset_at:
                self._entries[key] = RateLimitEntry(count=1, window_reset_at=now + self.window_ms)
                return
            if entry.count >= self.max_requests:
                reset_in = math.ceil((entry.window_reset_at - now) / 1000.0)
                count = entry.count
            else:
                entry.count += 1
                return

        log_event(
            logging.WARNING,
            "Rate limit exceeded",
            {"security": True},
            key=key,
            count=count,
            limit=self.max_requests,
            reset_in=reset_in,
        )
        raise RateLimitError(f"Rate limit exceeded. Try again in {reset_in} seconds.", retry_after=reset_in)

    def get_usage(self, key: str = DEFAULT_KEY) -> Dict[str, float]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now >= entry.window_reset_at:
                return {"count": 0, "limit": self.max_requests, "reset_at": now + self.window_ms}
            return {"count": entry.count, "limit": self.max_requests, "reset_at": entry.window_reset_at}

    def reset(self, key: str = DEFAULT_KEY) -> None:
        with self._lock:
            self._entries.pop(key, None)
        log_event(logging.DEBUG, "Reset rate limit", {}, key=key)

    def sweep(self) -> int:
        """删除窗口已过期的条目，返回删除数量。"""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.window_reset_at]
            for k in expired:
                del self._entries[k]
        if expired:
            log_event(logging.DEBUG, "Cleaned up expired rate limit entries", {}, cleaned=len(expired))
        return len(expired)

    def destroy(self) -> None:
        """停止后台清理并清空所有条目，可重复调用。"""
        with self._lock:
            self._destroyed = True
            timer, self._timer = self._timer, None
            self._entries.clear()
        if timer is not None:
            timer.cancel()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _schedule_sweep(self) -> None:
        timer = threading.Timer(self._sweep_interval_ms / 1000.0, self._run_sweep)
        timer.daemon = True
        with self._lock:
            if self._destroyed:
                return
            self._timer = timer
        timer.start()

    def _run_sweep(self) -> None:
        try:
            self.sweep()
        finally:
            self._schedule_sweep()
