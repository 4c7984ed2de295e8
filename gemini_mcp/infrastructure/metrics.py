"""工具调用耗时统计。

enable_metrics 打开时，每次 tools/call 结束后输出一条遥测日志，
同时在进程内累计各工具的调用次数与错误次数。
"""

import logging
import time
from threading import Lock
from typing import Any, Callable, Dict, Optional

from gemini_mcp.infrastructure.logging.logger import log_event

# 超过该耗时的调用以 WARNING 级别记录
SLOW_CALL_MS = 10000.0


class ToolCallTimer:
    """跟踪单次工具调用。"""

    def __init__(self, name: str, msg_id: Any, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.msg_id = msg_id
        self._clock = clock
        self.started = clock()

    def elapsed_ms(self) -> float:
        return max(0.0, (self._clock() - self.started) * 1000.0)


class MetricsRecorder:
    def __init__(self, enabled: bool = False, clock: Callable[[], float] = time.monotonic):
        self.enabled = enabled
        self._clock = clock
        self._lock = Lock()
        self._calls: Dict[str, Dict[str, int]] = {}

    def start(self, name: str, msg_id: Any) -> Optional[ToolCallTimer]:
        if not self.enabled:
            return None
        return ToolCallTimer(name, msg_id, self._clock)

    def finish(
        self,
        timer: Optional[ToolCallTimer],
        outcome: str,
        error_code: Optional[int] = None,
        response_bytes: Optional[int] = None,
    ) -> None:
        if timer is None:
            return
        elapsed = timer.elapsed_ms()
        with self._lock:
            stats = self._calls.setdefault(timer.name, {"calls": 0, "errors": 0})
            stats["calls"] += 1
            if outcome != "success":
                stats["errors"] += 1
        level = logging.WARNING if elapsed >= SLOW_CALL_MS else logging.INFO
        fields: Dict[str, Any] = {"tool": timer.name, "id": timer.msg_id, "outcome": outcome, "elapsed_ms": round(elapsed, 1)}
        if error_code is not None:
            fields["error_code"] = error_code
        if response_bytes is not None:
            fields["response_bytes"] = response_bytes
        log_event(level, "Tool call telemetry", {}, **fields)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {name: dict(stats) for name, stats in self._calls.items()}
