"""对外服务组装模块。

create_server() 把配置、上游客户端、限流器、会话存储和 Dispatcher 组装成一个
可运行的服务对象；main() 是命令行入口（python -m gemini_mcp / gemini-mcp）。
"""

import logging
import signal
import sys
import time
from typing import Any, Callable, Optional, TextIO

from gemini_mcp import __version__
from gemini_mcp.config.settings import Settings, load_settings
from gemini_mcp.domain.conversation import ConversationStore
from gemini_mcp.domain.exceptions import ConfigurationError
from gemini_mcp.infrastructure.logging.logger import log_event, setup_logger
from gemini_mcp.infrastructure.metrics import MetricsRecorder
from gemini_mcp.middleware.rate_limiter import DEFAULT_SWEEP_INTERVAL_MS, RateLimiter
from gemini_mcp.providers.base import GeminiService
from gemini_mcp.providers.gemini_client import GeminiClient
from gemini_mcp.server.dispatcher import Dispatcher
from gemini_mcp.server.stdio import StdioServer
from gemini_mcp.tools.handlers import ToolHandlers


class GeminiMcpServer:
    """持有一个进程内的全部可变状态：限流条目与会话历史。"""

    def __init__(
        self,
        settings: Settings,
        dispatcher: Dispatcher,
        rate_limiter: RateLimiter,
        store: ConversationStore,
        metrics: MetricsRecorder,
        transport: StdioServer,
    ):
        self.settings = settings
        self.dispatcher = dispatcher
        self.rate_limiter = rate_limiter
        self.store = store
        self.metrics = metrics
        self.transport = transport
        self._closed = False

    def serve(self) -> int:
        return self.transport.serve_forever()

    def close(self) -> None:
        """停止限流器的后台清理，可重复调用。"""
        if self._closed:
            return
        self._closed = True
        self.transport.stop()
        self.rate_limiter.destroy()
        log_event(logging.INFO, "Server closed", {}, conversations=len(self.store))


def create_server(
    settings: Settings,
    service: Optional[GeminiService] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    sleep: Callable[[float], Any] = time.sleep,
    sweep_interval_ms: Optional[int] = DEFAULT_SWEEP_INTERVAL_MS,
) -> GeminiMcpServer:
    """根据配置组装服务；service 为空时使用 GeminiClient。"""
    store = ConversationStore()
    rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_requests,
        window_ms=settings.rate_limit_window,
        enabled=settings.rate_limit_enabled,
        sweep_interval_ms=sweep_interval_ms,
    )
    metrics = MetricsRecorder(enabled=settings.enable_metrics)
    tools = ToolHandlers(
        service if service is not None else GeminiClient(settings),
        store,
        max_retry_attempts=settings.max_retry_attempts,
        retry_base_delay=settings.retry_base_delay,
        sleep=sleep,
    )
    dispatcher = Dispatcher(tools, rate_limiter, metrics=metrics)
    transport = StdioServer(dispatcher, stdin=stdin, stdout=stdout)
    return GeminiMcpServer(settings, dispatcher, rate_limiter, store, metrics, transport)


def _log_startup(settings: Settings) -> None:
    log_event(
        logging.INFO,
        "Starting Gemini MCP Server",
        {},
        version=__version__,
        environment=settings.environment,
        api_key=settings.mask_api_key(),
        log_level=settings.log_level,
        rate_limit_enabled=settings.rate_limit_enabled,
    )
    if settings.rate_limit_enabled:
        log_event(
            logging.INFO,
            "Rate limit configured",
            {},
            requests=settings.rate_limit_requests,
            window_ms=settings.rate_limit_window,
        )


def _handle_sigterm(signum, frame) -> None:
    raise SystemExit(0)


def main() -> int:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        return 1

    setup_logger(settings.log_level, settings.log_dir)
    _log_startup(settings)

    if hasattr(sys.stdin, "reconfigure"):
        sys.stdin.reconfigure(encoding="utf-8", errors="replace")
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8")

    server = create_server(settings)
    signal.signal(signal.SIGTERM, _handle_sigterm)
    try:
        server.serve()
    except KeyboardInterrupt:
        log_event(logging.INFO, "Received SIGINT, shutting down", {})
    finally:
        server.close()
    return 0
