"""JSON-RPC 协议状态机。

一行输入的处理顺序：
    解析 -> 信封校验 -> 限流 -> 路由 -> 执行（可能重试）-> 组装响应

- 每个带 id 的合法请求恰好产生一个 id 相同的响应。
- 通知（没有 id）在限流之前记录并丢弃，永远不回复。
- 无法解析、也拿不到 id 的行只写日志。
"""

import json
import logging
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from gemini_mcp import SERVER_NAME, __version__
from gemini_mcp.domain.exceptions import ErrorCode, InternalError, McpError, MethodNotFoundError
from gemini_mcp.domain.models import ErrorResponse, JsonRpcRequest, Response, SuccessResponse
from gemini_mcp.infrastructure.logging.logger import log_event, logger
from gemini_mcp.infrastructure.metrics import MetricsRecorder
from gemini_mcp.middleware.rate_limiter import DEFAULT_KEY, RateLimiter
from gemini_mcp.prompts import list_prompts, list_resources, read_resource
from gemini_mcp.protocol.validation import validate_envelope
from gemini_mcp.tools.definitions import list_tool_descriptors
from gemini_mcp.tools.handlers import ToolHandlers

PROTOCOL_VERSION = "2024-11-05"

Route = Callable[[JsonRpcRequest, Dict[str, Any]], Dict[str, Any]]


class Dispatcher:
    """把一条 JSON-RPC 消息转换为至多一个响应。

    限流器和工具处理器（以及其中的会话存储）都由外部注入，
    Dispatcher 本身在请求之间不保存状态。
    """

    def __init__(
        self,
        tools: ToolHandlers,
        rate_limiter: RateLimiter,
        metrics: Optional[MetricsRecorder] = None,
        rate_limit_key: str = DEFAULT_KEY,
    ):
        self._tools = tools
        self._rate_limiter = rate_limiter
        self._metrics = metrics or MetricsRecorder(enabled=False)
        self._rate_limit_key = rate_limit_key
        self._routes: Dict[str, Route] = {
            "initialize": self._initialize,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "resources/list": self._resources_list,
            "resources/read": self._resources_read,
            "prompts/list": self._prompts_list,
        }

    def handle_line(self, line: str) -> Optional[Dict[str, Any]]:
        """处理一行输入，返回需要写出的响应（可能为 None）。"""
        text = line.strip()
        if not text:
            return None
        try:
            message = json.loads(text)
        except ValueError as exc:
            log_event(logging.ERROR, "Failed to parse message", {}, error=str(exc), length=len(text))
            return None
        return self.handle_message(message)

    def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        msg_id = message.get("id") if isinstance(message, dict) else None
        if msg_id is None:
            method = message.get("method") if isinstance(message, dict) else None
            log_event(logging.DEBUG, "Notification received, no response sent", {}, method=method)
            return None

        try:
            validate_envelope(message)
            self._rate_limiter.check(self._rate_limit_key)
        except McpError as exc:
            log_event(logging.WARNING, "Request rejected", {"request_id": msg_id}, code=exc.code, error=exc.message)
            return exc.to_response(msg_id)

        request = JsonRpcRequest.from_message(message)
        return self.dispatch(request).to_dict()

    def dispatch(self, request: JsonRpcRequest) -> Response:
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "request_id": request.id,
            "method": request.method,
        }
        route = self._routes.get(request.method)
        if route is None:
            log_event(logging.WARNING, "Method not found", log_ctx)
            return self._failure(request.id, MethodNotFoundError())

        log_event(logging.INFO, "Received request", log_ctx)
        try:
            response: Response = SuccessResponse(request.id, route(request, log_ctx))
        except McpError as exc:
            log_event(logging.WARNING, "Request failed", log_ctx, code=exc.code, error=exc.message)
            response = self._failure(request.id, exc)
        except Exception as exc:
            logger.error(
                "Unhandled error while handling request",
                exc_info=True,
                extra={"extra": dict(log_ctx, error=str(exc))},
            )
            response = self._failure(request.id, InternalError(str(exc) or None))
        log_event(
            logging.INFO,
            "Sending response",
            log_ctx,
            outcome="error" if isinstance(response, ErrorResponse) else "success",
        )
        return response

    @staticmethod
    def _failure(msg_id: Any, exc: McpError) -> ErrorResponse:
        return ErrorResponse(msg_id, exc.code, exc.message, exc.data)

    # ---- 路由 ----

    def _initialize(self, request: JsonRpcRequest, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
        }

    def _tools_list(self, request: JsonRpcRequest, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": list_tool_descriptors()}

    def _tools_call(self, request: JsonRpcRequest, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        params = request.params or {}
        name = params.get("name")
        timer = self._metrics.start(str(name), request.id)
        try:
            result = self._tools.call(name, params.get("arguments"), log_ctx)
        except McpError as exc:
            self._metrics.finish(timer, "error", error_code=exc.code)
            raise
        except Exception:
            self._metrics.finish(timer, "error", error_code=int(ErrorCode.INTERNAL))
            raise
        if timer is not None:
            self._metrics.finish(timer, "success", response_bytes=len(json.dumps(result).encode("utf-8")))
        return result

    def _resources_list(self, request: JsonRpcRequest, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        return {"resources": list_resources()}

    def _resources_read(self, request: JsonRpcRequest, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        return read_resource((request.params or {}).get("uri"))

    def _prompts_list(self, request: JsonRpcRequest, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompts": list_prompts()}
