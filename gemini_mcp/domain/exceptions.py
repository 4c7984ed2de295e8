"""统一业务异常模型。

所有会映射为 JSON-RPC 错误响应的异常都继承自 McpError，
错误码属于对外协议的一部分，不允许随意修改。
Dispatcher 负责统一捕获并转换为 ErrorResponse。
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    """固定的 JSON-RPC 错误码。"""

    VALIDATION = -32602
    INTERNAL = -32603
    METHOD_NOT_FOUND = -32601
    AUTHENTICATION = -32001
    RATE_LIMIT = -32002
    TIMEOUT = -32003


class McpError(Exception):
    """协议层异常基类。

    Attributes:
        code: 数值错误码（见 ErrorCode）。
        message: 用户可读错误信息。
        data: 可选的诊断数据（例如上游原始错误），原样写入响应的 data 字段。
    """

    default_message = "Internal error"
    default_code = ErrorCode.INTERNAL

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None, data: Any = None):
        self.message = message if message is not None else self.default_message
        self.code = int(code if code is not None else self.default_code)
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    def to_response(self, msg_id: Any) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": msg_id, "error": self.to_error()}


class ValidationError(McpError):
    """信封结构或工具参数校验失败。"""

    default_message = "Invalid parameters"
    default_code = ErrorCode.VALIDATION

    def __init__(self, message: Optional[str] = None, data: Any = None):
        super().__init__(message, data=data)


class AuthenticationError(McpError):
    """API 密钥无效或没有权限。"""

    default_message = "Invalid API key"
    default_code = ErrorCode.AUTHENTICATION

    def __init__(self, message: Optional[str] = None, data: Any = None):
        super().__init__(message, data=data)


class RateLimitError(McpError):
    """本地滑动窗口限流被触发。

    retry_after 为距离窗口重置的剩余秒数（向上取整）。
    """

    default_message = "Rate limit exceeded"
    default_code = ErrorCode.RATE_LIMIT

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        data = {"retryAfter": retry_after} if retry_after is not None else None
        super().__init__(message, data=data)


class RequestTimeoutError(McpError):
    """上游调用超过配置的超时时间。"""

    default_message = "Request timeout"
    default_code = ErrorCode.TIMEOUT

    def __init__(self, message: Optional[str] = None, data: Any = None):
        super().__init__(message, data=data)


class UpstreamStatus(str, Enum):
    """Gemini API 返回的 google.rpc 状态码（仅列出会出现的取值）。"""

    OK = "OK"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    ABORTED = "ABORTED"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    UNIMPLEMENTED = "UNIMPLEMENTED"
    INTERNAL = "INTERNAL"
    UNAVAILABLE = "UNAVAILABLE"
    DATA_LOSS = "DATA_LOSS"

    @classmethod
    def parse(cls, value: Any) -> Optional["UpstreamStatus"]:
        if not isinstance(value, str) or not value:
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class UpstreamCause:
    """上游失败的结构化原因，在收到 HTTP 响应的位置一次性确定。"""

    status: Optional[UpstreamStatus] = None
    code: Optional[int] = None
    message: Optional[str] = None
    raw: Any = None

    def to_data(self) -> Dict[str, Any]:
        if isinstance(self.raw, dict):
            return dict(self.raw)
        data: Dict[str, Any] = {}
        if self.code is not None:
            data["code"] = self.code
        if self.status is not None:
            data["status"] = self.status.value
        if self.message:
            data["message"] = self.message
        return data


class UpstreamApiError(McpError):
    """Gemini API 调用失败，cause 携带原始错误信息。"""

    default_message = "Gemini API error"
    default_code = ErrorCode.INTERNAL

    def __init__(self, message: Optional[str] = None, cause: Optional[UpstreamCause] = None):
        self.cause = cause or UpstreamCause()
        super().__init__(message, data=self.cause.to_data() or None)


class InternalError(McpError):
    """未归类的内部错误。"""


class MethodNotFoundError(McpError):
    """未知的 JSON-RPC 方法。"""

    default_message = "Method not found"
    default_code = ErrorCode.METHOD_NOT_FOUND

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)


class ToolNotFoundError(MethodNotFoundError):
    """tools/call 请求了未注册的工具。"""

    def __init__(self, name: Any):
        self.tool_name = name
        super().__init__(f"Unknown tool: {name}")


class ConfigurationError(Exception):
    """启动阶段的配置错误，消息中聚合了全部违规项。"""

    def __init__(self, message: str, violations: Optional[list] = None):
        self.message = message
        self.violations = list(violations or [])
        super().__init__(message)
