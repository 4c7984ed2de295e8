"""请求校验工具。

纯函数集合：信封结构校验、工具参数校验、字符串清洗。
失败时抛出 ValidationError，本模块不写日志。
"""

import json
import re
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gemini_mcp.domain.exceptions import ValidationError
from gemini_mcp.domain.models import JSONRPC_VERSION

DEFAULT_MAX_LENGTH = 10000

# 保留 \t (0x09) 与 \n (0x0A)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

ParamsT = TypeVar("ParamsT", bound=BaseModel)


def validate_envelope(message: Any, allow_notification: bool = False) -> Dict[str, Any]:
    """检查 JSON-RPC 信封：jsonrpc == "2.0"、method 为非空字符串、id 存在。

    allow_notification 为 True 时允许缺少 id（通知）。
    """
    if not isinstance(message, dict):
        raise ValidationError("Request must be an object")
    if message.get("jsonrpc") != JSONRPC_VERSION:
        raise ValidationError('Invalid jsonrpc version, expected "2.0"')
    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise ValidationError("Method must be a non-empty string")
    if message.get("id") is None and not allow_notification:
        raise ValidationError("Request id is required")
    params = message.get("params")
    if params is not None and not isinstance(params, dict):
        raise ValidationError("Params must be an object")
    return message


def format_errors(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "Invalid value")
        parts.append(f"{path}: {msg}" if path else msg)
    return ", ".join(parts)


def validate_tool_params(model: Type[ParamsT], params: Any) -> ParamsT:
    """用 pydantic 模型校验工具参数，所有违规字段以逗号拼接进错误消息。"""
    try:
        return model.model_validate(params if params is not None else {})
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid parameters: {format_errors(exc)}") from exc


def sanitize_string(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    if not isinstance(value, str):
        raise ValidationError("Input must be a string")
    if len(value) > max_length:
        raise ValidationError(f"Input too long (max {max_length} characters)")
    return _CONTROL_CHARS.sub("", value)


def validate_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Invalid JSON format") from exc
