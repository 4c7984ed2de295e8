"""统一的协议与对话数据模型。

本模块定义了服务内部共享的标准数据结构：

- JsonRpcRequest: 已解析、不可变的 JSON-RPC 请求信封。
- SuccessResponse / ErrorResponse: 响应的两种形态（二者只出现其一）。
- Message: 一条会话消息（user/model），parts 直接对应 Gemini 的 Part 结构。
- GenerateRequest / GenerationConfig: 发往上游 generateContent 的显式请求。
- GenerateResult: 从上游响应解析出的统一结果。

Provider 适配器（GeminiClient）只依赖这些模型，
负责在 Gemini REST JSON 与这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

JSONRPC_VERSION = "2.0"

# Gemini 会话消息角色
Role = Literal["user", "model"]


@dataclass(frozen=True)
class JsonRpcRequest:
    """一条 JSON-RPC 请求。

    - id: 为 None 时表示通知（notification），不需要任何响应。
    - params: 原样保留的参数对象，缺省为 None。
    """

    method: str
    id: Any = None
    params: Optional[Dict[str, Any]] = None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> "JsonRpcRequest":
        params = message.get("params")
        return cls(
            method=message["method"],
            id=message.get("id"),
            params=params if isinstance(params, dict) else None,
            jsonrpc=message.get("jsonrpc", JSONRPC_VERSION),
        )


@dataclass(frozen=True)
class SuccessResponse:
    id: Any
    result: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"jsonrpc": JSONRPC_VERSION, "id": self.id, "result": self.result}


@dataclass(frozen=True)
class ErrorResponse:
    id: Any
    code: int
    message: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return {"jsonrpc": JSONRPC_VERSION, "id": self.id, "error": error}


Response = Union[SuccessResponse, ErrorResponse]


@dataclass
class Message:
    """一条会话消息，parts 中每一项是 Gemini Part（text / inlineData ...）。"""

    role: Role
    parts: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def text(cls, role: Role, text: str) -> "Message":
        return cls(role=role, parts=[{"text": text}])

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [dict(p) for p in self.parts]}


@dataclass
class GenerationConfig:
    """generateContent 的 generationConfig 字段，None 值不会发送。"""

    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Any] = None

    def to_payload(self) -> Dict[str, Any]:
        mapping = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
            "topK": self.top_k,
            "topP": self.top_p,
            "responseMimeType": self.response_mime_type,
            "responseSchema": self.response_schema,
        }
        return {k: v for k, v in mapping.items() if v is not None}


@dataclass
class GenerateRequest:
    """一次 generateContent 调用。

    只包含工具 schema 声明过的字段：
    - contents: 历史消息 + 本次用户消息（按发送顺序）。
    - system_instruction: 可选系统指令文本。
    - generation_config: 采样参数与 JSON 模式。
    - safety_settings: 已解析的安全设置数组。
    - grounding: 为 True 时附加 googleSearch 工具（由调用方确认模型支持）。
    """

    model: str
    contents: List[Message]
    system_instruction: Optional[str] = None
    generation_config: Optional[GenerationConfig] = None
    safety_settings: Optional[List[Dict[str, Any]]] = None
    grounding: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"contents": [m.to_payload() for m in self.contents]}
        if self.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": self.system_instruction}]}
        if self.generation_config is not None:
            config = self.generation_config.to_payload()
            if config:
                payload["generationConfig"] = config
        if self.safety_settings is not None:
            payload["safetySettings"] = self.safety_settings
        if self.grounding:
            payload["tools"] = [{"googleSearch": {}}]
        return payload


@dataclass
class GenerateResult:
    """generateContent 的统一结果。

    - text: 第一个候选中所有文本 part 的拼接。
    """

    text: str
    finish_reason: Optional[str] = None
    total_tokens: Optional[int] = None
    candidates_count: int = 1
