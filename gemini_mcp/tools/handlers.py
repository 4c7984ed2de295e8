"""六个工具的执行逻辑。

每个处理器的流程相同：
1. 用 pydantic 参数模型校验 arguments（失败即 -32602，不会发起远程调用）。
2. 通过显式的请求构造器组装上游请求，只转发 schema 声明过的字段。
3. 远程调用包在 with_retry 里；会话历史只在调用成功后追加一次。
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from gemini_mcp.domain.conversation import ConversationStore
from gemini_mcp.domain.exceptions import McpError, ToolNotFoundError, ValidationError
from gemini_mcp.domain.models import GenerateRequest, GenerationConfig, Message
from gemini_mcp.infrastructure.logging.logger import log_event
from gemini_mcp.prompts.help import get_help_content
from gemini_mcp.protocol.validation import sanitize_string, validate_tool_params
from gemini_mcp.providers.base import GeminiService
from gemini_mcp.providers.registry import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    filter_models,
    get_model_info,
)
from gemini_mcp.providers.retry import with_retry
from gemini_mcp.tools.definitions import TOOLS
from gemini_mcp.tools.params import (
    AnalyzeImageParams,
    CountTokensParams,
    EmbedTextParams,
    GenerateTextParams,
    GetHelpParams,
    ListModelsParams,
)

T = TypeVar("T")

_DATA_URI = re.compile(r"^data:(.+?);base64,(.+)$", re.DOTALL)
RAW_IMAGE_MIME_TYPE = "image/jpeg"


def _or_default(value: Optional[T], default: T) -> T:
    return default if value is None else value


def text_result(text: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if metadata is not None:
        result["metadata"] = metadata
    return result


def image_part(image_url: Optional[str], image_base64: Optional[str]) -> Dict[str, Any]:
    """构造图片 part：URL 以文本引用形式发送，base64 支持 data URI 与裸数据。"""
    if image_url is not None:
        return {"text": f"[Image URL: {image_url}]"}
    match = _DATA_URI.match(image_base64 or "")
    if match:
        return {"inlineData": {"mimeType": match.group(1), "data": match.group(2)}}
    return {"inlineData": {"mimeType": RAW_IMAGE_MIME_TYPE, "data": image_base64}}


class ToolHandlers:
    """工具名 -> 处理器 的路由与执行。

    Args:
        service: 上游 Gemini 能力实现。
        store: 会话历史存储，由服务对象持有并注入。
        max_retry_attempts / retry_base_delay: with_retry 参数（毫秒）。
        sleep: 退避等待函数，测试中替换为记录调用的假函数。
    """

    def __init__(
        self,
        service: GeminiService,
        store: ConversationStore,
        max_retry_attempts: int = 3,
        retry_base_delay: int = 1000,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self._service = service
        self._store = store
        self._max_retry_attempts = max_retry_attempts
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._handlers: Dict[str, Callable[[Any, Dict[str, Any]], Dict[str, Any]]] = {
            "generate_text": self.generate_text,
            "analyze_image": self.analyze_image,
            "count_tokens": self.count_tokens,
            "list_models": self.list_models,
            "embed_text": self.embed_text,
            "get_help": self.get_help,
        }

    def call(self, name: Any, arguments: Any, log_ctx: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """校验参数并执行工具，返回 tools/call 的 result。"""
        if not isinstance(name, str) or name not in self._handlers:
            raise ToolNotFoundError(name)
        ctx = dict(log_ctx or {})
        ctx["tool"] = name
        params = validate_tool_params(TOOLS[name].params_model, arguments)
        return self._handlers[name](params, ctx)

    # ---- 远程工具 ----

    def generate_text(self, params: GenerateTextParams, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        model = _or_default(params.model, DEFAULT_MODEL)
        info = get_model_info(model)
        prompt = sanitize_string(params.prompt)
        system_instruction = None
        if params.system_instruction is not None:
            system_instruction = sanitize_string(params.system_instruction)

        config = GenerationConfig(
            temperature=_or_default(params.temperature, DEFAULT_TEMPERATURE),
            max_output_tokens=_or_default(params.max_tokens, DEFAULT_MAX_TOKENS),
            top_k=_or_default(params.top_k, DEFAULT_TOP_K),
            top_p=_or_default(params.top_p, DEFAULT_TOP_P),
        )
        if params.json_mode:
            config.response_mime_type = "application/json"
            config.response_schema = params.response_schema

        grounding = bool(params.grounding) and info is not None and info.supports("grounding")
        if params.grounding and not grounding:
            log_event(logging.INFO, "Grounding not supported by model, ignored", log_ctx, model=model)

        user_message = Message.text("user", prompt)
        conversation_id = params.conversation_id
        history: List[Message] = []
        if conversation_id is not None:
            history = self._store.get_history(conversation_id)

        req = GenerateRequest(
            model=model,
            contents=history + [user_message],
            system_instruction=system_instruction,
            generation_config=config,
            safety_settings=params.safety_settings,
            grounding=grounding,
        )
        log_event(
            logging.INFO,
            "Generating text",
            log_ctx,
            model=model,
            history_messages=len(history),
            conversation_id=conversation_id,
        )
        result = self._retry(lambda: self._service.generate(req), log_ctx)

        if conversation_id is not None:
            self._store.append(conversation_id, [user_message, Message.text("model", result.text)])

        return text_result(
            result.text,
            {
                "model": model,
                "tokensUsed": result.total_tokens,
                "candidatesCount": result.candidates_count,
                "finishReason": result.finish_reason,
            },
        )

    def analyze_image(self, params: AnalyzeImageParams, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        model = _or_default(params.model, DEFAULT_MODEL)
        prompt = sanitize_string(params.prompt)
        parts = [{"text": prompt}, image_part(params.image_url, params.image_base64)]
        req = GenerateRequest(model=model, contents=[Message(role="user", parts=parts)])
        log_event(
            logging.INFO,
            "Analyzing image",
            log_ctx,
            model=model,
            source="url" if params.image_url is not None else "base64",
        )
        try:
            result = self._retry(lambda: self._service.generate(req), log_ctx)
        except ValidationError:
            raise
        except McpError as exc:
            raise McpError(f"Image analysis failed: {exc.message}", code=exc.code, data=exc.data) from exc
        return text_result(result.text)

    def count_tokens(self, params: CountTokensParams, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        model = _or_default(params.model, DEFAULT_MODEL)
        contents = [Message.text("user", params.text)]
        total = self._retry(lambda: self._service.count_tokens(model, contents), log_ctx)
        return text_result(f"Token count: {total}", {"tokenCount": total, "model": model})

    def embed_text(self, params: EmbedTextParams, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        model = _or_default(params.model, DEFAULT_EMBEDDING_MODEL)
        values = self._retry(lambda: self._service.embed(model, params.text), log_ctx)
        return text_result(
            json.dumps({"embedding": values, "model": model}),
            {"model": model, "dimensions": len(values)},
        )

    # ---- 本地工具 ----

    def list_models(self, params: ListModelsParams, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        filter_name = params.filter or "all"
        models = [m.to_dict() for m in filter_models(filter_name)]
        return text_result(json.dumps(models, indent=2), {"count": len(models), "filter": filter_name})

    def get_help(self, params: GetHelpParams, log_ctx: Dict[str, Any]) -> Dict[str, Any]:
        return text_result(get_help_content(params.topic))

    def _retry(self, operation: Callable[[], T], log_ctx: Dict[str, Any]) -> T:
        return with_retry(
            operation,
            max_attempts=self._max_retry_attempts,
            base_delay=self._retry_base_delay,
            sleep=self._sleep,
            log_ctx=log_ctx,
        )
