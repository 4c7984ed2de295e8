"""工具参数模型（pydantic）。

线上字段名为 camelCase（maxTokens、imageBase64 ...），通过 alias_generator 映射；
未声明的字段会被忽略，不会转发到上游。
"""

import json
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from gemini_mcp.protocol.validation import validate_json
from gemini_mcp.providers.registry import EMBEDDING_MODELS, GEMINI_MODELS, VISION_MODELS


def _one_of(value: Optional[str], choices: Sequence[str]) -> Optional[str]:
    if value is not None and value not in choices:
        raise PydanticCustomError(
            "enum",
            "Invalid value '{value}', expected one of: {expected}",
            {"value": value, "expected": ", ".join(choices)},
        )
    return value


def _required_text(value: str, message: str) -> str:
    if not value:
        raise PydanticCustomError("required", message)
    return value


class ToolParams(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        protected_namespaces=(),
    )


class GenerateTextParams(ToolParams):
    prompt: StrictStr
    model: Optional[StrictStr] = None
    system_instruction: Optional[StrictStr] = None
    temperature: Optional[StrictFloat] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[StrictInt] = Field(default=None, ge=1, le=8192)
    top_k: Optional[StrictInt] = Field(default=None, ge=1, le=100)
    top_p: Optional[StrictFloat] = Field(default=None, ge=0, le=1)
    json_mode: Optional[StrictBool] = None
    json_schema: Optional[StrictStr] = None
    grounding: Optional[StrictBool] = None
    safety_settings: Optional[List[Dict[str, Any]]] = None
    conversation_id: Optional[StrictStr] = Field(default=None, min_length=1, max_length=100)

    @field_validator("prompt")
    @classmethod
    def _prompt_required(cls, v: str) -> str:
        return _required_text(v, "Prompt is required")

    @field_validator("model")
    @classmethod
    def _known_model(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, list(GEMINI_MODELS))

    @field_validator("max_tokens", "top_k", mode="before")
    @classmethod
    def _integral_number(cls, v: Any) -> Any:
        # JSON 客户端常把整数写成 100.0
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @field_validator("json_schema")
    @classmethod
    def _schema_is_json(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            json.loads(v)
        except ValueError:
            raise PydanticCustomError("json_invalid", "Must be valid JSON")
        return v

    @field_validator("safety_settings", mode="before")
    @classmethod
    def _parse_safety_settings(cls, v: Any) -> Any:
        # 线上格式为 JSON 字符串，也接受已解析的数组
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                raise PydanticCustomError("json_array", "Must be valid JSON array")
            if not isinstance(v, list):
                raise PydanticCustomError("json_array", "Must be valid JSON array")
        elif v is not None and not isinstance(v, list):
            raise PydanticCustomError("json_array", "Must be valid JSON array")
        return v

    @property
    def response_schema(self) -> Optional[Any]:
        return validate_json(self.json_schema) if self.json_schema is not None else None


class AnalyzeImageParams(ToolParams):
    prompt: StrictStr
    image_url: Optional[StrictStr] = None
    image_base64: Optional[StrictStr] = None
    model: Optional[StrictStr] = None

    @field_validator("prompt")
    @classmethod
    def _prompt_required(cls, v: str) -> str:
        return _required_text(v, "Prompt is required")

    @field_validator("image_url")
    @classmethod
    def _valid_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise PydanticCustomError("url", "Must be a valid URL")
        return v

    @field_validator("image_base64")
    @classmethod
    def _non_empty_image(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise PydanticCustomError("base64", "Must be valid base64 image data")
        return v

    @field_validator("model")
    @classmethod
    def _vision_model(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, VISION_MODELS)

    @model_validator(mode="after")
    def _exactly_one_image(self) -> "AnalyzeImageParams":
        if self.image_url is None and self.image_base64 is None:
            raise PydanticCustomError("image_source", "Either imageUrl or imageBase64 must be provided")
        if self.image_url is not None and self.image_base64 is not None:
            raise PydanticCustomError("image_source", "Provide only one of imageUrl or imageBase64")
        return self


class CountTokensParams(ToolParams):
    text: StrictStr
    model: Optional[StrictStr] = None

    @field_validator("text")
    @classmethod
    def _text_required(cls, v: str) -> str:
        return _required_text(v, "Text is required")

    @field_validator("model")
    @classmethod
    def _known_model(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, list(GEMINI_MODELS))


class ListModelsParams(ToolParams):
    # 未知过滤器不报错，返回完整列表
    filter: Optional[StrictStr] = None


class EmbedTextParams(ToolParams):
    text: StrictStr
    model: Optional[StrictStr] = None

    @field_validator("text")
    @classmethod
    def _text_required(cls, v: str) -> str:
        return _required_text(v, "Text is required")

    @field_validator("model")
    @classmethod
    def _embedding_model(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, EMBEDDING_MODELS)


class GetHelpParams(ToolParams):
    # 未知主题返回兜底说明
    topic: Optional[StrictStr] = None
