"""工具描述定义。

这些 dataclass 描述了 tools/list 暴露给客户端的工具 schema：
- ToolParam: 单个参数的 JSON Schema 片段。
- ToolDef: 工具名、说明、参数表，以及对应的 pydantic 参数模型。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Type

from gemini_mcp.providers.registry import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    EMBEDDING_MODELS,
    GEMINI_MODELS,
    MODEL_FILTERS,
    VISION_MODELS,
)
from gemini_mcp.prompts.help import HELP_TOPICS
from gemini_mcp.tools.params import (
    AnalyzeImageParams,
    CountTokensParams,
    EmbedTextParams,
    GenerateTextParams,
    GetHelpParams,
    ListModelsParams,
    ToolParams,
)


@dataclass(frozen=True)
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass(frozen=True)
class ToolDef:
    """一个可供客户端调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam]
    params_model: Type[ToolParams]

    def to_descriptor(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            schema = dict(param.schema or {"type": "string"})
            if param.description:
                schema["description"] = param.description
            properties[name] = schema
            if param.required:
                required.append(name)
        input_schema: Dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            input_schema["required"] = required
        return {"name": self.name, "description": self.description, "inputSchema": input_schema}


def _params(*items: ToolParam) -> Dict[str, ToolParam]:
    return {p.name: p for p in items}


GENERATE_TEXT = ToolDef(
    name="generate_text",
    description="Generate text using Google Gemini with advanced features",
    params=_params(
        ToolParam("prompt", "The prompt to send to Gemini", True, {"type": "string"}),
        ToolParam(
            "model",
            "Specific Gemini model to use",
            False,
            {"type": "string", "enum": list(GEMINI_MODELS), "default": DEFAULT_MODEL},
        ),
        ToolParam("systemInstruction", "System instruction to guide model behavior", False, {"type": "string"}),
        ToolParam(
            "temperature",
            "Temperature for generation (0-2)",
            False,
            {"type": "number", "default": DEFAULT_TEMPERATURE, "minimum": 0, "maximum": 2},
        ),
        ToolParam(
            "maxTokens",
            "Maximum tokens to generate",
            False,
            {"type": "number", "default": DEFAULT_MAX_TOKENS, "minimum": 1, "maximum": 8192},
        ),
        ToolParam(
            "topK",
            "Top-k sampling parameter",
            False,
            {"type": "number", "default": DEFAULT_TOP_K, "minimum": 1, "maximum": 100},
        ),
        ToolParam(
            "topP",
            "Top-p (nucleus) sampling parameter",
            False,
            {"type": "number", "default": DEFAULT_TOP_P, "minimum": 0, "maximum": 1},
        ),
        ToolParam("jsonMode", "Enable JSON mode for structured output", False, {"type": "boolean", "default": False}),
        ToolParam(
            "jsonSchema",
            "JSON schema as a string for structured output (when jsonMode is true)",
            False,
            {"type": "string"},
        ),
        ToolParam(
            "grounding",
            "Enable Google Search grounding for up-to-date information",
            False,
            {"type": "boolean", "default": False},
        ),
        ToolParam("safetySettings", "Safety settings as JSON string for content filtering", False, {"type": "string"}),
        ToolParam("conversationId", "ID for maintaining conversation context", False, {"type": "string"}),
    ),
    params_model=GenerateTextParams,
)

ANALYZE_IMAGE = ToolDef(
    name="analyze_image",
    description="Analyze images using Gemini vision capabilities",
    params=_params(
        ToolParam("prompt", "Question or instruction about the image", True, {"type": "string"}),
        ToolParam("imageUrl", "URL of the image to analyze", False, {"type": "string"}),
        ToolParam("imageBase64", "Base64-encoded image data (alternative to URL)", False, {"type": "string"}),
        ToolParam(
            "model",
            "Vision-capable Gemini model",
            False,
            {"type": "string", "enum": list(VISION_MODELS), "default": DEFAULT_MODEL},
        ),
    ),
    params_model=AnalyzeImageParams,
)

COUNT_TOKENS = ToolDef(
    name="count_tokens",
    description="Count tokens for a given text with a specific model",
    params=_params(
        ToolParam("text", "Text to count tokens for", True, {"type": "string"}),
        ToolParam(
            "model",
            "Model to use for token counting",
            False,
            {"type": "string", "enum": list(GEMINI_MODELS), "default": DEFAULT_MODEL},
        ),
    ),
    params_model=CountTokensParams,
)

LIST_MODELS = ToolDef(
    name="list_models",
    description="List all available Gemini models and their capabilities",
    params=_params(
        ToolParam("filter", "Filter models by capability", False, {"type": "string", "enum": list(MODEL_FILTERS)}),
    ),
    params_model=ListModelsParams,
)

EMBED_TEXT = ToolDef(
    name="embed_text",
    description="Generate embeddings for text using Gemini embedding models",
    params=_params(
        ToolParam("text", "Text to generate embeddings for", True, {"type": "string"}),
        ToolParam(
            "model",
            "Embedding model to use",
            False,
            {"type": "string", "enum": list(EMBEDDING_MODELS), "default": DEFAULT_EMBEDDING_MODEL},
        ),
    ),
    params_model=EmbedTextParams,
)

GET_HELP = ToolDef(
    name="get_help",
    description="Get help and usage information for the Gemini MCP server",
    params=_params(
        ToolParam(
            "topic",
            "Help topic to get information about",
            False,
            {"type": "string", "enum": list(HELP_TOPICS), "default": "overview"},
        ),
    ),
    params_model=GetHelpParams,
)

TOOLS: Mapping[str, ToolDef] = {
    t.name: t for t in (GENERATE_TEXT, ANALYZE_IMAGE, COUNT_TOKENS, LIST_MODELS, EMBED_TEXT, GET_HELP)
}


def list_tool_descriptors() -> List[Dict[str, Any]]:
    return [t.to_descriptor() for t in TOOLS.values()]
