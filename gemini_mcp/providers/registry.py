"""Gemini 模型能力表。

静态配置：模型名 -> 描述、特性集合、上下文窗口、是否为 thinking 模型。
list_models 的过滤与 generate_text 的 grounding 判定都查询此表。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_EMBEDDING_MODEL = "text-embedding-004"

# 默认采样参数
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TOP_K = 40
DEFAULT_TOP_P = 0.95


@dataclass(frozen=True)
class ModelInfo:
    """单个模型的能力描述。"""

    name: str
    description: str
    features: Tuple[str, ...]
    context_window: int
    thinking: bool = False

    def supports(self, feature: str) -> bool:
        return feature in self.features

    def to_dict(self, include_name: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if include_name:
            data["name"] = self.name
        data.update(
            {
                "description": self.description,
                "features": list(self.features),
                "contextWindow": self.context_window,
            }
        )
        if self.thinking:
            data["thinking"] = True
        return data


_FULL = ("function_calling", "json_mode", "grounding", "system_instructions")
_NO_GROUNDING = ("function_calling", "json_mode", "system_instructions")

GEMINI_MODELS: Mapping[str, ModelInfo] = {
    m.name: m
    for m in (
        # 2.5 系列 thinking 模型
        ModelInfo(
            "gemini-2.5-pro",
            "Most capable thinking model, best for complex reasoning and coding",
            ("thinking",) + _FULL,
            2_000_000,
            thinking=True,
        ),
        ModelInfo(
            "gemini-2.5-flash",
            "Fast thinking model with best price/performance ratio",
            ("thinking",) + _FULL,
            1_000_000,
            thinking=True,
        ),
        ModelInfo(
            "gemini-2.5-flash-lite",
            "Ultra-fast, cost-efficient thinking model for high-throughput tasks",
            ("thinking",) + _NO_GROUNDING,
            1_000_000,
            thinking=True,
        ),
        # 2.0 系列
        ModelInfo("gemini-2.0-flash", "Fast, efficient model with 1M context window", _FULL, 1_000_000),
        ModelInfo("gemini-2.0-flash-lite", "Most cost-efficient model for simple tasks", _NO_GROUNDING, 1_000_000),
        ModelInfo(
            "gemini-2.0-pro-experimental",
            "Experimental model with 2M context, excellent for coding",
            _FULL,
            2_000_000,
        ),
        # 旧版本，保持兼容
        ModelInfo("gemini-1.5-pro", "Previous generation pro model", _NO_GROUNDING, 2_000_000),
        ModelInfo("gemini-1.5-flash", "Previous generation fast model", _NO_GROUNDING, 1_000_000),
    )
}

VISION_MODELS: Tuple[str, ...] = ("gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.0-flash")
EMBEDDING_MODELS: Tuple[str, ...] = ("text-embedding-004", "text-multilingual-embedding-002")

MODEL_FILTERS: Tuple[str, ...] = ("all", "thinking", "vision", "grounding", "json_mode")


def get_model_info(name: str) -> Optional[ModelInfo]:
    return GEMINI_MODELS.get(name)


def _matches(info: ModelInfo, filter_name: str) -> bool:
    if filter_name == "thinking":
        return info.thinking
    if filter_name == "vision":
        # 当前所有支持 function_calling 的模型都支持图像输入
        return info.supports("function_calling")
    if filter_name in ("grounding", "json_mode"):
        return info.supports(filter_name)
    return True


def filter_models(filter_name: Optional[str] = None) -> List[ModelInfo]:
    """按能力过滤模型；为空、"all" 或未知过滤器时返回完整列表。"""
    models = list(GEMINI_MODELS.values())
    if not filter_name or filter_name == "all":
        return models
    return [m for m in models if _matches(m, filter_name)]


def models_as_dict() -> Dict[str, Dict[str, Any]]:
    """gemini://models 资源使用的 name -> 能力 映射。"""
    return {name: info.to_dict(include_name=False) for name, info in GEMINI_MODELS.items()}
