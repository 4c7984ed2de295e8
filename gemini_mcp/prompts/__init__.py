"""提示词模板、帮助文本与资源。

prompts/list 返回的是静态模板描述，服务端不会展开模板内容。
"""

from typing import Any, Dict, List

from gemini_mcp.prompts.help import HELP_TOPICS, get_help_content
from gemini_mcp.prompts.resources import list_resources, read_resource

PROMPTS: List[Dict[str, Any]] = [
    {
        "name": "code_review",
        "description": "Comprehensive code review with Gemini 2.5 Pro",
        "arguments": [
            {"name": "code", "description": "Code to review", "required": True},
            {"name": "language", "description": "Programming language", "required": False},
        ],
    },
    {
        "name": "explain_with_thinking",
        "description": "Deep explanation using Gemini 2.5 thinking capabilities",
        "arguments": [
            {"name": "topic", "description": "Topic to explain", "required": True},
            {"name": "level", "description": "Explanation level (beginner/intermediate/expert)", "required": False},
        ],
    },
    {
        "name": "creative_writing",
        "description": "Creative writing with style control",
        "arguments": [
            {"name": "prompt", "description": "Writing prompt", "required": True},
            {"name": "style", "description": "Writing style", "required": False},
            {"name": "length", "description": "Desired length", "required": False},
        ],
    },
]


def list_prompts() -> List[Dict[str, Any]]:
    return [dict(p, arguments=[dict(a) for a in p["arguments"]]) for p in PROMPTS]


__all__ = ["HELP_TOPICS", "PROMPTS", "get_help_content", "list_prompts", "list_resources", "read_resource"]
