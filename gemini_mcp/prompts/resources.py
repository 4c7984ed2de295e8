"""resources/list 与 resources/read 的静态内容。"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping

from gemini_mcp.domain.exceptions import ValidationError
from gemini_mcp.prompts.help import get_help_content, load_doc
from gemini_mcp.providers.registry import models_as_dict


@dataclass(frozen=True)
class Resource:
    uri: str
    name: str
    description: str
    mime_type: str
    render: Callable[[], str]

    def to_descriptor(self) -> Dict[str, Any]:
        return {"uri": self.uri, "name": self.name, "description": self.description, "mimeType": self.mime_type}


def _usage_guide() -> str:
    return f"{get_help_content('overview')}\n\n{get_help_content('tools')}"


RESOURCES: Mapping[str, Resource] = {
    r.uri: r
    for r in (
        Resource(
            "gemini://models",
            "Available Gemini Models",
            "List of all available Gemini models and their capabilities",
            "application/json",
            lambda: json.dumps(models_as_dict(), indent=2),
        ),
        Resource(
            "gemini://capabilities",
            "API Capabilities",
            "Detailed information about Gemini API capabilities",
            "text/markdown",
            lambda: load_doc("capabilities"),
        ),
        Resource(
            "gemini://help/usage",
            "Usage Guide",
            "Complete guide on using all tools and features",
            "text/markdown",
            _usage_guide,
        ),
        Resource(
            "gemini://help/parameters",
            "Parameters Reference",
            "Detailed documentation of all parameters",
            "text/markdown",
            lambda: get_help_content("parameters"),
        ),
        Resource(
            "gemini://help/examples",
            "Examples",
            "Example usage patterns for common tasks",
            "text/markdown",
            lambda: get_help_content("examples"),
        ),
    )
}


def list_resources() -> List[Dict[str, Any]]:
    return [r.to_descriptor() for r in RESOURCES.values()]


def read_resource(uri: Any) -> Dict[str, Any]:
    """读取资源内容，返回 resources/read 的 result。"""
    if not uri:
        raise ValidationError("Missing required parameter: uri")
    resource = RESOURCES.get(uri) if isinstance(uri, str) else None
    if resource is None:
        raise ValidationError(f"Unknown resource: {uri}")
    return {"contents": [{"uri": resource.uri, "mimeType": resource.mime_type, "text": resource.render()}]}
