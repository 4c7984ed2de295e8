"""帮助文本加载。

帮助内容以 markdown 文件保存在 prompts/docs 目录，按主题名读取。
"""

from pathlib import Path
from typing import Optional, Tuple

DOCS_DIR = Path(__file__).resolve().parent / "docs"

HELP_TOPICS: Tuple[str, ...] = ("overview", "tools", "models", "parameters", "examples", "quick-start")
DEFAULT_TOPIC = "overview"

UNKNOWN_TOPIC_TEXT = "Unknown help topic. Available topics: " + ", ".join(HELP_TOPICS)


def load_doc(name: str) -> str:
    return (DOCS_DIR / f"{name}.md").read_text(encoding="utf-8").rstrip("\n")


def get_help_content(topic: Optional[str] = None) -> str:
    """返回主题对应的帮助文本；为空时使用 overview，未知主题返回兜底说明。"""
    topic = topic or DEFAULT_TOPIC
    if topic not in HELP_TOPICS:
        return UNKNOWN_TOPIC_TEXT
    return load_doc(topic)
