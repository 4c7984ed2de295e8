"""配置加载：环境变量 / .env / config.yaml。"""

from gemini_mcp.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
