"""Gemini MCP Server 顶层包。

该包把 Google Gemini 生成式 API 以一组 "工具" 的形式暴露出来，
通过标准输入/输出上的行分隔 JSON-RPC 2.0 协议与客户端通信，
包括配置加载、协议校验、限流、重试、会话历史与工具分发等能力。
"""

__version__ = "1.0.0"

SERVER_NAME = "gemini-mcp"

__all__ = ["__version__", "SERVER_NAME"]
