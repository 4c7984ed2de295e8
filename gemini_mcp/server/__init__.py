from gemini_mcp.server.dispatcher import Dispatcher, PROTOCOL_VERSION
from gemini_mcp.server.stdio import StdioServer

__all__ = ["Dispatcher", "PROTOCOL_VERSION", "StdioServer"]
