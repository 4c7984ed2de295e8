from gemini_mcp.infrastructure.logging.logger import JsonFormatter, log_event, logger, setup_logger

__all__ = ["JsonFormatter", "log_event", "logger", "setup_logger"]
