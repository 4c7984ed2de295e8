from gemini_mcp.middleware.rate_limiter import RateLimiter

__all__ = ["RateLimiter"]
