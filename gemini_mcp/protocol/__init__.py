"""JSON-RPC 信封与工具参数校验。"""
