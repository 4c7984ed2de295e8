"""工具描述、参数模型与处理器。"""
