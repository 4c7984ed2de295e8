"""领域层模型与协议。

包含：
- models: JSON-RPC 请求/响应、消息与上游调用的统一数据结构。
- conversation: 会话历史存储 ConversationStore。
- exceptions: 带固定错误码的异常类型定义。
"""
