"""上游服务抽象接口。

工具处理器不直接依赖 HTTP 客户端，而是依赖此协议：

- GeminiClient 通过 REST API 实现它。
- 测试中用内存假实现替换，记录每次收到的请求。
"""

from typing import Any, Dict, List, Protocol

from gemini_mcp.domain.models import GenerateRequest, GenerateResult, Message


class GeminiService(Protocol):
    """Gemini 能力协议。

    实现者需要提供：
    - generate(req): 一次 generateContent 调用。
    - count_tokens(model, contents): 返回 totalTokens。
    - embed(model, text): 返回嵌入向量。
    - list_models(): 返回上游可用模型的原始描述。
    """

    name: str

    def generate(self, req: GenerateRequest) -> GenerateResult:
        ...

    def count_tokens(self, model: str, contents: List[Message]) -> int:
        ...

    def embed(self, model: str, text: str) -> List[float]:
        ...

    def list_models(self) -> List[Dict[str, Any]]:
        ...
