"""Gemini REST Provider 适配器。

- URL: {base_url}/models/{model}:generateContent | :countTokens | :embedContent，以及 GET {base_url}/models
- 认证: x-goog-api-key: <api_key>

上游失败在这里一次性归类：
- 401/403、UNAUTHENTICATED/PERMISSION_DENIED 或 API_KEY_INVALID -> AuthenticationError
- httpx 超时 -> RequestTimeoutError
- 其他网络错误 -> UpstreamApiError(status=UNAVAILABLE)，可重试
- 其余 HTTP 错误 -> handle_gemini_error(响应体)
"""

from typing import Any, Dict, List, Optional

import httpx

from gemini_mcp.config.settings import DEFAULT_BASE_URL
from gemini_mcp.domain.exceptions import (
    AuthenticationError,
    RequestTimeoutError,
    UpstreamApiError,
    UpstreamCause,
    UpstreamStatus,
)
from gemini_mcp.domain.models import GenerateRequest, GenerateResult, Message
from gemini_mcp.providers.retry import handle_gemini_error

_AUTH_STATUSES = (UpstreamStatus.UNAUTHENTICATED, UpstreamStatus.PERMISSION_DENIED)


class GeminiClient:
    """Gemini Provider 客户端实现。"""

    name = "gemini"

    def __init__(self, cfg):
        self._settings = cfg

    # ---- 能力 ----

    def generate(self, req: GenerateRequest) -> GenerateResult:
        data = self._post(f"models/{req.model}:generateContent", req.to_payload())
        return self._parse_generate(data)

    def count_tokens(self, model: str, contents: List[Message]) -> int:
        data = self._post(f"models/{model}:countTokens", {"contents": [m.to_payload() for m in contents]})
        total = data.get("totalTokens")
        return total if isinstance(total, int) else 0

    def embed(self, model: str, text: str) -> List[float]:
        payload = {"model": f"models/{model}", "content": {"parts": [{"text": text}]}}
        data = self._post(f"models/{model}:embedContent", payload)
        values = (data.get("embedding") or {}).get("values") or []
        return [float(v) for v in values]

    def list_models(self) -> List[Dict[str, Any]]:
        data = self._send("GET", "models")
        return list(data.get("models") or [])

    # ---- HTTP ----

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("POST", path, payload)

    def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self._base_url()}/{path}"
        headers = {
            "x-goog-api-key": self._settings.gemini_api_key,
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self._timeout(), trust_env=False) as client:
                if method == "GET":
                    resp = client.get(url, headers=headers)
                else:
                    resp = client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException:
            raise RequestTimeoutError(f"Request timeout after {self._settings.request_timeout}ms")
        except httpx.RequestError as e:
            raise UpstreamApiError(
                f"Network error: {e}",
                UpstreamCause(status=UpstreamStatus.UNAVAILABLE, message=str(e)),
            )
        if resp.status_code >= 400:
            raise self._classify_error(resp)
        data = self._safe_json(resp)
        if not isinstance(data, dict):
            raise UpstreamApiError(
                "Invalid response from Gemini API",
                UpstreamCause(code=resp.status_code, message="response body is not a JSON object"),
            )
        return data

    def _classify_error(self, resp) -> Exception:
        body = self._safe_json(resp)
        error = handle_gemini_error(body if body is not None else resp.text, resp.status_code)
        if resp.status_code in (401, 403) or error.cause.status in _AUTH_STATUSES or self._is_key_invalid(body):
            return AuthenticationError(error.cause.message or "Invalid API key", data=error.data)
        return error

    @staticmethod
    def _is_key_invalid(body: Any) -> bool:
        error = body.get("error") if isinstance(body, dict) else None
        details = error.get("details") if isinstance(error, dict) else None
        if not isinstance(details, list):
            return False
        return any(isinstance(d, dict) and d.get("reason") == "API_KEY_INVALID" for d in details)

    @staticmethod
    def _safe_json(resp) -> Any:
        try:
            return resp.json()
        except ValueError:
            return None

    def _base_url(self) -> str:
        return (getattr(self._settings, "gemini_base_url", None) or DEFAULT_BASE_URL).rstrip("/")

    def _timeout(self) -> float:
        return self._settings.request_timeout / 1000.0

    # ---- 解析 ----

    @staticmethod
    def _parse_generate(data: Dict[str, Any]) -> GenerateResult:
        candidates = data.get("candidates") or []
        first = candidates[0] if candidates else {}
        parts = ((first.get("content") or {}).get("parts")) or []
        # thought part 是模型的思考过程，不计入输出
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought"))
        usage = data.get("usageMetadata") or {}
        return GenerateResult(
            text=text,
            finish_reason=first.get("finishReason"),
            total_tokens=usage.get("totalTokenCount"),
            candidates_count=len(candidates) or 1,
        )
