import pytest

from gemini_mcp.config.settings import Settings
from gemini_mcp.domain.models import GenerateResult


class FakeGeminiService:
    """内存中的上游实现：记录请求，按队列抛出预设异常。"""

    name = "fake"

    def __init__(self, errors=None, text_prefix="reply"):
        self.errors = list(errors or [])
        self.text_prefix = text_prefix
        self.requests = []
        self.count_calls = []
        self.embed_calls = []

    def _maybe_fail(self):
        if self.errors:
            raise self.errors.pop(0)

    def generate(self, req):
        self.requests.append(req)
        self._maybe_fail()
        return GenerateResult(
            text=f"{self.text_prefix} {len(self.requests)}",
            finish_reason="STOP",
            total_tokens=7,
        )

    def count_tokens(self, model, contents):
        self.count_calls.append((model, contents))
        self._maybe_fail()
        return 42

    def embed(self, model, text):
        self.embed_calls.append((model, text))
        self._maybe_fail()
        return [0.1, 0.2, 0.3]

    def list_models(self):
        return []


class RecordingSleep:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def fake_service():
    return FakeGeminiService()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = {
            "gemini_api_key": "AIzaTestKey1234567890",
            "rate_limit_enabled": True,
            "rate_limit_requests": 100,
            "rate_limit_window": 60000,
            "max_retry_attempts": 3,
            "retry_base_delay": 1000,
            "enable_metrics": False,
            "environment": "test",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make
