import pytest

from gemini_mcp.config.settings import Settings, load_settings
from gemini_mcp.domain.exceptions import ConfigurationError

ENV_NAMES = [
    "GEMINI_API_KEY",
    "LOG_LEVEL",
    "RATE_LIMIT_ENABLED",
    "RATE_LIMIT_REQUESTS",
    "RATE_LIMIT_WINDOW",
    "REQUEST_TIMEOUT",
    "ENVIRONMENT",
    "NODE_ENV",
    "GEMINI_MCP_CONFIG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    # 避免读到工作目录下的 config.yaml
    monkeypatch.chdir(tmp_path)


def test_defaults(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "AIzaSyExampleKey0000")
    s = load_settings(_env_file=None)
    assert s.gemini_api_key == "AIzaSyExampleKey0000"
    assert s.gemini_base_url == "https://generativelanguage.googleapis.com/v1beta"
    assert s.log_level == "info"
    assert s.rate_limit_enabled is True
    assert s.rate_limit_requests == 100
    assert s.rate_limit_window == 60000
    assert s.request_timeout == 30000
    assert s.max_retry_attempts == 3
    assert s.environment == "production"
    assert s.is_development is False


def test_missing_api_key_prevents_startup():
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(_env_file=None)
    err = exc_info.value
    assert err.message.startswith("Configuration validation failed:\n")
    assert "GEMINI_API_KEY is required" in err.message
    assert len(err.violations) == 1


def test_violations_are_aggregated(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "lots")
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    monkeypatch.setenv("REQUEST_TIMEOUT", "0")
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(_env_file=None)
    violations = exc_info.value.violations
    assert len(violations) == 3
    assert any(v.startswith("rate_limit_requests:") for v in violations)
    assert any(v.startswith("log_level:") for v in violations)
    assert any(v.startswith("request_timeout:") for v in violations)
    for v in violations:
        assert v in exc_info.value.message


def test_env_values_are_parsed(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "5")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("ENVIRONMENT", "development")
    s = load_settings(_env_file=None)
    assert s.rate_limit_enabled is False
    assert s.rate_limit_requests == 5
    assert s.log_level == "warn"
    assert s.is_development is True


def test_node_env_sets_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    monkeypatch.setenv("NODE_ENV", "development")
    assert load_settings(_env_file=None).environment == "development"

    monkeypatch.setenv("ENVIRONMENT", "test")
    assert load_settings(_env_file=None).environment == "test"


def test_yaml_config_file(monkeypatch, tmp_path):
    cfg = tmp_path / "custom.yaml"
    cfg.write_text("gemini_api_key: from-yaml\nrate_limit_window: 1234\n", encoding="utf-8")
    monkeypatch.setenv("GEMINI_MCP_CONFIG_FILE", str(cfg))
    s = load_settings(_env_file=None)
    assert s.gemini_api_key == "from-yaml"
    assert s.rate_limit_window == 1234


def test_env_overrides_yaml(monkeypatch, tmp_path):
    (tmp_path / "config.yaml").write_text("gemini_api_key: yaml\nrate_limit_requests: 7\n", encoding="utf-8")
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "9")
    s = load_settings(_env_file=None)
    assert s.gemini_api_key == "yaml"
    assert s.rate_limit_requests == 9


def test_mask_api_key():
    assert Settings(_env_file=None, gemini_api_key="AIzaSyABCDEFGHIJ1234").mask_api_key() == "AIzaSyAB...1234"
    assert Settings(_env_file=None, gemini_api_key="short").mask_api_key() == "***masked***"
