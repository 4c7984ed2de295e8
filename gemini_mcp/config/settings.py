"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
配置无效时启动直接失败，并给出聚合后的违规列表。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gemini_mcp.domain.exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

LogLevel = Literal["error", "warn", "info", "debug"]
Environment = Literal["development", "production", "test"]


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("GEMINI_MCP_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(Path.cwd() / "config.yaml")

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Gemini API ----
    gemini_api_key: str = Field(
        default="",
        validate_default=True,
        description="Gemini API 密钥（必填）",
    )
    gemini_base_url: str = Field(default=DEFAULT_BASE_URL, description="Gemini REST API 基础URL")

    # ---- 日志与指标 ----
    log_level: LogLevel = Field(default="info", description="日志级别")
    log_dir: Optional[str] = Field(default=None, description="JSON 日志文件目录，为空时只输出到 stderr")
    enable_metrics: bool = Field(default=False, description="是否记录每次工具调用的耗时与结果")

    # ---- 限流 ----
    rate_limit_enabled: bool = Field(default=True, description="是否启用本地限流")
    rate_limit_requests: int = Field(default=100, ge=1, description="窗口内允许的最大请求数")
    rate_limit_window: int = Field(default=60000, ge=1, description="限流窗口（毫秒）")

    # ---- 超时与重试 ----
    request_timeout: int = Field(default=30000, ge=1, description="上游请求超时（毫秒）")
    max_retry_attempts: int = Field(default=3, ge=1, le=10, description="上游可重试错误的最大尝试次数")
    retry_base_delay: int = Field(default=1000, ge=0, description="指数退避的基础延迟（毫秒）")

    # NODE_ENV 兼容旧的部署环境文件
    environment: Environment = Field(
        default="production",
        validation_alias=AliasChoices("environment", "node_env"),
        description="运行环境",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("gemini_api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("GEMINI_API_KEY is required")
        return v.strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            if v == "warning":
                return "warn"
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def mask_api_key(self) -> str:
        """只显示前 8 位和后 4 位，用于启动日志。"""
        key = self.gemini_api_key
        if len(key) <= 12:
            return "***masked***"
        return f"{key[:8]}...{key[-4:]}"


def _format_violations(exc: ValidationError) -> List[str]:
    lines = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ()))
        lines.append(f"{path}: {err.get('msg')}" if path else str(err.get("msg")))
    return lines


def load_settings(**overrides: Any) -> Settings:
    """加载并校验配置，失败时抛出聚合了全部违规项的 ConfigurationError。"""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        violations = _format_violations(exc)
        message = "Configuration validation failed:\n" + "\n".join(violations)
        raise ConfigurationError(message, violations) from exc

