"""Configuration for Xiangxin AI guardrails clients.

Provides the client configuration dataclass and the environment variable
helpers used to build it.

Exports:
    - ConfigError: Exception for configuration errors
    - _get_env, _int_env, _float_env: Environment helpers
    - ClientConfig: Settings shared by the blocking and async clients
    - load_client_config: Load client settings from environment
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Optional


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


def _get_env(key: str, default: Optional[str] = None, required: bool = False) -> str:
    value = os.getenv(key, default)
    if required and (value is None or value == ""):
        raise ConfigError(f"Missing required environment variable: {key}")
    if value is None:
        raise ConfigError(f"Environment variable {key} is not set and no default provided")
    if value == "" and default is None:
        raise ConfigError(f"Environment variable {key} is empty and no default provided")
    return value


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid int for {key}: {raw}") from exc


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid float for {key}: {raw}") from exc


SDK_VERSION = "2.6.0"
USER_AGENT = f"xiangxinai-python/{SDK_VERSION}"
ASYNC_USER_AGENT = f"xiangxinai-python-async/{SDK_VERSION}"

# Default values for the guardrails service
DEFAULT_BASE_URL = "https://api.xiangxinai.cn/v1"
DEFAULT_MODEL = "Xiangxin-Guardrails-Text"
DEFAULT_VISION_MODEL = "Xiangxin-Guardrails-VL"
DEFAULT_TIMEOUT_SEC = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_POOL_SIZE = 10


@dataclass(frozen=True)
class ClientConfig:
    """Settings for a guardrails client.

    One instance is passed to a client at construction; clients never read
    module-level state or the environment after that.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    vision_model: str = DEFAULT_VISION_MODEL
    timeout: float = DEFAULT_TIMEOUT_SEC
    max_retries: int = DEFAULT_MAX_RETRIES
    pool_connections: int = DEFAULT_POOL_SIZE
    pool_maxsize: int = DEFAULT_POOL_SIZE

    def __post_init__(self) -> None:
        if self.api_key is None or not str(self.api_key).strip():
            raise ConfigError("API key cannot be null or empty")
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "base_url", (self.base_url or DEFAULT_BASE_URL).rstrip("/"))
        object.__setattr__(self, "max_retries", max(0, int(self.max_retries)))

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


def load_client_config(**overrides: Any) -> ClientConfig:
    """Load client settings from environment variables.

    Keyword overrides with a non-None value take precedence over the
    environment.

    Raises:
        ConfigError: If the API key is missing or a numeric variable is malformed.
    """
    api_key = overrides.pop("api_key", None) or _get_env("XIANGXINAI_API_KEY", required=True)
    config = ClientConfig(
        api_key=api_key,
        base_url=_get_env("XIANGXINAI_BASE_URL", default=DEFAULT_BASE_URL),
        model=_get_env("XIANGXINAI_MODEL", default=DEFAULT_MODEL),
        vision_model=_get_env("XIANGXINAI_VISION_MODEL", default=DEFAULT_VISION_MODEL),
        timeout=_float_env("XIANGXINAI_TIMEOUT", default=DEFAULT_TIMEOUT_SEC),
        max_retries=_int_env("XIANGXINAI_MAX_RETRIES", default=DEFAULT_MAX_RETRIES),
    )
    return config.with_overrides(**overrides)
