"""Python SDK for the Xiangxin AI guardrails service.

Context-aware content-safety checks for prompts, model outputs, multi-turn
conversations and images, with blocking and asyncio clients.

Exports:
    - XiangxinAIClient, AsyncXiangxinAIClient: Service clients
    - ClientConfig, load_client_config, ConfigError: Configuration
    - Message, Role, TextPart, ImagePart, GuardrailRequest: Request models
    - GuardrailResponse, GuardrailResult, RiskLevel, SuggestAction, ...: Response models
    - XiangxinAIError and subclasses: Error taxonomy
"""

from xiangxinai.common.config import SDK_VERSION, ClientConfig, ConfigError, load_client_config
from xiangxinai.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ValidationError,
    XiangxinAIError,
)
from xiangxinai.models import (
    ComplianceResult,
    DataSecurityResult,
    GuardrailRequest,
    GuardrailResponse,
    GuardrailResult,
    ImagePart,
    ImageUrl,
    Message,
    RiskLevel,
    Role,
    SecurityResult,
    SuggestAction,
    TextPart,
)
from xiangxinai.client import XiangxinAIClient
from xiangxinai.async_client import AsyncXiangxinAIClient

__version__ = SDK_VERSION

__all__ = [
    # Clients
    "XiangxinAIClient",
    "AsyncXiangxinAIClient",
    # Config
    "ClientConfig",
    "ConfigError",
    "load_client_config",
    # Models
    "Message",
    "Role",
    "TextPart",
    "ImagePart",
    "ImageUrl",
    "GuardrailRequest",
    "GuardrailResponse",
    "GuardrailResult",
    "ComplianceResult",
    "SecurityResult",
    "DataSecurityResult",
    "RiskLevel",
    "SuggestAction",
    # Errors
    "XiangxinAIError",
    "AuthenticationError",
    "RateLimitError",
    "ValidationError",
    "NetworkError",
    "APIError",
]
