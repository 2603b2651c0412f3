"""Pydantic models for guardrails requests and responses.

Field names follow the service's JSON contract (`risk_level`,
`overall_risk_level`, `suggest_action`, ...), so models serialize and
deserialize without aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, Field, field_validator

MAX_CONTENT_LENGTH = 1_000_000
SAFE_RESPONSE_ID = "guardrails-safe-default"


# ============================================================================
# Enums
# ============================================================================


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    SYSTEM = "system"
    ASSISTANT = "assistant"


class RiskLevel(str, Enum):
    """Ordinal risk classification for one detection dimension."""

    NO_RISK = "no_risk"
    LOW_RISK = "low_risk"
    MEDIUM_RISK = "medium_risk"
    HIGH_RISK = "high_risk"


class SuggestAction(str, Enum):
    """Handling recommended by the service for the checked content."""

    PASS = "pass"
    REJECT = "reject"
    REPLACE = "replace"


# ============================================================================
# Request Models
# ============================================================================


class TextPart(BaseModel):
    """Text segment of a multimodal message."""

    type: Literal["text"] = "text"
    text: str

    model_config = {"frozen": True}


class ImageUrl(BaseModel):
    url: str

    model_config = {"frozen": True}


class ImagePart(BaseModel):
    """Image reference of a multimodal message, usually a base64 data URL."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl

    model_config = {"frozen": True}

    @classmethod
    def from_url(cls, url: str) -> "ImagePart":
        return cls(image_url=ImageUrl(url=url))


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class Message(BaseModel):
    """One conversation turn.

    Content is either plain text or an ordered list of typed parts. Plain
    text is kept verbatim and may not exceed MAX_CONTENT_LENGTH characters.
    """

    role: Role
    content: Union[str, List[ContentPart]] = ""

    model_config = {"frozen": True}

    @field_validator("content", mode="before")
    @classmethod
    def _check_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str) and len(value) > MAX_CONTENT_LENGTH:
            raise ValueError(f"content too long (max {MAX_CONTENT_LENGTH} characters)")
        return value

    def is_empty(self) -> bool:
        """True when there is nothing to check: blank text or no parts."""
        if isinstance(self.content, str):
            return not self.content.strip()
        return len(self.content) == 0


class GuardrailRequest(BaseModel):
    """Body of POST /guardrails (conversation and multimodal checks)."""

    model: str
    messages: List[Message] = Field(..., min_length=1)
    extra_body: Optional[Dict[str, Any]] = None

    model_config = {"frozen": True}

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent on the wire."""
        return self.model_dump(mode="json", exclude_none=True)


# ============================================================================
# Response Models
# ============================================================================


class RiskResult(BaseModel):
    """Outcome of one detection dimension."""

    risk_level: RiskLevel = RiskLevel.NO_RISK
    categories: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("categories", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ComplianceResult(RiskResult):
    """Content compliance dimension (violent crime, political topics, ...)."""


class SecurityResult(RiskResult):
    """Security dimension (prompt attacks)."""


class DataSecurityResult(RiskResult):
    """Data-leak dimension (sensitive data exposure)."""


class GuardrailResult(BaseModel):
    compliance: Optional[ComplianceResult] = None
    security: Optional[SecurityResult] = None
    data: Optional[DataSecurityResult] = None

    model_config = {"frozen": True}


class GuardrailResponse(BaseModel):
    """Decoded result of a guardrails check.

    Example payload:
        {
          "id": "guardrails-xxx",
          "result": {
            "compliance": {"risk_level": "high_risk", "categories": ["violent crime"]},
            "security": {"risk_level": "no_risk", "categories": []},
            "data": {"risk_level": "no_risk", "categories": []}
          },
          "overall_risk_level": "high_risk",
          "suggest_action": "reject",
          "suggest_answer": "Sorry, I can't help with that.",
          "score": 0.97
        }
    """

    id: str
    result: GuardrailResult = Field(default_factory=GuardrailResult)
    overall_risk_level: RiskLevel
    suggest_action: SuggestAction
    suggest_answer: Optional[str] = None
    score: Optional[float] = None

    model_config = {"frozen": True}

    @field_validator("result", mode="before")
    @classmethod
    def _none_as_empty_result(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def safe_default(cls) -> "GuardrailResponse":
        """Response returned without a network call when there is nothing to check."""
        return cls(
            id=SAFE_RESPONSE_ID,
            result=GuardrailResult(
                compliance=ComplianceResult(risk_level=RiskLevel.NO_RISK, categories=[]),
                security=SecurityResult(risk_level=RiskLevel.NO_RISK, categories=[]),
            ),
            overall_risk_level=RiskLevel.NO_RISK,
            suggest_action=SuggestAction.PASS,
        )

    @property
    def is_safe(self) -> bool:
        return self.suggest_action == SuggestAction.PASS

    @property
    def is_blocked(self) -> bool:
        return self.suggest_action == SuggestAction.REJECT

    @property
    def has_substitute(self) -> bool:
        return self.suggest_action in (SuggestAction.REJECT, SuggestAction.REPLACE)

    @property
    def all_categories(self) -> Set[str]:
        """Categories from every detection dimension, deduplicated."""
        categories: Set[str] = set()
        for dimension in (self.result.compliance, self.result.security, self.result.data):
            if dimension is not None:
                categories.update(dimension.categories)
        return categories


__all__ = [
    "MAX_CONTENT_LENGTH",
    "SAFE_RESPONSE_ID",
    "Role",
    "RiskLevel",
    "SuggestAction",
    "TextPart",
    "ImageUrl",
    "ImagePart",
    "ContentPart",
    "Message",
    "GuardrailRequest",
    "RiskResult",
    "ComplianceResult",
    "SecurityResult",
    "DataSecurityResult",
    "GuardrailResult",
    "GuardrailResponse",
]
