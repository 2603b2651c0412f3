"""Request-body builders shared by the blocking and async clients.

Builders return None when the caller's input is empty; clients answer those
calls with `GuardrailResponse.safe_default()` instead of contacting the
service.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from xiangxinai.exceptions import ValidationError
from xiangxinai.models import GuardrailRequest, ImagePart, Message, Role, TextPart

INPUT_ENDPOINT = "/guardrails/input"
OUTPUT_ENDPOINT = "/guardrails/output"
GUARDRAILS_ENDPOINT = "/guardrails"
HEALTH_ENDPOINT = "/guardrails/health"
MODELS_ENDPOINT = "/guardrails/models"

USER_ID_FIELD = "xxai_app_user_id"

MessageLike = Union[Message, Mapping[str, Any]]


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def clean_user_id(user_id: Optional[str]) -> Optional[str]:
    """Trimmed end-user id, or None when absent or blank."""
    if _is_blank(user_id):
        return None
    return user_id.strip()  # type: ignore[union-attr]


def build_prompt_payload(content: Optional[str], user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Body for POST /guardrails/input."""
    if _is_blank(content):
        return None
    payload: Dict[str, Any] = {"input": content.strip()}  # type: ignore[union-attr]
    cleaned = clean_user_id(user_id)
    if cleaned:
        payload[USER_ID_FIELD] = cleaned
    return payload


def build_response_ctx_payload(
    prompt: Optional[str],
    response: Optional[str],
    user_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Body for POST /guardrails/output; empty only when both sides are blank."""
    if _is_blank(prompt) and _is_blank(response):
        return None
    payload: Dict[str, Any] = {
        "input": prompt.strip() if prompt else "",
        "output": response.strip() if response else "",
    }
    cleaned = clean_user_id(user_id)
    if cleaned:
        payload[USER_ID_FIELD] = cleaned
    return payload


def coerce_message(item: MessageLike) -> Message:
    if isinstance(item, Message):
        return item
    if isinstance(item, Mapping):
        try:
            return Message.model_validate(dict(item))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid message: {exc}") from exc
    raise ValidationError(f"Message must be a Message or a mapping, got {type(item).__name__}")


def _build_request(model: str, messages: List[Message], user_id: Optional[str]) -> GuardrailRequest:
    cleaned = clean_user_id(user_id)
    extra_body = {USER_ID_FIELD: cleaned} if cleaned else None
    try:
        return GuardrailRequest(model=model, messages=messages, extra_body=extra_body)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid guardrail request: {exc}") from exc


def build_conversation_request(
    messages: Optional[Iterable[Optional[MessageLike]]],
    model: str,
    user_id: Optional[str] = None,
) -> Optional[GuardrailRequest]:
    """Body for POST /guardrails from a multi-turn conversation.

    An empty list or a None element is a validation error, checked before the
    all-empty case. Messages without content are dropped from the request.
    """
    items = list(messages) if messages is not None else []
    if not items:
        raise ValidationError("Messages cannot be empty")

    coerced: List[Message] = []
    for item in items:
        if item is None:
            raise ValidationError("Message cannot be null")
        coerced.append(coerce_message(item))

    non_empty = [message for message in coerced if not message.is_empty()]
    if not non_empty:
        return None
    return _build_request(model, non_empty, user_id)


def build_multimodal_request(
    prompt: Optional[str],
    image_urls: Sequence[str],
    model: str,
    user_id: Optional[str] = None,
) -> GuardrailRequest:
    """Body for POST /guardrails with one user message holding text and image parts."""
    parts: List[Union[TextPart, ImagePart]] = []
    if not _is_blank(prompt):
        parts.append(TextPart(text=prompt.strip()))  # type: ignore[union-attr]
    parts.extend(ImagePart.from_url(url) for url in image_urls)
    return _build_request(model, [Message(role=Role.USER, content=parts)], user_id)
