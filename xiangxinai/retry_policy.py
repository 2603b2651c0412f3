"""Retry and error-classification policy shared by the blocking and async clients.

Both clients send a single HTTP attempt through their own transport and hand
the status code and body to `raise_for_status`, which maps them onto the
error taxonomy. The tenacity controllers built here then decide, from the
raised exception alone, whether and how long to wait before the next attempt:

- NetworkError and APIError (any unexpected status): fixed 1s delay
- RateLimitError (429): 2 ** (attempt - 1) + 1 seconds
- AuthenticationError (401), ValidationError (422) and decode failures: never retried
"""

from __future__ import annotations

import asyncio
import json
import time
from functools import partial
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt

from xiangxinai.common.logging import get_logger
from xiangxinai.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ValidationError,
    XiangxinAIError,
)

logger = get_logger(__name__)

RETRY_DELAY_SEC = 1.0
RATE_LIMIT_OFFSET_SEC = 1.0
RETRYABLE_ERRORS = (NetworkError, RateLimitError, APIError)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _sleep(seconds: float) -> None:
    time.sleep(seconds)


async def _async_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


# ============================================================================
# Status classification
# ============================================================================


def parse_error_detail(body: str, default: str) -> str:
    """Return the `detail` field of a JSON error body, else the raw body."""
    try:
        data = json.loads(body) if body else None
    except ValueError:
        return body or default
    if isinstance(data, dict) and data.get("detail") is not None:
        detail = data["detail"]
        return detail if isinstance(detail, str) else json.dumps(detail, ensure_ascii=False)
    return body or default


def raise_for_status(status_code: int, body: str) -> None:
    """Map a non-2xx HTTP status onto the error taxonomy."""
    if 200 <= status_code < 300:
        return
    if status_code == 401:
        raise AuthenticationError("Invalid API key")
    if status_code == 422:
        raise ValidationError(f"Validation error: {parse_error_detail(body, 'Validation error')}")
    if status_code == 429:
        raise RateLimitError("Rate limit exceeded")
    raise APIError(status_code, parse_error_detail(body, "Unknown error"))


def decode_json(body: str, endpoint: str) -> Any:
    try:
        return json.loads(body)
    except ValueError as exc:
        raise XiangxinAIError(f"Failed to parse response from {endpoint}: {exc}") from exc


def decode_body(
    data: Any,
    response_type: Union[Type[ModelT], Type[dict]],
    endpoint: str,
) -> Union[ModelT, Dict[str, Any]]:
    """Validate a decoded JSON body against the expected response shape."""
    if response_type is dict:
        if not isinstance(data, dict):
            raise XiangxinAIError(f"Expected JSON object from {endpoint}, got {type(data).__name__}")
        return data
    try:
        return response_type.model_validate(data)  # type: ignore[union-attr]
    except PydanticValidationError as exc:
        raise XiangxinAIError(f"Failed to parse response from {endpoint}: {exc}") from exc


# ============================================================================
# Backoff schedule
# ============================================================================


def backoff_seconds(error: Optional[BaseException], attempt_number: int) -> float:
    """Delay before the retry that follows failed attempt `attempt_number` (1-based)."""
    if isinstance(error, RateLimitError):
        return float(2 ** (attempt_number - 1)) + RATE_LIMIT_OFFSET_SEC
    return RETRY_DELAY_SEC


def _wait(retry_state: RetryCallState) -> float:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    return backoff_seconds(error, retry_state.attempt_number)


def _log_retry(endpoint: str, retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else None
    logger.warning(
        "guardrails_retry",
        extra={
            "event": "guardrails_retry",
            "endpoint": endpoint,
            "attempt": retry_state.attempt_number,
            "backoff_seconds": delay,
            "error_type": type(error).__name__ if error else None,
            "error": str(error) if error else None,
        },
    )


def _retry_options(max_retries: int, endpoint: str) -> Dict[str, Any]:
    return {
        "stop": stop_after_attempt(max(0, max_retries) + 1),
        "wait": _wait,
        "retry": retry_if_exception_type(RETRYABLE_ERRORS),
        "before_sleep": partial(_log_retry, endpoint),
        "reraise": True,
    }


def build_retrying(max_retries: int, endpoint: str) -> Retrying:
    """Retry controller for the blocking client; sleeps on the calling thread."""
    return Retrying(sleep=_sleep, **_retry_options(max_retries, endpoint))


def build_async_retrying(max_retries: int, endpoint: str) -> AsyncRetrying:
    """Retry controller for the async client; backoff is awaited, never blocking the loop."""
    return AsyncRetrying(sleep=_async_sleep, **_retry_options(max_retries, endpoint))
