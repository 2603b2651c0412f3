"""Error taxonomy for guardrails client calls."""

from __future__ import annotations

from typing import Optional


class XiangxinAIError(Exception):
    """Base exception for guardrails client errors.

    Raised directly for failures that are neither transport nor HTTP status
    problems, e.g. an undecodable response body or an unreadable image.
    """


class AuthenticationError(XiangxinAIError):
    """Raised on HTTP 401. Never retried."""


class RateLimitError(XiangxinAIError):
    """Raised on HTTP 429 once retries with exponential backoff are exhausted."""


class ValidationError(XiangxinAIError):
    """Raised for malformed caller input or an HTTP 422 from the service. Never retried."""


class NetworkError(XiangxinAIError):
    """Raised when a transport-level failure persists after retries."""


class APIError(XiangxinAIError):
    """Raised for any other non-2xx response once retries are exhausted."""

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API request failed with status {status_code}: {detail}")


__all__ = [
    "XiangxinAIError",
    "AuthenticationError",
    "RateLimitError",
    "ValidationError",
    "NetworkError",
    "APIError",
]
