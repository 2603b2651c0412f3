"""Blocking client for the Xiangxin AI guardrails service.

Example:
    from xiangxinai import XiangxinAIClient, ClientConfig

    with XiangxinAIClient(ClientConfig(api_key="your-api-key")) as client:
        result = client.check_prompt("I want to learn programming")
        print(result.overall_risk_level, result.suggest_action)

        result = client.check_response_ctx("User question", "Assistant answer")
        result = client.check_conversation([
            {"role": "user", "content": "Question"},
            {"role": "assistant", "content": "Answer"},
        ])
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Dict, Iterable, Optional, Type, Union

import requests
from requests.adapters import HTTPAdapter

from xiangxinai import images
from xiangxinai.common.config import USER_AGENT, ClientConfig, load_client_config
from xiangxinai.common.logging import get_logger, log_error, log_request
from xiangxinai.exceptions import NetworkError, XiangxinAIError
from xiangxinai.models import GuardrailResponse
from xiangxinai.payloads import (
    GUARDRAILS_ENDPOINT,
    HEALTH_ENDPOINT,
    INPUT_ENDPOINT,
    MODELS_ENDPOINT,
    OUTPUT_ENDPOINT,
    MessageLike,
    build_conversation_request,
    build_multimodal_request,
    build_prompt_payload,
    build_response_ctx_payload,
)
from xiangxinai.retry_policy import build_retrying, decode_body, decode_json, raise_for_status

logger = get_logger(__name__)


class XiangxinAIClient:
    """Synchronous guardrails client.

    Create once and share across threads; the underlying requests.Session
    pools connections. Call `close()` (or use it as a context manager) to
    release the pool.
    """

    def __init__(self, config: Optional[ClientConfig] = None, *, session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            config: Client settings. If not provided, loads from environment.
            session: Optional pre-built session (custom adapters, proxies).
                The caller keeps ownership; `close()` leaves it open.
        """
        self.config = config or load_client_config()
        self._owns_session = session is None
        self._session = session or self._build_session()

    @classmethod
    def from_api_key(cls, api_key: str, **overrides: Any) -> "XiangxinAIClient":
        """Build a client from an API key and optional ClientConfig overrides."""
        return cls(ClientConfig(api_key=api_key).with_overrides(**overrides))

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=self.config.pool_connections,
            pool_maxsize=self.config.pool_maxsize,
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    # Dispatch ---------------------------------------------------------------
    def _send_once(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]]) -> Any:
        url = f"{self.config.base_url}{endpoint}"
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(),
                json=(payload or {}) if method == "POST" else None,
                timeout=(self.config.timeout, self.config.timeout),
            )
        except requests.RequestException as exc:
            raise NetworkError(f"Network error: {exc}") from exc

        raise_for_status(response.status_code, response.text)
        return decode_json(response.text, endpoint)

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]],
        response_type: Union[Type[GuardrailResponse], Type[dict]],
    ) -> Any:
        data: Any = None
        try:
            for attempt in build_retrying(self.config.max_retries, endpoint):
                with attempt:
                    log_request(logger, method=method, endpoint=endpoint, attempt=attempt.retry_state.attempt_number)
                    data = self._send_once(method, endpoint, payload)
            return decode_body(data, response_type, endpoint)
        except XiangxinAIError as exc:
            log_error(logger, "guardrails_request_failed", endpoint=endpoint, error=exc, error_type=type(exc).__name__)
            raise

    def _short_circuit(self, operation: str) -> GuardrailResponse:
        logger.debug("guardrails_empty_input", extra={"event": "guardrails_empty_input", "operation": operation})
        return GuardrailResponse.safe_default()

    # Checks -----------------------------------------------------------------
    def check_prompt(self, content: Optional[str], user_id: Optional[str] = None) -> GuardrailResponse:
        """Check a single user prompt (POST /guardrails/input).

        Args:
            content: User input to check. Blank input returns the safe default
                without a network call.
            user_id: Optional end-user id of the calling application, passed
                through for user-level risk control and audit.

        Raises:
            AuthenticationError, RateLimitError, ValidationError, NetworkError, APIError
        """
        payload = build_prompt_payload(content, user_id)
        if payload is None:
            return self._short_circuit("check_prompt")
        return self._request("POST", INPUT_ENDPOINT, payload, GuardrailResponse)

    def check_response_ctx(
        self,
        prompt: Optional[str],
        response: Optional[str],
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        """Check a model output in the context of the user prompt (POST /guardrails/output).

        The prompt gives the service context; the response is what gets judged.
        Returns the safe default when both are blank.
        """
        payload = build_response_ctx_payload(prompt, response, user_id)
        if payload is None:
            return self._short_circuit("check_response_ctx")
        return self._request("POST", OUTPUT_ENDPOINT, payload, GuardrailResponse)

    def check_conversation(
        self,
        messages: Optional[Iterable[Optional[MessageLike]]],
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        """Check a whole multi-turn conversation (POST /guardrails).

        The service judges the conversation as a whole rather than each
        message separately.

        Raises:
            ValidationError: If `messages` is empty or contains None.
        """
        request = build_conversation_request(messages, model or self.config.model, user_id)
        if request is None:
            return self._short_circuit("check_conversation")
        return self._request("POST", GUARDRAILS_ENDPOINT, request.to_payload(), GuardrailResponse)

    def check_prompt_image(
        self,
        prompt: Optional[str],
        image: str,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        """Check a text prompt together with one image (local path or http(s) URL)."""
        source = images.validate_image_source(image)
        return self.check_prompt_images(prompt, [source], model=model, user_id=user_id)

    def check_prompt_images(
        self,
        prompt: Optional[str],
        image_sources: Iterable[str],
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        """Check a text prompt together with several images in a single message."""
        sources = images.validate_image_sources(image_sources)
        data_urls = [images.to_data_url(self._load_image(source)) for source in sources]
        request = build_multimodal_request(prompt, data_urls, model or self.config.vision_model, user_id)
        return self._request("POST", GUARDRAILS_ENDPOINT, request.to_payload(), GuardrailResponse)

    def _load_image(self, source: str) -> bytes:
        if not images.is_remote(source):
            return images.read_local_image(source)
        # No API headers: the key must not reach third-party image hosts.
        try:
            response = self._session.get(source, timeout=(self.config.timeout, self.config.timeout))
            response.raise_for_status()
        except requests.RequestException as exc:
            raise images.fetch_failed(source, exc) from exc
        return response.content

    # Service metadata -------------------------------------------------------
    def health_check(self) -> Dict[str, Any]:
        """Return the /guardrails/health payload."""
        return self._request("GET", HEALTH_ENDPOINT, None, dict)

    def get_models(self) -> Dict[str, Any]:
        """Return the /guardrails/models payload."""
        return self._request("GET", MODELS_ENDPOINT, None, dict)

    # Lifecycle --------------------------------------------------------------
    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "XiangxinAIClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


__all__ = ["XiangxinAIClient"]
