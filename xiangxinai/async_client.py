"""Async client for the Xiangxin AI guardrails service.

Every check is a coroutine; retries back off with `asyncio.sleep`, so a
rate-limited call never blocks the event loop.

Example:
    async with AsyncXiangxinAIClient(ClientConfig(api_key="your-api-key")) as client:
        result = await client.check_prompt("User question")
        results = await asyncio.gather(
            client.check_prompt("first"),
            client.check_prompt("second"),
        )
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any, Dict, Iterable, Optional, Type, Union

import httpx

from xiangxinai import images
from xiangxinai.common.config import ASYNC_USER_AGENT, ClientConfig, load_client_config
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
from xiangxinai.retry_policy import build_async_retrying, decode_body, decode_json, raise_for_status

logger = get_logger(__name__)


class AsyncXiangxinAIClient:
    """Asynchronous guardrails client backed by a pooled httpx.AsyncClient.

    Concurrent calls on one instance are independent and unordered. Release
    the pool with `await client.aclose()` or `async with`.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            config: Client settings. If not provided, loads from environment.
            transport: Optional httpx transport (proxies, custom TLS, mocks).
        """
        self.config = config or load_client_config()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            limits=httpx.Limits(
                max_connections=self.config.pool_maxsize,
                max_keepalive_connections=self.config.pool_connections,
            ),
            transport=transport,
        )

    @classmethod
    def from_api_key(cls, api_key: str, **overrides: Any) -> "AsyncXiangxinAIClient":
        """Build a client from an API key and optional ClientConfig overrides."""
        return cls(ClientConfig(api_key=api_key).with_overrides(**overrides))

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "User-Agent": ASYNC_USER_AGENT,
        }

    # Dispatch ---------------------------------------------------------------
    async def _send_once(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]]) -> Any:
        url = f"{self.config.base_url}{endpoint}"
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers(),
                json=(payload or {}) if method == "POST" else None,
            )
        except httpx.TransportError as exc:
            raise NetworkError(f"Network error: {exc}") from exc

        raise_for_status(response.status_code, response.text)
        return decode_json(response.text, endpoint)

    async def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]],
        response_type: Union[Type[GuardrailResponse], Type[dict]],
    ) -> Any:
        data: Any = None
        try:
            async for attempt in build_async_retrying(self.config.max_retries, endpoint):
                with attempt:
                    log_request(logger, method=method, endpoint=endpoint, attempt=attempt.retry_state.attempt_number)
                    data = await self._send_once(method, endpoint, payload)
            return decode_body(data, response_type, endpoint)
        except XiangxinAIError as exc:
            log_error(logger, "guardrails_request_failed", endpoint=endpoint, error=exc, error_type=type(exc).__name__)
            raise

    def _short_circuit(self, operation: str) -> GuardrailResponse:
        logger.debug("guardrails_empty_input", extra={"event": "guardrails_empty_input", "operation": operation})
        return GuardrailResponse.safe_default()

    # Checks -----------------------------------------------------------------
    async def check_prompt(self, content: Optional[str], user_id: Optional[str] = None) -> GuardrailResponse:
        """Check a single user prompt (POST /guardrails/input)."""
        payload = build_prompt_payload(content, user_id)
        if payload is None:
            return self._short_circuit("check_prompt")
        return await self._request("POST", INPUT_ENDPOINT, payload, GuardrailResponse)

    async def check_response_ctx(
        self,
        prompt: Optional[str],
        response: Optional[str],
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        """Check a model output in the context of the user prompt (POST /guardrails/output)."""
        payload = build_response_ctx_payload(prompt, response, user_id)
        if payload is None:
            return self._short_circuit("check_response_ctx")
        return await self._request("POST", OUTPUT_ENDPOINT, payload, GuardrailResponse)

    async def check_conversation(
        self,
        messages: Optional[Iterable[Optional[MessageLike]]],
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        """Check a whole multi-turn conversation (POST /guardrails)."""
        request = build_conversation_request(messages, model or self.config.model, user_id)
        if request is None:
            return self._short_circuit("check_conversation")
        return await self._request("POST", GUARDRAILS_ENDPOINT, request.to_payload(), GuardrailResponse)

    async def check_prompt_image(
        self,
        prompt: Optional[str],
        image: str,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        source = images.validate_image_source(image)
        return await self.check_prompt_images(prompt, [source], model=model, user_id=user_id)

    async def check_prompt_images(
        self,
        prompt: Optional[str],
        image_sources: Iterable[str],
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> GuardrailResponse:
        sources = images.validate_image_sources(image_sources)
        data_urls = [images.to_data_url(await self._load_image(source)) for source in sources]
        request = build_multimodal_request(prompt, data_urls, model or self.config.vision_model, user_id)
        return await self._request("POST", GUARDRAILS_ENDPOINT, request.to_payload(), GuardrailResponse)

    async def _load_image(self, source: str) -> bytes:
        if not images.is_remote(source):
            return await asyncio.to_thread(images.read_local_image, source)
        try:
            response = await self._client.get(source)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise images.fetch_failed(source, exc) from exc
        return response.content

    # Service metadata -------------------------------------------------------
    async def health_check(self) -> Dict[str, Any]:
        return await self._request("GET", HEALTH_ENDPOINT, None, dict)

    async def get_models(self) -> Dict[str, Any]:
        return await self._request("GET", MODELS_ENDPOINT, None, dict)

    # Lifecycle --------------------------------------------------------------
    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncXiangxinAIClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()


__all__ = ["AsyncXiangxinAIClient"]
