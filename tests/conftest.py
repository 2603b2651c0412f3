"""Pytest configuration and shared fixtures.

Loads a .env file (if present) so integration tests can pick up
XIANGXINAI_API_KEY, and replaces retry sleeps with recorders so retry tests
run instantly while still asserting the backoff schedule.
"""

from typing import Any, Dict, List

import pytest

from xiangxinai import retry_policy
from xiangxinai.common.config import ClientConfig
from xiangxinai.common.env import load_env

load_env()

BASE_URL = "https://guardrails.test/v1"


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_key="test-key", base_url=BASE_URL, max_retries=3, timeout=5.0)


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    """Record backoff delays instead of sleeping (blocking and async)."""
    recorded: List[float] = []

    def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    async def fake_async_sleep(seconds: float) -> None:
        recorded.append(seconds)

    monkeypatch.setattr(retry_policy, "_sleep", fake_sleep)
    monkeypatch.setattr(retry_policy, "_async_sleep", fake_async_sleep)
    return recorded


@pytest.fixture
def risky_payload() -> Dict[str, Any]:
    return {
        "id": "guardrails-8d45c2cf9e014952ab1ce7584673b556",
        "result": {
            "compliance": {"risk_level": "medium_risk", "categories": ["Illegal Activities"]},
            "security": {"risk_level": "no_risk", "categories": []},
            "data": {"risk_level": "no_risk", "categories": []},
        },
        "overall_risk_level": "medium_risk",
        "suggest_action": "replace",
        "suggest_answer": "Sorry, I can't provide information about illegal activities.",
        "score": 0.9999984502816872,
    }


@pytest.fixture
def safe_payload() -> Dict[str, Any]:
    return {
        "id": "guardrails-0001",
        "result": {
            "compliance": {"risk_level": "no_risk", "categories": []},
            "security": {"risk_level": "no_risk", "categories": []},
        },
        "overall_risk_level": "no_risk",
        "suggest_action": "pass",
    }
