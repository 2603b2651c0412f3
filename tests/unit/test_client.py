"""Unit tests for the blocking client against a mocked HTTP layer."""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests
import responses

from xiangxinai.client import XiangxinAIClient
from xiangxinai.common.config import USER_AGENT, ClientConfig, ConfigError
from xiangxinai.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ValidationError,
    XiangxinAIError,
)
from xiangxinai.models import SAFE_RESPONSE_ID, Message, RiskLevel, SuggestAction

BASE_URL = "https://guardrails.test/v1"

INPUT_URL = f"{BASE_URL}/guardrails/input"
OUTPUT_URL = f"{BASE_URL}/guardrails/output"
GUARDRAILS_URL = f"{BASE_URL}/guardrails"


@pytest.fixture
def client(config):
    with XiangxinAIClient(config) as guardrails:
        yield guardrails


def _sent_json(index: int = 0):
    return json.loads(responses.calls[index].request.body)


@responses.activate
def test_check_prompt_sends_input_and_headers(client, risky_payload):
    responses.add(responses.POST, INPUT_URL, json=risky_payload, status=200)

    result = client.check_prompt("  how do I pick a lock?  ", user_id="user-123")

    assert result.suggest_action is SuggestAction.REPLACE
    assert result.has_substitute
    assert result.score == pytest.approx(0.9999984502816872)
    headers = responses.calls[0].request.headers
    assert headers["Authorization"] == "Bearer test-key"
    assert headers["Content-Type"] == "application/json"
    assert headers["User-Agent"] == USER_AGENT
    assert _sent_json() == {"input": "how do I pick a lock?", "xxai_app_user_id": "user-123"}


@responses.activate
@pytest.mark.parametrize("content", [None, "", "   "])
def test_blank_prompt_returns_sentinel_without_network(client, content):
    result = client.check_prompt(content)

    assert result.id == SAFE_RESPONSE_ID
    assert result.is_safe
    assert len(responses.calls) == 0


@responses.activate
def test_check_response_ctx_posts_both_sides(client, safe_payload):
    responses.add(responses.POST, OUTPUT_URL, json=safe_payload, status=200)

    result = client.check_response_ctx("Teach me to cook", "Start with rice.", user_id="u-7")

    assert result.overall_risk_level is RiskLevel.NO_RISK
    assert _sent_json() == {"input": "Teach me to cook", "output": "Start with rice.", "xxai_app_user_id": "u-7"}


@responses.activate
def test_blank_response_ctx_returns_sentinel(client):
    assert client.check_response_ctx(" ", None).id == SAFE_RESPONSE_ID
    assert len(responses.calls) == 0


@responses.activate
def test_check_conversation_uses_default_model_and_extra_body(client, safe_payload):
    responses.add(responses.POST, GUARDRAILS_URL, json=safe_payload, status=200)

    client.check_conversation(
        [
            Message(role="user", content="Hello"),
            {"role": "assistant", "content": "Hello! How can I help?"},
            {"role": "user", "content": ""},
        ],
        user_id="user-1",
    )

    body = _sent_json()
    assert body["model"] == "Xiangxin-Guardrails-Text"
    assert body["messages"] == [
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "Hello! How can I help?"},
    ]
    assert body["extra_body"] == {"xxai_app_user_id": "user-1"}


@responses.activate
def test_conversation_all_blank_returns_sentinel(client):
    result = client.check_conversation([{"role": "user", "content": " "}, {"role": "assistant", "content": ""}])
    assert result.id == SAFE_RESPONSE_ID
    assert len(responses.calls) == 0


@responses.activate
@pytest.mark.parametrize("messages", [[], [Message(role="user", content="hi"), None]])
def test_conversation_validation_errors_make_no_call(client, messages):
    with pytest.raises(ValidationError):
        client.check_conversation(messages)
    assert len(responses.calls) == 0


@responses.activate
def test_authentication_error_is_not_retried(client, sleeps):
    responses.add(responses.POST, INPUT_URL, json={"detail": "Invalid API key"}, status=401)

    with pytest.raises(AuthenticationError):
        client.check_prompt("hello")

    assert len(responses.calls) == 1
    assert sleeps == []


@responses.activate
def test_validation_error_from_server_is_not_retried(client, sleeps):
    responses.add(responses.POST, INPUT_URL, json={"detail": "input too long"}, status=422)

    with pytest.raises(ValidationError, match="input too long"):
        client.check_prompt("hello")

    assert len(responses.calls) == 1


@responses.activate
def test_rate_limit_retries_with_exponential_backoff_then_fails(client, sleeps):
    responses.add(responses.POST, INPUT_URL, json={"detail": "slow down"}, status=429)

    with pytest.raises(RateLimitError):
        client.check_prompt("hello")

    assert len(responses.calls) == 4
    assert sleeps == [2.0, 3.0, 5.0]
    for n, delay in enumerate(sleeps, start=1):
        assert delay >= 2 ** (n - 1) + 1


@responses.activate
def test_rate_limit_recovers(client, sleeps, safe_payload):
    responses.add(responses.POST, INPUT_URL, status=429)
    responses.add(responses.POST, INPUT_URL, json=safe_payload, status=200)

    result = client.check_prompt("hello")

    assert result.is_safe
    assert len(responses.calls) == 2
    assert sleeps == [2.0]


@responses.activate
def test_server_error_retries_then_surfaces_status_and_detail(client, sleeps):
    responses.add(responses.POST, INPUT_URL, json={"detail": "upstream model unavailable"}, status=503)

    with pytest.raises(APIError) as excinfo:
        client.check_prompt("hello")

    assert excinfo.value.status_code == 503
    assert excinfo.value.detail == "upstream model unavailable"
    assert len(responses.calls) == 4
    assert sleeps == [1.0, 1.0, 1.0]


@responses.activate
def test_network_error_retries_then_surfaces(client, sleeps):
    responses.add(responses.POST, INPUT_URL, body=requests.exceptions.ConnectionError("connection refused"))

    with pytest.raises(NetworkError, match="connection refused"):
        client.check_prompt("hello")

    assert len(responses.calls) == 4
    assert sleeps == [1.0, 1.0, 1.0]


@responses.activate
def test_network_error_recovers(client, sleeps, safe_payload):
    responses.add(responses.POST, INPUT_URL, body=requests.exceptions.ReadTimeout("timed out"))
    responses.add(responses.POST, INPUT_URL, json=safe_payload, status=200)

    assert client.check_prompt("hello").is_safe
    assert sleeps == [1.0]


@responses.activate
def test_malformed_success_body_is_not_retried(client, sleeps):
    responses.add(responses.POST, INPUT_URL, body="<html>oops</html>", status=200)

    with pytest.raises(XiangxinAIError, match="Failed to parse response"):
        client.check_prompt("hello")

    assert len(responses.calls) == 1
    assert sleeps == []


@responses.activate
def test_max_retries_zero_makes_single_attempt(sleeps):
    config = ClientConfig(api_key="test-key", base_url=BASE_URL, max_retries=0)
    responses.add(responses.POST, INPUT_URL, status=500)

    with XiangxinAIClient(config) as client, pytest.raises(APIError):
        client.check_prompt("hello")

    assert len(responses.calls) == 1


@responses.activate
def test_health_and_models_are_gets(client):
    responses.add(responses.GET, f"{BASE_URL}/guardrails/health", json={"status": "healthy"}, status=200)
    responses.add(
        responses.GET,
        f"{BASE_URL}/guardrails/models",
        json={"object": "list", "data": [{"id": "Xiangxin-Guardrails-Text"}]},
        status=200,
    )

    assert client.health_check() == {"status": "healthy"}
    assert client.get_models()["data"][0]["id"] == "Xiangxin-Guardrails-Text"
    assert [call.request.method for call in responses.calls] == ["GET", "GET"]


@responses.activate
def test_check_prompt_image_encodes_local_file(client, tmp_path, safe_payload):
    image = tmp_path / "photo.jpg"
    image.write_bytes(b"jpeg-bytes")
    responses.add(responses.POST, GUARDRAILS_URL, json=safe_payload, status=200)

    client.check_prompt_image("Is this image safe?", str(image), user_id="u-3")

    body = _sent_json()
    assert body["model"] == "Xiangxin-Guardrails-VL"
    content = body["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": "Is this image safe?"}
    assert content[1] == {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,anBlZy1ieXRlcw=="}}
    assert body["extra_body"] == {"xxai_app_user_id": "u-3"}


@responses.activate
def test_check_prompt_images_fetches_remote_without_api_key(client, tmp_path, safe_payload):
    local = tmp_path / "a.jpg"
    local.write_bytes(b"a")
    responses.add(responses.GET, "https://images.example.com/b.jpg", body=b"b", status=200)
    responses.add(responses.POST, GUARDRAILS_URL, json=safe_payload, status=200)

    client.check_prompt_images("", [str(local), "https://images.example.com/b.jpg"], model="custom-vl")

    image_fetch = responses.calls[0].request
    assert "Authorization" not in image_fetch.headers
    body = _sent_json(1)
    assert body["model"] == "custom-vl"
    assert [part["type"] for part in body["messages"][0]["content"]] == ["image_url", "image_url"]


def test_missing_local_image_is_validation_error(client, tmp_path):
    with pytest.raises(ValidationError, match="Image file not found"):
        client.check_prompt_image("prompt", str(tmp_path / "missing.jpg"))


@responses.activate
def test_unreachable_image_url_is_client_error(client):
    responses.add(responses.GET, "https://images.example.com/gone.jpg", status=404)

    with pytest.raises(XiangxinAIError, match="Failed to encode image") as excinfo:
        client.check_prompt_image("prompt", "https://images.example.com/gone.jpg")

    assert not isinstance(excinfo.value, ValidationError)


def test_blank_image_is_validation_error(client):
    with pytest.raises(ValidationError):
        client.check_prompt_image("prompt", " ")
    with pytest.raises(ValidationError):
        client.check_prompt_images("prompt", [])


def test_blank_api_key_is_rejected():
    with pytest.raises(ConfigError):
        XiangxinAIClient(ClientConfig(api_key="  "))


def test_from_api_key_applies_overrides():
    with XiangxinAIClient.from_api_key("k", base_url="https://example.com/v1/", max_retries=-2) as client:
        assert client.config.base_url == "https://example.com/v1"
        assert client.config.max_retries == 0


def test_close_releases_session(config):
    client = XiangxinAIClient(config)
    closed = []
    client._session.close = lambda: closed.append(True)

    client.close()

    assert closed == [True]


def test_bare_string_image_sources_are_rejected(client):
    with pytest.raises(ValidationError, match="not a single string"):
        client.check_prompt_images("prompt", "photo.jpg")


def test_caller_supplied_session_is_left_open(config):
    session = requests.Session()
    closed = []
    session.close = lambda: closed.append(True)

    with XiangxinAIClient(config, session=session):
        pass

    assert closed == []


@responses.activate
def test_one_client_shared_across_threads(client, safe_payload):
    responses.add(responses.POST, INPUT_URL, json=safe_payload, status=200)

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(client.check_prompt, [f"prompt {i}" for i in range(8)]))

    assert all(result.is_safe for result in results)
    sent = sorted(json.loads(call.request.body)["input"] for call in responses.calls)
    assert sent == sorted(f"prompt {i}" for i in range(8))


@responses.activate
def test_conversation_text_is_sent_verbatim(client, safe_payload):
    responses.add(responses.POST, GUARDRAILS_URL, json=safe_payload, status=200)
    snippet = "    def f():\n        return 1\n"

    client.check_conversation([{"role": "user", "content": "  indented\n"}, {"role": "assistant", "content": snippet}])

    assert [m["content"] for m in _sent_json()["messages"]] == ["  indented\n", snippet]
