from __future__ import annotations

import itertools
import json

import httpx
import pytest

from cascade.llm_interaction.adapter import LLMAdapter
from cascade.llm_interaction.config import ApiConfig
from cascade.llm_interaction.errors import (
    ApiError,
    DeserializationError,
    LLMError,
    TransportError,
)
from cascade.llm_interaction.retry import ExponentialBackoff
from cascade.llm_interaction.schemas import CompletionRequest, CompletionResponse

COMPLETION_OK = {"content": "hello", "tokens_predicted": 2, "tokens_cached": 5}


def _rate_limited(error_type="rate_limit_error"):
    return httpx.Response(429, json={"error": {"message": "slow down", "type": error_type}})


class ScriptedHandler:
    """Serves queued responses (or raises queued exceptions) and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


# =========================
# Success path
# =========================

def test_completion_posts_json_to_configured_endpoint(make_client):
    handler = ScriptedHandler(httpx.Response(200, json=COMPLETION_OK))
    client, sleeps = make_client(handler)

    response = client.completion(CompletionRequest(prompt="Hi", n_predict=8))

    assert isinstance(response, CompletionResponse)
    assert response.content == "hello"
    request = handler.requests[0]
    assert request.method == "POST"
    assert request.url.host == "llama.test"
    assert request.url.path == "/completion"
    body = json.loads(request.content)
    assert body["prompt"] == "Hi"
    assert body["n_predict"] == 8
    assert body["cache_prompt"] is True
    assert "grammar" not in body and "temperature" not in body
    assert sleeps == []


def test_api_key_is_sent_as_bearer_token(make_client):
    handler = ScriptedHandler(httpx.Response(200, json=COMPLETION_OK))
    config = ApiConfig(host="llama.test", port=None, api_key="secret", extra_query={"v": "1"})
    client, _ = make_client(handler, config=config)

    client.completion(CompletionRequest(prompt="Hi"))

    request = handler.requests[0]
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.url.params["v"] == "1"


def test_no_authorization_header_without_key(make_client, monkeypatch):
    monkeypatch.delenv("LLAMA_API_KEY", raising=False)
    handler = ScriptedHandler(httpx.Response(200, json=COMPLETION_OK))
    client, _ = make_client(handler)

    client.completion(CompletionRequest(prompt="Hi"))

    assert "Authorization" not in handler.requests[0].headers


# =========================
# Retry classification
# =========================

def test_rate_limit_then_success_is_retried_transparently(make_client):
    handler = ScriptedHandler(
        _rate_limited(),
        _rate_limited(),
        httpx.Response(200, json=COMPLETION_OK),
    )
    client, sleeps = make_client(handler)

    response = client.completion(CompletionRequest(prompt="Hi"))

    assert response.content == "hello"
    assert len(handler.requests) == 3
    assert sleeps == [0.5, 0.75]


def test_request_is_rebuilt_for_every_attempt(make_client):
    handler = ScriptedHandler(_rate_limited(), httpx.Response(200, json=COMPLETION_OK))
    client, _ = make_client(handler)
    built = []

    def request_maker():
        request = client.http_client.build_request("POST", "http://llama.test/completion", json={"prompt": "x"})
        built.append(request)
        return request

    client.execute(request_maker, CompletionResponse)

    assert len(built) == 2
    assert built[0] is not built[1]


def test_quota_exhaustion_is_not_retried(make_client):
    handler = ScriptedHandler(_rate_limited("insufficient_quota"))
    client, sleeps = make_client(handler)

    with pytest.raises(ApiError) as exc_info:
        client.completion(CompletionRequest(prompt="Hi"))

    assert len(handler.requests) == 1
    assert sleeps == []
    assert exc_info.value.status_code == 429
    assert exc_info.value.type == "insufficient_quota"


@pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
def test_other_error_statuses_fail_on_first_attempt(make_client, status):
    handler = ScriptedHandler(
        httpx.Response(status, json={"error": {"message": "nope", "type": "server_error", "code": status}})
    )
    client, sleeps = make_client(handler)

    with pytest.raises(ApiError) as exc_info:
        client.completion(CompletionRequest(prompt="Hi"))

    assert len(handler.requests) == 1
    assert sleeps == []
    assert exc_info.value.status_code == status
    assert exc_info.value.code == status
    assert exc_info.value.message == "nope"


def test_retry_budget_exhaustion_raises_last_rate_limit_error(make_client):
    ticks = itertools.count(0, 100)
    handler = ScriptedHandler(_rate_limited(), _rate_limited())
    client, sleeps = make_client(
        handler,
        backoff=ExponentialBackoff(max_elapsed_time=60.0),
        clock=lambda: next(ticks),
    )

    with pytest.raises(ApiError) as exc_info:
        client.completion(CompletionRequest(prompt="Hi"))

    assert exc_info.value.status_code == 429
    assert len(handler.requests) == 1
    assert sleeps == []


def test_transport_errors_are_permanent(make_client):
    handler = ScriptedHandler(httpx.ConnectError("connection refused"))
    client, sleeps = make_client(handler)

    with pytest.raises(TransportError) as exc_info:
        client.completion(CompletionRequest(prompt="Hi"))

    assert len(handler.requests) == 1
    assert sleeps == []
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


# =========================
# Deserialization
# =========================

def test_malformed_error_body_is_a_deserialization_error(make_client):
    handler = ScriptedHandler(httpx.Response(502, text="<html>Bad Gateway</html>"))
    client, _ = make_client(handler)

    with pytest.raises(DeserializationError) as exc_info:
        client.completion(CompletionRequest(prompt="Hi"))

    assert len(handler.requests) == 1
    assert b"Bad Gateway" in exc_info.value.content


def test_unexpected_success_shape_is_a_deserialization_error(make_client):
    handler = ScriptedHandler(httpx.Response(200, json={"choices": []}))
    client, _ = make_client(handler)

    with pytest.raises(DeserializationError) as exc_info:
        client.completion(CompletionRequest(prompt="Hi"))

    assert not isinstance(exc_info.value, ApiError)
    assert json.loads(exc_info.value.content) == {"choices": []}


# =========================
# Adapter
# =========================

def test_adapter_complete_merges_stage_options(make_client):
    handler = ScriptedHandler(httpx.Response(200, json=COMPLETION_OK))
    client, _ = make_client(handler)
    adapter = LLMAdapter(
        client,
        default_options={"temperature": 0.2, "top_k": 10},
        stage_options={"reason": {"temperature": 0.7}},
    )

    text = adapter.complete("reason", "prompt", max_tokens=32, stop=["\n"])

    assert text == "hello"
    body = json.loads(handler.requests[0].content)
    assert body["temperature"] == 0.7
    assert body["top_k"] == 10
    assert body["n_predict"] == 32
    assert body["stop"] == ["\n"]


def test_adapter_call_arguments_override_configured_request_fields(make_client):
    handler = ScriptedHandler(httpx.Response(200, json=COMPLETION_OK), httpx.Response(200, json=COMPLETION_OK))
    client, _ = make_client(handler)
    adapter = LLMAdapter(
        client,
        default_options={"stop": ["</s>"], "grammar": "root ::= [a-z]+", "prompt": "stale"},
        stage_options={"answer": {"cache_prompt": False}},
    )

    adapter.complete("answer", "fresh", stop=["\n"], grammar='root ::= "yes" | "no"', cache_prompt=True)
    adapter.complete("reason", "again")

    first = json.loads(handler.requests[0].content)
    assert first["prompt"] == "fresh"
    assert first["stop"] == ["\n"]
    assert first["grammar"] == 'root ::= "yes" | "no"'
    assert first["cache_prompt"] is True
    second = json.loads(handler.requests[1].content)
    assert second["prompt"] == "again"
    assert second["stop"] == ["</s>"]
    assert second["grammar"] == "root ::= [a-z]+"


def test_adapter_prime_cache_requests_no_tokens(make_client):
    handler = ScriptedHandler(httpx.Response(200, json={"content": "", "tokens_predicted": 0}))
    client, _ = make_client(handler)

    LLMAdapter(client).prime_cache("think", "prompt so far")

    body = json.loads(handler.requests[0].content)
    assert body["n_predict"] == 0
    assert body["cache_prompt"] is True
    assert body["prompt"] == "prompt so far"


def test_adapter_prime_cache_rejects_generated_tokens(make_client):
    handler = ScriptedHandler(httpx.Response(200, json={"content": "oops", "tokens_predicted": 3}))
    client, _ = make_client(handler)

    with pytest.raises(LLMError):
        LLMAdapter(client).prime_cache("think", "prompt")


def test_client_closes_its_http_client(make_client):
    client, _ = make_client(ScriptedHandler())

    with client:
        pass

    assert client.http_client.is_closed
