"""Tests for the LLM client, with the OpenAI SDK running over an in-memory httpx transport."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from polyfunc.config import Config
from polyfunc.llm import LLMClient, LLMConfigError, LLMError


def _reply(content: str, status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"choices": [{"message": {"content": content}}]})

    return httpx.MockTransport(handler)


def _client(transport: httpx.MockTransport, **llm) -> LLMClient:
    settings = {"apiKey": "sk-test", "baseUrl": "https://llm.test/v1", "maxRetries": 0, **llm}
    config = Config({"llm": settings})
    http = httpx.Client(transport=transport)
    return LLMClient(config, http_client=http)


ANALYSIS = {
    "useCase": "api",
    "requirements": {"performance": {"importance": 8, "weight": 0.8}},
    "dependencies": ["postgres"],
    "useCaseWeight": 0.5,
}


class TestRequests:
    def test_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": json.dumps(ANALYSIS)}}],
            })

        client = _client(httpx.MockTransport(handler), model="gpt-4o-mini")
        result = client.analyze_requirements("An order API")

        assert result == ANALYSIS
        assert seen["path"] == "/v1/chat/completions"
        assert seen["body"]["model"] == "gpt-4o-mini"
        assert seen["body"]["temperature"] == 0.2
        assert "An order API" in seen["body"]["messages"][0]["content"]

    def test_decompose_uses_higher_temperature(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": '[{"name": "orders"}]'}}],
            })

        result = _client(httpx.MockTransport(handler)).decompose_service("A shop")
        assert result == [{"name": "orders"}]
        assert seen["body"]["temperature"] == 0.3

    def test_code_fence_stripped(self):
        content = "```json\n" + json.dumps({"files": [], "instructions": "run it"}) + "\n```"
        result = _client(_reply(content)).generate_code("go", "service", "A cache")
        assert result == {"files": [], "instructions": "run it"}

    def test_complete_json_raises_on_bad_json(self):
        with pytest.raises(LLMError, match="Failed to parse"):
            _client(_reply("not json at all")).complete_json("hi")


class TestFailures:
    def test_bad_json_returns_none(self, caplog):
        with caplog.at_level(logging.ERROR, logger="polyfunc"):
            assert _client(_reply("Sure! Here you go")).analyze_requirements("x") is None
        assert "Failed to parse LLM response as JSON" in caplog.text

    def test_http_error_returns_none(self):
        assert _client(_reply("{}", status=500)).decompose_service("x") is None

    def test_transport_error_returns_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert _client(httpx.MockTransport(handler)).generate_code("go", "s", "d") is None

    def test_malformed_envelope_returns_none(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
        assert _client(transport).analyze_requirements("x") is None

    def test_wrong_shape_returns_none(self):
        assert _client(_reply("[1, 2]")).analyze_requirements("x") is None
        assert _client(_reply('{"a": 1}')).decompose_service("x") is None


class TestConfiguration:
    def test_missing_key_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="polyfunc"):
            LLMClient(Config())
        assert "No API key found" in caplog.text

    def test_missing_key_is_a_hard_stop(self):
        client = LLMClient(Config())
        with pytest.raises(LLMConfigError, match="API key is required"):
            client.analyze_requirements("anything")

    def test_unsupported_provider(self):
        client = LLMClient(Config({"llm": {"apiKey": "sk-test", "provider": "acme"}}))
        with pytest.raises(LLMConfigError, match="Unsupported LLM provider"):
            client.decompose_service("anything")

    def test_lazy_client_uses_config(self):
        config = Config({"llm": {"apiKey": "sk-test", "baseUrl": "https://x.test/v1/",
                                 "maxRetries": 5}})
        client = LLMClient(config)
        sdk = client.client
        try:
            assert str(sdk.base_url) == "https://x.test/v1/"
            assert sdk.api_key == "sk-test"
            assert sdk.max_retries == 5
            assert client.client is sdk
        finally:
            client.close()

    def test_sends_bearer_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})

        assert _client(httpx.MockTransport(handler)).complete_json("hi") == {}
        assert seen["auth"] == "Bearer sk-test"


class TestApiKeyFallback:
    def test_environment_key_used_when_config_empty(self, monkeypatch):
        config = Config()
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert config.get("llm.apiKey") is None
        assert LLMClient(config).api_key == "sk-env"

    def test_null_key_in_loaded_file_does_not_hide_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "polyfunc.json"
        path.write_text(json.dumps({"llm": {"apiKey": None, "model": "gpt-4o"}}))
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        config = Config()
        assert config.load_from(path)
        client = LLMClient(config)

        assert client.api_key == "sk-env"
        assert client.model == "gpt-4o"

    def test_explicit_config_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        client = LLMClient(Config({"llm": {"apiKey": "sk-explicit"}}))
        assert client.api_key == "sk-explicit"
