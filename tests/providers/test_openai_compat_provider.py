"""Tests for the OpenAI-compatible provider."""

import json

import httpx
import pytest

from autodidact.providers import OpenAICompatibleProvider


def _transport(handler):
    return httpx.MockTransport(handler)


class TestChat:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "hello"}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
            })

        provider = OpenAICompatibleProvider(
            api_key="sk-test",
            api_base="http://llm.local/v1/",
            transport=_transport(handler),
        )
        response = await provider.chat([{"role": "user", "content": "hi"}], max_tokens=10)

        assert response.content == "hello"
        assert response.is_error is False
        assert response.usage == {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}
        assert seen["url"] == "http://llm.local/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "gpt-4o-mini"
        assert seen["body"]["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_no_key_sends_no_auth_header(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        provider = OpenAICompatibleProvider(api_base="http://llm.local/v1", transport=_transport(handler))
        response = await provider.chat([{"role": "user", "content": "hi"}], model="local")
        assert response.content == "ok"
        assert response.finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self):
        provider = OpenAICompatibleProvider(
            api_key="sk-test",
            transport=_transport(lambda request: httpx.Response(500, text="boom")),
        )
        response = await provider.chat([{"role": "user", "content": "hi"}])

        assert response.is_error is True
        assert response.content.startswith("API error (500)")

    @pytest.mark.asyncio
    async def test_malformed_body_is_reported(self):
        provider = OpenAICompatibleProvider(
            transport=_transport(lambda request: httpx.Response(200, json={"choices": []})),
        )
        response = await provider.chat([{"role": "user", "content": "hi"}])
        assert response.is_error is True

    @pytest.mark.asyncio
    async def test_connection_error_is_reported(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = OpenAICompatibleProvider(transport=_transport(handler))
        response = await provider.chat([{"role": "user", "content": "hi"}])

        assert response.is_error is True
        assert "refused" in response.content


def test_default_model():
    assert OpenAICompatibleProvider(default_model="m1").get_default_model() == "m1"
    assert OpenAICompatibleProvider().base_url == "https://api.openai.com/v1"


@pytest.mark.asyncio
async def test_complete_adds_system_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["messages"] = json.loads(request.content)["messages"]
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    provider = OpenAICompatibleProvider(transport=_transport(handler))
    response = await provider.complete("why?", system="be brief")

    assert response.content == "ok"
    assert seen["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "why?"},
    ]
