"""Tests for the OpenAI-compatible httpx provider."""

import json

import httpx
import pytest

from taskweave.providers.openai_compat import OpenAICompatibleProvider


def make_provider(handler):
    return OpenAICompatibleProvider(
        api_base="https://llm.example.com/v1/",
        model="local-model",
        api_key="secret",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_chat_parses_segmented_content_and_tool_calls():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [
                    {
                        "finish_reason": "tool_calls",
                        "message": {
                            "content": [{"type": "text", "text": "part one"}, {"type": "text", "text": "part two"}],
                            "tool_calls": [
                                {"id": "c1", "function": {"name": "lookup", "arguments": '{"q": "x"}'}},
                                {"id": "c2", "function": {"name": "noop", "arguments": ""}},
                            ],
                        },
                    }
                ],
                "usage": {"total_tokens": 12},
            },
        )

    provider = make_provider(handler)
    tools = [{"type": "function", "function": {"name": "lookup"}}]
    response = await provider.chat([{"role": "user", "content": "hi"}], tools=tools)

    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["model"] == "local-model"
    assert seen["body"]["tool_choice"] == "auto"
    assert response.content == "part one\npart two"
    assert [(tc.id, tc.name, tc.arguments) for tc in response.tool_calls] == [
        ("c1", "lookup", {"q": "x"}),
        ("c2", "noop", {}),
    ]
    assert response.usage == {"total_tokens": 12}


@pytest.mark.asyncio
async def test_chat_http_error_propagates():
    provider = make_provider(lambda request: httpx.Response(503, json={"error": "busy"}))
    with pytest.raises(httpx.HTTPStatusError):
        await provider.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_chat_empty_choices_raises():
    provider = make_provider(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ValueError):
        await provider.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_embed():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/embeddings"
        assert json.loads(request.content)["input"] == "hello"
        return httpx.Response(200, json={"data": [{"embedding": [1, 0, 2]}]})

    assert await make_provider(handler).embed("hello") == [1.0, 0.0, 2.0]
