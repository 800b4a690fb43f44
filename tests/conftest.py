"""Shared fixtures: scripted providers and a deterministic embedder."""

import re
from unittest.mock import AsyncMock

import pytest

from taskweave.providers.base import LLMResponse, ToolCallRequest

EMBED_DIM = 257


def embed_text(text: str, model: str | None = None) -> list[float]:
    """Bag-of-words vector; texts sharing words score higher under cosine."""
    vector = [0.0] * EMBED_DIM
    for token in re.findall(r"\w+", text.lower()):
        bucket = 0
        for char in token:
            bucket = (bucket * 31 + ord(char)) % EMBED_DIM
        vector[bucket] += 1.0
    return vector


async def fake_embed(text: str, model: str | None = None) -> list[float]:
    return embed_text(text, model)


def text_response(content: str) -> LLMResponse:
    return LLMResponse(content=content, finish_reason="stop", tool_calls=[])


def tool_response(*calls: tuple[str, str, dict]) -> LLMResponse:
    return LLMResponse(
        content=None,
        finish_reason="tool_calls",
        tool_calls=[ToolCallRequest(id=call_id, name=name, arguments=args) for call_id, name, args in calls],
    )


@pytest.fixture
def provider():
    """AsyncMock provider with tool support and a deterministic embedder."""
    mock = AsyncMock()
    mock.supports_tools = True
    mock.embed.side_effect = fake_embed
    return mock
