"""Language-model capability contract used by agents and memories."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolCallRequest:
    """Tool call request emitted by the model."""

    id: str
    name: str
    arguments: dict[str, Any]

    def to_provider(self) -> dict[str, Any]:
        """OpenAI function-call entry for an assistant message."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments, ensure_ascii=False)},
        }


@dataclass
class LLMResponse:
    """Normalized model response."""

    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
    raw: Any = None

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


class LLMProvider(ABC):
    """
    Abstract language-model backend.

    Implementations return either terminal content or a list of tool calls
    from ``chat`` and a vector from ``embed``. Transport failures propagate
    as ordinary exceptions; callers decide how to retry.
    """

    supports_tools: bool = True

    def __init__(self, api_key: str | None = None, api_base: str | None = None) -> None:
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        **params: Any,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: OpenAI-style message dicts.
            tools: Function schemas the model may call.
            model: Model override.
            **params: Sampling parameters such as ``temperature``.

        Returns:
            The normalized response.
        """

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        """Embed text into a vector."""
        raise NotImplementedError(f"{type(self).__name__} does not support embeddings")

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default chat model for this provider."""
