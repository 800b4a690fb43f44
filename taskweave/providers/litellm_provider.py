"""LiteLLM-based LLM provider implementation."""

import json
from typing import Any

import litellm
from loguru import logger

from taskweave.providers.base import LLMProvider, LLMResponse, ToolCallRequest

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM as a unified gateway.

    Supports OpenRouter, Anthropic, OpenAI, Gemini, vLLM, and other
    providers through LiteLLM's routing layer.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "openai/gpt-4o-mini",
        embedding_model: str = DEFAULT_EMBEDDING_MODEL,
    ):
        super().__init__(api_key, api_base)
        self._default_model = default_model
        self._embedding_model = embedding_model

    def _auth_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        return kwargs

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        **params: Any,
    ) -> LLMResponse:
        """Send a chat completion request via LiteLLM."""
        use_model = model or self._default_model

        kwargs: dict[str, Any] = {
            "model": use_model,
            "messages": messages,
            "max_tokens": params.pop("max_tokens", 4096),
            "temperature": params.pop("temperature", 0.7),
            **params,
            **self._auth_kwargs(),
        }
        if tools:
            kwargs["tools"] = tools

        logger.debug(f"LLM request: model={use_model}, messages={len(messages)}")

        response = await litellm.acompletion(**kwargs)
        choice = response.choices[0]
        message = choice.message

        # Parse tool calls
        tool_calls: list[ToolCallRequest] = []
        if message.tool_calls:
            for tc in message.tool_calls:
                arguments = tc.function.arguments
                if isinstance(arguments, str):
                    try:
                        arguments = json.loads(arguments) if arguments else {}
                    except json.JSONDecodeError:
                        arguments = {"raw": arguments}

                tool_calls.append(
                    ToolCallRequest(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=arguments,
                    )
                )

        # Parse usage
        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
            raw=response,
        )

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        """Embed text via ``litellm.aembedding``."""
        use_model = model or self._embedding_model
        logger.debug(f"Embedding request: model={use_model}, chars={len(text)}")
        response = await litellm.aembedding(model=use_model, input=[text], **self._auth_kwargs())
        item = response.data[0]
        vector = item["embedding"] if isinstance(item, dict) else item.embedding
        return [float(v) for v in vector]

    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        return self._default_model
