"""Language-model providers."""

from taskweave.providers.base import LLMProvider, LLMResponse, ToolCallRequest
from taskweave.providers.litellm_provider import LiteLLMProvider
from taskweave.providers.openai_compat import OpenAICompatibleProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LiteLLMProvider",
    "OpenAICompatibleProvider",
    "ToolCallRequest",
]
