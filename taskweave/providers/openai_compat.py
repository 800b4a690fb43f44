"""OpenAI-compatible provider with tool-call parsing."""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from taskweave.providers.base import LLMProvider, LLMResponse, ToolCallRequest


class OpenAICompatibleProvider(LLMProvider):
    """Provider for OpenAI-style ``/chat/completions`` and ``/embeddings`` endpoints."""

    def __init__(
        self,
        api_base: str,
        model: str,
        api_key: str | None = None,
        embedding_model: str = "text-embedding-3-small",
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, api_base.rstrip("/"))
        self.model = model
        self.embedding_model = embedding_model
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            resp = await client.post(f"{self.api_base}{path}", headers=self._headers(), json=payload)
            resp.raise_for_status()
            return resp.json()

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        **params: Any,
    ) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": params.pop("max_tokens", 2048),
            "temperature": params.pop("temperature", 0.2),
            **params,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        logger.debug(f"LLM request: endpoint={self.api_base}, messages={len(messages)}")
        data = await self._post("/chat/completions", payload)
        return self._parse_response(data)

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        data = await self._post("/embeddings", {"model": model or self.embedding_model, "input": text})
        items = data.get("data") or []
        if not items:
            raise ValueError("Embedding response contained no vectors")
        return [float(v) for v in items[0].get("embedding", [])]

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        choices = data.get("choices", [])
        if not choices:
            raise ValueError("Empty model response: no choices returned")

        choice = choices[0]
        message = choice.get("message", {})
        content = message.get("content")

        # Some providers can return segmented content payloads.
        if isinstance(content, list):
            text_parts: list[str] = []
            for part in content:
                if isinstance(part, dict) and part.get("type") == "text":
                    text_parts.append(str(part.get("text", "")))
            content = "\n".join([part for part in text_parts if part])

        tool_calls: list[ToolCallRequest] = []
        for raw_call in message.get("tool_calls", []) or []:
            function = raw_call.get("function", {})
            raw_args = function.get("arguments", {})
            parsed_args: dict[str, Any]
            if isinstance(raw_args, str):
                try:
                    parsed_args = json.loads(raw_args) if raw_args else {}
                except json.JSONDecodeError:
                    parsed_args = {"raw": raw_args}
            elif isinstance(raw_args, dict):
                parsed_args = raw_args
            else:
                parsed_args = {}

            tool_calls.append(
                ToolCallRequest(
                    id=str(raw_call.get("id", "")),
                    name=str(function.get("name", "")),
                    arguments=parsed_args,
                )
            )

        return LLMResponse(
            content=content,
            tool_calls=tool_calls,
            finish_reason=str(choice.get("finish_reason", "stop")),
            usage=dict(data.get("usage") or {}),
            raw=data,
        )

    def get_default_model(self) -> str:
        return self.model
