"""Prompt templates: ordered role-tagged messages with ${placeholder} bindings."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from taskweave.errors import TemplateRenderError
from taskweave.messages import Message, Role, coerce_message
from taskweave.runnables.base import ChunkCallback, Runnable, RunOptions, emit_chunk
from taskweave.utils.helpers import stringify

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
CONTEXT_PLACEHOLDER = "context"


class PromptTemplate(Runnable):
    """
    Builds message lists from literal text and placeholder bindings.

    Binding precedence, highest first: bindings passed to ``format``/``run``,
    then bindings stored with ``bind``. The reserved ``${context}``
    placeholder renders the JSON serialization of the structured context set
    with ``with_context`` and never reads ordinary bindings.

    Every builder method returns a new template.
    """

    def __init__(
        self,
        content: str | None = None,
        role: Role = "user",
        name: str | None = None,
    ) -> None:
        super().__init__(name=name)
        self._messages: tuple[Message, ...] = ()
        self._bindings: dict[str, Any] = {}
        self._context: dict[str, Any] = {}
        if content is not None:
            self._messages = (Message(role=role, content=content),)

    @property
    def messages(self) -> list[Message]:
        """The unrendered messages."""
        return [m.model_copy() for m in self._messages]

    @property
    def bindings(self) -> dict[str, Any]:
        return dict(self._bindings)

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def add(self, message: Message | str | Mapping[str, Any]) -> PromptTemplate:
        clone = self._clone()
        clone._messages = (*self._messages, coerce_message(message))
        return clone

    def system(self, content: str) -> PromptTemplate:
        return self.add(Message.system(content))

    def user(self, content: str) -> PromptTemplate:
        return self.add(Message.user(content))

    def assistant(self, content: str) -> PromptTemplate:
        return self.add(Message.assistant(content))

    def bind(self, bindings: Mapping[str, Any]) -> PromptTemplate:
        """Store bindings, merged key-by-key with previously stored ones."""
        clone = self._clone()
        clone._bindings = {**self._bindings, **dict(bindings)}
        return clone

    def with_context(self, context: Mapping[str, Any]) -> PromptTemplate:
        """Merge structured context rendered by ``${context}``."""
        clone = self._clone()
        clone._context = {**self._context, **dict(context)}
        return clone

    def placeholders(self) -> set[str]:
        """All placeholder names used across the template's messages."""
        found: set[str] = set()
        for message in self._messages:
            found.update(PLACEHOLDER_PATTERN.findall(message.content))
        return found

    def format(self, bindings: Mapping[str, Any] | None = None) -> list[Message]:
        """
        Render every message.

        Args:
            bindings: Call-level bindings; these win over stored bindings.

        Returns:
            New rendered messages, in template order.

        Raises:
            TemplateRenderError: A placeholder has no binding.
        """
        effective = {**self._bindings, **dict(bindings or {})}
        return [
            message.model_copy(update={"content": self._render_text(message.content, effective)})
            for message in self._messages
        ]

    def render(self) -> list[Message]:
        """Render with stored bindings only."""
        return self.format()

    def _render_text(self, text: str, bindings: dict[str, Any]) -> str:
        def replace(match: re.Match[str]) -> str:
            key = match.group(1)
            if key == CONTEXT_PLACEHOLDER:
                return json.dumps(self._context, ensure_ascii=False, default=str)
            if key not in bindings:
                raise TemplateRenderError(key)
            return stringify(bindings[key])

        return PLACEHOLDER_PATTERN.sub(replace, text)

    async def _run(self, input: Any, params: dict[str, Any], options: RunOptions) -> list[Message]:
        bindings = dict(input) if isinstance(input, Mapping) else {}
        return self.format(bindings)

    async def stream(
        self,
        on_chunk: ChunkCallback,
        input: Any = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> list[Message]:
        rendered = await self.run(input, params, options)
        for index, message in enumerate(rendered):
            await emit_chunk(on_chunk, message, {"runnable": self.name, "index": index})
        return rendered


def ai_message(content: str | None = None, role: Role = "user") -> PromptTemplate:
    """Start a prompt template, optionally with a first message."""
    return PromptTemplate(content, role=role)
