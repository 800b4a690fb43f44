"""Conversation memory that compacts old messages into one running summary."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger

from taskweave.memory.base import MemoryStore
from taskweave.messages import Message
from taskweave.providers.base import LLMProvider
from taskweave.utils.helpers import truncate_output

SUMMARY_PREFIX = "Previous conversation summary: "

SUMMARIZER_PROMPT = (
    "You maintain a running summary of a conversation. Merge the previous summary "
    "with the new messages into one concise summary. Keep names, decisions, facts "
    "and open questions. Reply with the summary text only."
)


class SummaryMemory(MemoryStore):
    """
    Memory that summarizes aged messages with a language model.

    Messages accumulate until the total count exceeds ``max_messages``.
    Then every non-system message older than the last ``summary_threshold``
    is folded, together with the previous summary, into a single summary
    message. History is always read back as system messages, then the
    summary, then the verbatim recent messages.
    """

    memory_type = "summary"

    def __init__(
        self,
        provider: LLMProvider | None,
        max_messages: int = 20,
        summary_threshold: int = 10,
        summary_model: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._validate_limits(max_messages, summary_threshold)
        self.provider = provider
        self.max_messages = max_messages
        self.summary_threshold = summary_threshold
        self.summary_model = summary_model
        self._messages: list[Message] = []
        self._summary: Message | None = None

    @staticmethod
    def _validate_limits(max_messages: int, summary_threshold: int) -> None:
        if summary_threshold < 1:
            raise ValueError("summary_threshold must be at least 1")
        if summary_threshold >= max_messages:
            raise ValueError(
                f"summary_threshold ({summary_threshold}) must be less than max_messages ({max_messages})"
            )

    @property
    def current_summary(self) -> str:
        """Summary text without the prefix, or an empty string."""
        if self._summary is None:
            return ""
        return self._summary.content.removeprefix(SUMMARY_PREFIX)

    @property
    def has_summary(self) -> bool:
        return self._summary is not None

    def _ordered(self) -> list[Message]:
        system = [m for m in self._messages if m.role == "system"]
        rest = [m for m in self._messages if m.role != "system"]
        head = [self._summary] if self._summary is not None else []
        return system + head + rest

    async def get_all(self) -> list[Message]:
        return self._visible(self._ordered())

    async def get_recent(self, n: int) -> list[Message]:
        if n <= 0:
            return []
        raw = [m for m in await self.get_all() if not m.is_summary]
        return raw[-n:]

    async def _add(self, message: Message) -> None:
        if message.is_summary:
            self._summary = message
            return
        self._messages.append(message)
        if len(self._ordered()) > self.max_messages:
            await self._compact()

    async def _restore(self, messages: list[Message]) -> None:
        for message in messages:
            if message.is_summary:
                self._summary = message
            else:
                self._messages.append(message)

    async def _clear(self) -> None:
        self._messages.clear()
        self._summary = None

    async def _compact(self) -> None:
        system = [m for m in self._messages if m.role == "system"]
        rest = [m for m in self._messages if m.role != "system"]
        evicted = rest[: -self.summary_threshold]
        if not evicted:
            return

        text = await self._summarize(self.current_summary, evicted)
        summary_id = self._summary.id if self._summary is not None else f"{self.key}-summary"
        self._summary = self._stamp(
            Message(
                id=summary_id,
                role="assistant",
                content=SUMMARY_PREFIX + text,
                is_summary=True,
            )
        )
        self._messages = system + rest[-self.summary_threshold :]
        logger.debug(f"SummaryMemory '{self.key}': compacted {len(evicted)} messages")

    async def _summarize(self, previous: str, evicted: list[Message]) -> str:
        transcript = "\n".join(f"{m.role}: {m.content}" for m in evicted)
        if self.provider is not None:
            request = [
                {"role": "system", "content": SUMMARIZER_PROMPT},
                {
                    "role": "user",
                    "content": f"Previous summary:\n{previous or '(none)'}\n\nNew messages:\n{transcript}",
                },
            ]
            try:
                response = await self.provider.chat(messages=request, model=self.summary_model)
                if response.content and response.content.strip():
                    return response.content.strip()
                logger.warning(f"SummaryMemory '{self.key}': empty summary, using extractive fallback")
            except Exception as e:
                logger.warning(f"SummaryMemory '{self.key}': summarization failed ({e}), using extractive fallback")
        return self._extractive_summary(previous, evicted)

    @staticmethod
    def _extractive_summary(previous: str, evicted: list[Message]) -> str:
        lines = [previous] if previous else []
        lines.extend(f"{m.role}: {truncate_output(m.content, 200)}" for m in evicted)
        return "\n".join(lines)

    def _export_config(self) -> dict[str, Any]:
        return {
            "max_messages": self.max_messages,
            "summary_threshold": self.summary_threshold,
            "summary_model": self.summary_model,
            "current_summary": self.current_summary,
            "has_summary": self.has_summary,
        }

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        max_messages = int(config.get("max_messages", self.max_messages))
        threshold = int(config.get("summary_threshold", self.summary_threshold))
        self._validate_limits(max_messages, threshold)
        self.max_messages = max_messages
        self.summary_threshold = threshold
        self.summary_model = config.get("summary_model", self.summary_model)
