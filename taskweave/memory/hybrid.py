"""Memory combining a recency window with similarity retrieval."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger

from taskweave.errors import MemoryReadError
from taskweave.memory.base import MemoryStore
from taskweave.memory.vector import VectorMemory
from taskweave.memory.vector_stores.base import VectorStore
from taskweave.memory.window import WindowMemory
from taskweave.messages import Message
from taskweave.providers.base import LLMProvider


class HybridMemory(MemoryStore):
    """
    Recent messages plus semantically relevant ones.

    Storage is delegated to a VectorMemory holding the complete history; a
    WindowMemory mirrors the most recent messages. Per query, the last
    ``recent_limit`` messages are combined with up to ``semantic_limit``
    relevant ones, de-duplicated by message id and capped to ``total_limit``.
    When the similarity backend cannot be read, the recent window is still
    returned unless ``strict`` is set.
    """

    memory_type = "hybrid"

    def __init__(
        self,
        provider: LLMProvider,
        store: VectorStore | None = None,
        recent_limit: int = 5,
        semantic_limit: int = 5,
        total_limit: int = 10,
        embedding_model: str | None = None,
        min_score: float | None = None,
        strict: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.strict = strict
        self.recent_limit = recent_limit
        self.semantic_limit = semantic_limit
        self.total_limit = total_limit
        scope = {"key": self.key, "user_id": self.user_id, "conversation_id": self.conversation_id}
        self.recent = WindowMemory(max_messages=max(recent_limit, 1), **scope)
        self.vector = VectorMemory(
            provider,
            store=store,
            embedding_model=embedding_model,
            min_score=min_score,
            default_limit=semantic_limit,
            **scope,
        )

    def _set_identity(
        self,
        key: str,
        user_id: str | None,
        conversation_id: str | None,
        metadata: Mapping[str, Any],
    ) -> None:
        super()._set_identity(key, user_id, conversation_id, metadata)
        for inner in (self.recent, self.vector):
            inner._set_identity(key, user_id, conversation_id, {})

    async def _add(self, message: Message) -> None:
        await self.vector.add(message)
        await self.recent.add(message)

    async def _clear(self) -> None:
        await self.vector.clear()
        await self.recent.clear()

    async def _stage(self, messages: list[Message]) -> tuple[list[Message], Any]:
        staged = await super()._stage(messages)
        return staged, await self.vector._stage(staged)

    async def _swap(self, staged: tuple[list[Message], Any]) -> None:
        messages, records = staged
        async with self.vector._lock:
            await self.vector._swap(records)
        async with self.recent._lock:
            await self.recent._swap(messages)

    async def get_all(self) -> list[Message]:
        return await self.vector.get_all()

    async def count(self) -> int:
        return await self.vector.count()

    async def get_recent(self, n: int) -> list[Message]:
        if n <= self.recent.max_messages:
            return await self.recent.get_recent(n)
        return await self.vector.get_recent(n)

    async def get_relevant(self, query: str, limit: int | None = None) -> list[Message]:
        return await self.vector.get_relevant(query, limit if limit is not None else self.semantic_limit)

    async def get_context(self, query: str | None = None, limit: int | None = None) -> list[Message]:
        """
        Relevant messages not already in the recent window, then the window.

        Args:
            query: Text to match; without one only recent messages are returned.
            limit: Cap overriding ``total_limit``.
        """
        recent = await self.recent.get_recent(self.recent_limit)
        relevant: list[Message] = []
        if query:
            try:
                relevant = await self.vector.get_relevant(query, self.semantic_limit)
            except MemoryReadError as e:
                if self.strict:
                    raise
                logger.warning(f"HybridMemory '{self.key}': relevance search failed, using recent messages only: {e}")

        cap = limit or self.total_limit
        if cap <= 0:
            return []
        recent = recent[-cap:]

        seen = {m.id for m in recent}
        picked: list[Message] = []
        for message in relevant:
            if len(picked) >= cap - len(recent):
                break
            if message.id not in seen:
                seen.add(message.id)
                picked.append(message)
        return picked + recent

    async def get_summary(self) -> dict[str, Any]:
        summary = await super().get_summary()
        summary["store"] = type(self.vector.store).__name__
        return summary

    def _export_config(self) -> dict[str, Any]:
        return {
            "recent_limit": self.recent_limit,
            "semantic_limit": self.semantic_limit,
            "total_limit": self.total_limit,
            "embedding_model": self.vector.embedding_model,
            "min_score": self.vector.min_score,
            "strict": self.strict,
        }

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        self.recent_limit = int(config.get("recent_limit", self.recent_limit))
        self.semantic_limit = int(config.get("semantic_limit", self.semantic_limit))
        self.total_limit = int(config.get("total_limit", self.total_limit))
        self.recent.max_messages = max(self.recent_limit, 1)
        self.vector.default_limit = self.semantic_limit
        self.vector.embedding_model = config.get("embedding_model", self.vector.embedding_model)
        self.vector.min_score = config.get("min_score", self.vector.min_score)
        self.strict = bool(config.get("strict", self.strict))
