"""Embedding-backed memory with similarity retrieval."""

from __future__ import annotations

import json
import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from loguru import logger

from taskweave.errors import MemoryReadError
from taskweave.memory.base import MemoryStore
from taskweave.memory.vector_stores.base import VectorRecord, VectorStore
from taskweave.memory.vector_stores.in_memory import InMemoryVectorStore
from taskweave.messages import Message
from taskweave.providers.base import LLMProvider


class VectorMemory(MemoryStore):
    """
    Memory that embeds every message and retrieves by similarity.

    Each message is stored with its text and a metadata record holding the
    serialized message, a write sequence number, the store key and the
    store's scope. Key and scope together form the backend filter and
    prefix every record id, so stores sharing one collection never read,
    overwrite or delete each other's vectors.
    """

    memory_type = "vector"

    def __init__(
        self,
        provider: LLMProvider,
        store: VectorStore | None = None,
        embedding_model: str | None = None,
        min_score: float | None = None,
        default_limit: int = 5,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.provider = provider
        self.store = store if store is not None else InMemoryVectorStore()
        self.embedding_model = embedding_model
        self.min_score = min_score
        self.default_limit = default_limit
        self._last_seq = 0

    def _next_seq(self) -> int:
        self._last_seq = max(time.time_ns(), self._last_seq + 1)
        return self._last_seq

    @property
    def _filter(self) -> dict[str, str]:
        return {"memory_key": self.key, **self.scope}

    def _record_id(self, message_id: str) -> str:
        return ":".join([self.key, *self.scope.values(), message_id])

    async def _embed(self, text: str) -> list[float]:
        return await self.provider.embed(text or " ", model=self.embedding_model)

    async def _record(self, message: Message) -> VectorRecord:
        vector = await self._embed(message.content)
        metadata: dict[str, Any] = {
            "message": json.dumps(message.to_dict(), ensure_ascii=False),
            "message_id": message.id,
            "role": message.role,
            "seq": self._next_seq(),
            "created_at": datetime.now().isoformat(),
            **self._filter,
        }
        return VectorRecord(self._record_id(message.id), message.content, metadata, vector)

    async def _add(self, message: Message) -> None:
        record = await self._record(message)
        await self.store.upsert(record.id, record.vector or [], record.text, record.metadata)

    async def _clear(self) -> None:
        removed = await self.store.delete(self._filter)
        logger.debug(f"VectorMemory '{self.key}': cleared {removed} records")

    async def _stage(self, messages: list[Message]) -> list[VectorRecord]:
        return [await self._record(message) for message in await super()._stage(messages)]

    async def _swap(self, staged: list[VectorRecord]) -> None:
        # upsert first, then drop stale records; a failed upsert is rolled back
        existing = {record.id: record for record in await self.store.get(self._filter)}
        written: list[str] = []
        try:
            for record in staged:
                written.append(record.id)
                await self.store.upsert(record.id, record.vector or [], record.text, record.metadata)
        except Exception:
            await self._rollback(written, existing)
            raise
        stale = [rid for rid in existing if rid not in {record.id for record in staged}]
        if stale:
            await self.store.delete(self._filter, ids=stale)

    async def _rollback(self, written: list[str], existing: Mapping[str, VectorRecord]) -> None:
        added = [rid for rid in written if rid not in existing]
        if added:
            await self.store.delete(self._filter, ids=added)
        for rid in written:
            previous = existing.get(rid)
            if previous is not None and previous.vector is not None:
                await self.store.upsert(previous.id, previous.vector, previous.text, previous.metadata)
        logger.warning(f"VectorMemory '{self.key}': import failed, rolled back {len(written)} records")

    @staticmethod
    def _to_message(record_id: str, text: str, metadata: Mapping[str, Any]) -> Message:
        raw = metadata.get("message")
        if raw:
            try:
                return Message.from_dict(json.loads(raw))
            except (ValueError, TypeError) as e:
                logger.warning(f"VectorMemory: malformed message payload for {record_id}: {e}")
        return Message(id=metadata.get("message_id", record_id), role=metadata.get("role", "user"), content=text)

    def _from_record(self, record: VectorRecord) -> Message:
        return self._to_message(record.id, record.text, record.metadata)

    async def get_all(self) -> list[Message]:
        try:
            records = await self.store.get(self._filter)
        except Exception as e:
            raise MemoryReadError(f"VectorMemory '{self.key}' could not read its store: {e}") from e
        records.sort(key=lambda r: int(r.metadata.get("seq", 0)))
        return self._visible(self._from_record(r) for r in records)

    async def count(self) -> int:
        try:
            return await self.store.count(self._filter)
        except Exception as e:
            raise MemoryReadError(f"VectorMemory '{self.key}' could not count its store: {e}") from e

    async def get_relevant(
        self,
        query: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> list[Message]:
        """
        Nearest-neighbour search.

        Args:
            query: Text to match.
            limit: Maximum hits; defaults to ``default_limit``.
            min_score: Score floor overriding the store-wide one.

        Returns:
            Matching messages, most similar first.
        """
        limit = self.default_limit if limit is None else limit
        floor = self.min_score if min_score is None else min_score
        try:
            vector = await self._embed(query)
            matches = await self.store.query(vector, limit, self._filter)
        except Exception as e:
            raise MemoryReadError(f"VectorMemory '{self.key}' query failed: {e}") from e

        if floor is not None:
            matches = [m for m in matches if m.score >= floor]
        return self._visible(self._to_message(m.id, m.text, m.metadata) for m in matches)

    async def get_context(self, query: str | None = None, limit: int | None = None) -> list[Message]:
        if not query:
            return await self.get_recent(limit or self.default_limit)
        return await self.get_relevant(query, limit)

    async def get_summary(self) -> dict[str, Any]:
        summary = await super().get_summary()
        summary["store"] = type(self.store).__name__
        return summary

    def _export_config(self) -> dict[str, Any]:
        return {
            "embedding_model": self.embedding_model,
            "min_score": self.min_score,
            "default_limit": self.default_limit,
        }

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        self.embedding_model = config.get("embedding_model", self.embedding_model)
        self.min_score = config.get("min_score", self.min_score)
        self.default_limit = int(config.get("default_limit", self.default_limit))
