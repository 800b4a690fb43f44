"""Process-local vector store with brute-force similarity search."""

from __future__ import annotations

import math
from typing import Any

from taskweave.memory.vector_stores.base import (
    MetadataFilter,
    VectorMatch,
    VectorRecord,
    VectorStore,
    matches_filter,
)

METRICS = ("cosine", "euclidean", "dot")


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def euclidean_score(a: list[float], b: list[float]) -> float:
    distance = math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))
    return 1.0 / (1.0 + distance)


def dot_product(a: list[float], b: list[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


_SCORERS = {
    "cosine": cosine_similarity,
    "euclidean": euclidean_score,
    "dot": dot_product,
}


class InMemoryVectorStore(VectorStore):
    """
    Vector store backed by a dict.

    Suitable for tests and single-process use. Records keep insertion
    order; re-upserting an id replaces it in place.
    """

    def __init__(self, metric: str = "cosine") -> None:
        if metric not in _SCORERS:
            raise ValueError(f"Unknown similarity metric {metric!r}; expected one of {METRICS}")
        self.metric = metric
        self._score = _SCORERS[metric]
        self._records: dict[str, VectorRecord] = {}

    async def upsert(
        self,
        id: str,
        vector: list[float],
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._records[id] = VectorRecord(
            id=id, text=text, metadata=dict(metadata or {}), vector=list(vector)
        )

    async def query(
        self,
        vector: list[float],
        limit: int = 5,
        filter: MetadataFilter | None = None,
    ) -> list[VectorMatch]:
        if limit <= 0:
            return []
        scored = [
            VectorMatch(
                id=record.id,
                text=record.text,
                metadata=dict(record.metadata),
                score=self._score(vector, record.vector or []),
            )
            for record in self._records.values()
            if matches_filter(record.metadata, filter)
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:limit]

    async def get(self, filter: MetadataFilter | None = None) -> list[VectorRecord]:
        return [
            VectorRecord(r.id, r.text, dict(r.metadata), list(r.vector or []))
            for r in self._records.values()
            if matches_filter(r.metadata, filter)
        ]

    async def delete(
        self,
        filter: MetadataFilter | None = None,
        ids: list[str] | None = None,
    ) -> int:
        if ids is None:
            candidates = self._records
        else:
            candidates = {rid: self._records[rid] for rid in ids if rid in self._records}
        doomed = [rid for rid, r in candidates.items() if matches_filter(r.metadata, filter)]
        for rid in doomed:
            del self._records[rid]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._records)
