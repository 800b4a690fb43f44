"""Abstract base class for vector storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

MetadataFilter = dict[str, Any]


@dataclass
class VectorRecord:
    """A stored vector with its text and metadata."""

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    vector: list[float] | None = None


@dataclass
class VectorMatch:
    """A query hit. Higher ``score`` means more similar."""

    id: str
    text: str
    metadata: dict[str, Any]
    score: float


def matches_filter(metadata: dict[str, Any], filter: MetadataFilter | None) -> bool:
    """Equality match on every filter key."""
    if not filter:
        return True
    return all(metadata.get(key) == value for key, value in filter.items())


class VectorStore(ABC):
    """
    Abstract vector storage backend.

    Filters are equality predicates on metadata keys. Memories use them to
    isolate tenants and conversations sharing one collection, so every
    read and delete must honor them.
    """

    @abstractmethod
    async def upsert(
        self,
        id: str,
        vector: list[float],
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """
        Insert or replace a vector.

        Args:
            id: Record identifier.
            vector: Embedding.
            text: Source text.
            metadata: Scalar metadata values.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        limit: int = 5,
        filter: MetadataFilter | None = None,
    ) -> list[VectorMatch]:
        """
        Nearest-neighbour search.

        Returns:
            Up to ``limit`` matches, most similar first.
        """

    @abstractmethod
    async def get(self, filter: MetadataFilter | None = None) -> list[VectorRecord]:
        """All records matching ``filter``, in insertion order where the backend keeps one."""

    async def count(self, filter: MetadataFilter | None = None) -> int:
        return len(await self.get(filter))

    @abstractmethod
    async def delete(
        self,
        filter: MetadataFilter | None = None,
        ids: list[str] | None = None,
    ) -> int:
        """
        Delete records matching ``filter``.

        Args:
            filter: Metadata predicate.
            ids: When given, only these records are candidates.

        Returns:
            How many records were removed.
        """
