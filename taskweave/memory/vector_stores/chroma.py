"""ChromaDB vector store."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import chromadb
from chromadb.config import Settings
from loguru import logger

from taskweave.memory.vector_stores.base import MetadataFilter, VectorMatch, VectorRecord, VectorStore

# taskweave metric name -> chroma hnsw space
_SPACES = {"cosine": "cosine", "euclidean": "l2", "dot": "ip"}


class ChromaVectorStore(VectorStore):
    """
    Vector store using a ChromaDB collection.

    Embeddings are computed by the memory's provider and passed explicitly,
    so the collection never runs its own embedding function. Chroma returns
    distances; they are converted to similarity scores (higher is closer).
    """

    def __init__(
        self,
        collection_name: str = "taskweave_memory",
        path: str | Path | None = None,
        metric: str = "cosine",
        client: Any = None,
    ) -> None:
        """
        Initialize the Chroma store.

        Args:
            collection_name: Collection to read and write.
            path: Directory for a persistent client; ephemeral when omitted.
            metric: ``cosine``, ``euclidean`` or ``dot``.
            client: Pre-built chromadb client, overriding ``path``.
        """
        if metric not in _SPACES:
            raise ValueError(f"Unknown similarity metric {metric!r}; expected one of {tuple(_SPACES)}")
        self.metric = metric

        if client is not None:
            self._client = client
        elif path is not None:
            db_path = Path(path).expanduser()
            db_path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Initializing ChromaDB client at {db_path}")
            self._client = chromadb.PersistentClient(
                path=str(db_path),
                settings=Settings(anonymized_telemetry=False),
            )
        else:
            self._client = chromadb.EphemeralClient(settings=Settings(anonymized_telemetry=False))

        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": _SPACES[metric]},
        )

    @staticmethod
    def _where(filter: MetadataFilter | None) -> dict[str, Any] | None:
        if not filter:
            return None
        clauses = [{key: {"$eq": value}} for key, value in filter.items()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    def _score(self, distance: float) -> float:
        if self.metric == "euclidean":
            # chroma l2 space reports squared distance
            return 1.0 / (1.0 + max(distance, 0.0) ** 0.5)
        return 1.0 - distance

    async def upsert(
        self,
        id: str,
        vector: list[float],
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        # Chroma accepts str, int, float and bool metadata only
        clean = {k: v for k, v in (metadata or {}).items() if isinstance(v, (str, int, float, bool))}
        kwargs: dict[str, Any] = {"ids": [id], "embeddings": [list(vector)], "documents": [text]}
        if clean:
            kwargs["metadatas"] = [clean]
        self._collection.upsert(**kwargs)
        logger.debug(f"ChromaVectorStore: stored record {id}")

    async def query(
        self,
        vector: list[float],
        limit: int = 5,
        filter: MetadataFilter | None = None,
    ) -> list[VectorMatch]:
        available = await self.count(filter)
        if limit <= 0 or available == 0:
            return []

        results = self._collection.query(
            query_embeddings=[list(vector)],
            n_results=min(limit, available),
            where=self._where(filter),
            include=["documents", "metadatas", "distances"],
        )

        # Chroma returns lists of lists because it supports batch queries
        if not results or not results["ids"] or not results["ids"][0]:
            return []
        ids = results["ids"][0]
        documents = (results.get("documents") or [[]])[0] or []
        metadatas = (results.get("metadatas") or [[]])[0] or []
        distances = (results.get("distances") or [[]])[0] or []

        matches = []
        for i, record_id in enumerate(ids):
            matches.append(
                VectorMatch(
                    id=record_id,
                    text=str(documents[i] or "") if i < len(documents) else "",
                    metadata=dict(metadatas[i] or {}) if i < len(metadatas) else {},
                    score=self._score(float(distances[i])) if i < len(distances) else 0.0,
                )
            )
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    async def get(self, filter: MetadataFilter | None = None) -> list[VectorRecord]:
        results = self._collection.get(
            where=self._where(filter), include=["documents", "metadatas", "embeddings"]
        )
        if not results or not results["ids"]:
            return []
        documents = results.get("documents") or []
        metadatas = results.get("metadatas") or []
        embeddings = results.get("embeddings")
        if embeddings is None:
            embeddings = []
        return [
            VectorRecord(
                id=record_id,
                text=str(documents[i] or "") if i < len(documents) else "",
                metadata=dict(metadatas[i] or {}) if i < len(metadatas) else {},
                vector=[float(v) for v in embeddings[i]] if i < len(embeddings) else None,
            )
            for i, record_id in enumerate(results["ids"])
        ]

    async def count(self, filter: MetadataFilter | None = None) -> int:
        if not filter:
            return self._collection.count()
        return len(self._collection.get(where=self._where(filter), include=["metadatas"])["ids"])

    async def delete(
        self,
        filter: MetadataFilter | None = None,
        ids: list[str] | None = None,
    ) -> int:
        if ids is not None and not ids:
            return 0
        ids = self._collection.get(ids=ids, where=self._where(filter), include=["metadatas"])["ids"]
        if ids:
            self._collection.delete(ids=ids)
            logger.debug(f"ChromaVectorStore: deleted {len(ids)} records")
        return len(ids)
