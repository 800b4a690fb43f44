"""Vector storage backends for similarity-capable memories."""

from taskweave.memory.vector_stores.base import VectorMatch, VectorRecord, VectorStore
from taskweave.memory.vector_stores.in_memory import InMemoryVectorStore

__all__ = ["InMemoryVectorStore", "VectorMatch", "VectorRecord", "VectorStore"]
