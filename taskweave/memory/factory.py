"""Factory for memory strategies by name."""

from __future__ import annotations

from typing import Any

from loguru import logger

from taskweave.memory.base import MemoryStore

MEMORY_TYPES = ("window", "buffered", "summary", "vector", "hybrid", "file")


def create_memory(kind: str = "window", key: str | None = None, **config: Any) -> MemoryStore:
    """
    Create a memory store.

    Args:
        kind: One of 'window' (alias 'buffered'), 'summary', 'vector',
            'hybrid' or 'file'.
        key: Store key; generated when omitted.
        **config: Strategy arguments, e.g. ``provider`` for summary,
            vector and hybrid memories or ``path`` for file memory.

    Returns:
        Configured MemoryStore instance.

    Raises:
        ValueError: Unknown kind or missing required argument.
    """
    kind = kind.lower()
    if kind in ("window", "buffered"):
        from taskweave.memory.window import WindowMemory

        memory: MemoryStore = WindowMemory(key=key, **config)
    elif kind == "summary":
        from taskweave.memory.summary import SummaryMemory

        memory = SummaryMemory(config.pop("provider", None), key=key, **config)
    elif kind in ("vector", "hybrid"):
        provider = config.pop("provider", None)
        if provider is None:
            raise ValueError(f"{kind} memory requires a provider for embeddings")
        if kind == "vector":
            from taskweave.memory.vector import VectorMemory

            memory = VectorMemory(provider, key=key, **config)
        else:
            from taskweave.memory.hybrid import HybridMemory

            memory = HybridMemory(provider, key=key, **config)
    elif kind == "file":
        from taskweave.memory.file_memory import FileMemory

        path = config.pop("path", None)
        if path is None:
            raise ValueError("file memory requires a path")
        memory = FileMemory(path, key=key, **config)
    else:
        raise ValueError(f"Unknown memory type {kind!r}; expected one of {MEMORY_TYPES}")

    logger.debug(f"Memory created: type={kind}, key={memory.key}")
    return memory
