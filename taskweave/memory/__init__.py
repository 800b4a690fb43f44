"""Conversation memory strategies."""

from taskweave.memory.base import MemoryStore
from taskweave.memory.factory import create_memory
from taskweave.memory.file_memory import FileMemory
from taskweave.memory.hybrid import HybridMemory
from taskweave.memory.summary import SummaryMemory
from taskweave.memory.vector import VectorMemory
from taskweave.memory.window import WindowMemory

__all__ = [
    "FileMemory",
    "HybridMemory",
    "MemoryStore",
    "SummaryMemory",
    "VectorMemory",
    "WindowMemory",
    "create_memory",
]
