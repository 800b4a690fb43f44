"""Fixed-size FIFO conversation memory."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger

from taskweave.memory.base import MemoryStore
from taskweave.messages import Message


class WindowMemory(MemoryStore):
    """
    Keeps at most ``max_messages`` messages.

    When a write overflows the window, the oldest non-system messages are
    evicted first, so standing instructions survive as long as possible.
    """

    memory_type = "window"

    def __init__(self, max_messages: int = 100, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_messages = max_messages
        self._messages: list[Message] = []

    async def _add(self, message: Message) -> None:
        self._messages.append(message)
        self._trim()

    def _trim(self) -> None:
        evicted = 0
        while len(self._messages) > self.max_messages:
            index = next(
                (i for i, m in enumerate(self._messages) if m.role != "system"),
                0,
            )
            self._messages.pop(index)
            evicted += 1
        if evicted:
            logger.debug(f"WindowMemory '{self.key}': evicted {evicted} messages")

    async def _clear(self) -> None:
        self._messages.clear()

    async def get_all(self) -> list[Message]:
        return self._visible(self._messages)

    def _export_config(self) -> dict[str, Any]:
        return {"max_messages": self.max_messages}

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        if "max_messages" in config:
            self.max_messages = int(config["max_messages"])
