"""Windowed memory persisted to a JSON document."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from taskweave.memory.window import WindowMemory
from taskweave.messages import Message


class FileMemory(WindowMemory):
    """
    WindowMemory that survives restarts.

    The full ``export`` document is rewritten after every write and
    reloaded when the store is constructed.
    """

    memory_type = "file"

    def __init__(self, path: str | Path, max_messages: int = 20, **kwargs: Any) -> None:
        super().__init__(max_messages=max_messages, **kwargs)
        self.path = Path(path).expanduser()
        self._load()

    def _document(self) -> dict[str, Any]:
        return {
            "type": self.memory_type,
            "key": self.key,
            "user_id": self.user_id,
            "conversation_id": self.conversation_id,
            "metadata": dict(self.metadata),
            "config": self._export_config(),
            "messages": [m.to_dict() for m in self._messages],
        }

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"FileMemory: could not load {self.path}: {e}")
            return

        self._set_identity(
            key=data.get("key") or self.key,
            user_id=data.get("user_id", self.user_id),
            conversation_id=data.get("conversation_id", self.conversation_id),
            metadata=data.get("metadata") or self.metadata,
        )
        self._apply_config(data.get("config") or {})
        self._messages = [Message.from_dict(m) for m in data.get("messages", [])]
        self._trim()
        logger.debug(f"FileMemory: loaded {len(self._messages)} messages from {self.path}")

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._document(), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def _add(self, message: Message) -> None:
        await super()._add(message)
        self._persist()

    async def _clear(self) -> None:
        await super()._clear()
        self._persist()

    async def _swap(self, staged: list[Message]) -> None:
        previous = self._messages
        self._messages = list(staged)
        self._trim()
        try:
            self._persist()
        except Exception:
            self._messages = previous
            raise
