"""Abstract base class for conversation memory strategies."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any
from uuid import uuid4

from loguru import logger

from taskweave.errors import MemoryWriteError
from taskweave.messages import Message, coerce_message

MessageLike = Message | str | Mapping[str, Any]
SCOPE_KEYS = ("user_id", "conversation_id")


class MemoryStore(ABC):
    """
    Ordered conversation history behind one interface.

    A store may be scoped with ``user_id`` and/or ``conversation_id``.
    Every message written through a scoped store is stamped with the scope
    in its metadata, and every read returns only messages carrying it.

    Writers are serialized by a per-store lock; reads take no lock.
    """

    memory_type = "memory"

    def __init__(
        self,
        key: str | None = None,
        user_id: str | None = None,
        conversation_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self.key = key or uuid4().hex
        self.user_id = user_id
        self.conversation_id = conversation_id
        self.metadata: dict[str, Any] = dict(metadata or {})
        self._lock = asyncio.Lock()

    # -- scope -------------------------------------------------------------

    @property
    def scope(self) -> dict[str, str]:
        """Active tenant/conversation filter."""
        return {
            key: value
            for key, value in (("user_id", self.user_id), ("conversation_id", self.conversation_id))
            if value is not None
        }

    def _stamp(self, message: Message) -> Message:
        scope = self.scope
        if not scope:
            return message
        return message.model_copy(update={"metadata": {**message.metadata, **scope}})

    def _in_scope(self, message: Message) -> bool:
        return all(message.metadata.get(key) == value for key, value in self.scope.items())

    def _visible(self, messages: Iterable[Message]) -> list[Message]:
        return [m for m in messages if self._in_scope(m)]

    # -- writes ------------------------------------------------------------

    async def add(self, message: MessageLike) -> Message:
        """
        Append a message.

        Args:
            message: A Message, plain text (stored as a user message) or a mapping.

        Returns:
            The stored message, stamped with the store's scope.

        Raises:
            MemoryWriteError: The backend could not persist the message.
        """
        stored = self._stamp(coerce_message(message))
        async with self._lock:
            await self._guarded_write(self._add(stored), f"add message {stored.id}")
        return stored

    async def add_all(self, messages: Iterable[MessageLike]) -> list[Message]:
        """Append messages in order."""
        return [await self.add(message) for message in messages]

    async def clear(self) -> None:
        """Remove every message in this store's scope."""
        async with self._lock:
            await self._guarded_write(self._clear(), "clear")

    async def _guarded_write(self, operation: Awaitable[None], label: str) -> None:
        try:
            await operation
        except MemoryWriteError:
            raise
        except Exception as e:
            logger.error(f"{type(self).__name__} '{self.key}' failed to {label}: {e}")
            raise MemoryWriteError(f"{type(self).__name__} '{self.key}' failed to {label}: {e}") from e

    @abstractmethod
    async def _add(self, message: Message) -> None:
        """Persist one already-stamped message. Called with the write lock held."""

    @abstractmethod
    async def _clear(self) -> None:
        """Remove every message. Called with the write lock held."""

    async def _restore(self, messages: list[Message]) -> None:
        """Reload exported messages. Called with the write lock held."""
        for message in messages:
            await self._add(message)

    # -- reads -------------------------------------------------------------

    @abstractmethod
    async def get_all(self) -> list[Message]:
        """Full history visible to this store's scope, oldest first."""

    async def get_recent(self, n: int) -> list[Message]:
        """The last ``n`` messages, oldest first."""
        if n <= 0:
            return []
        return (await self.get_all())[-n:]

    async def get_relevant(self, query: str, limit: int = 5) -> list[Message]:
        """
        Messages relevant to ``query``.

        Stores without similarity search degrade to recency.
        """
        return await self.get_recent(limit)

    async def get_context(self, query: str | None = None, limit: int | None = None) -> list[Message]:
        """Messages an agent should see before the new user input."""
        messages = await self.get_all()
        return messages[-limit:] if limit else messages

    async def count(self) -> int:
        return len(await self.get_all())

    async def get_system_message(self) -> Message | None:
        """The first system message, if any."""
        for message in await self.get_all():
            if message.role == "system":
                return message
        return None

    async def get_summary(self) -> dict[str, Any]:
        """Introspection snapshot."""
        return {
            "type": self.memory_type,
            "key": self.key,
            "message_count": await self.count(),
            "user_id": self.user_id,
            "conversation_id": self.conversation_id,
            "metadata": dict(self.metadata),
            **self._export_config(),
        }

    # -- persistence -------------------------------------------------------

    def _export_config(self) -> dict[str, Any]:
        return {}

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        pass

    def _set_identity(
        self,
        key: str,
        user_id: str | None,
        conversation_id: str | None,
        metadata: Mapping[str, Any],
    ) -> None:
        self.key = key
        self.user_id = user_id
        self.conversation_id = conversation_id
        self.metadata = dict(metadata)

    async def _stage(self, messages: list[Message]) -> Any:
        """
        Do the fallible preparation of an import without touching stored state.

        Called with the write lock held and the imported identity applied.
        """
        return [self._stamp(m) for m in messages]

    async def _swap(self, staged: Any) -> None:
        """Replace the stored state with staged import data. Called with the write lock held."""
        await self._clear()
        await self._restore(staged)

    async def export(self) -> dict[str, Any]:
        """
        Serialize state and configuration.

        The returned dict is exactly what ``import_`` accepts.
        """
        return {
            "type": self.memory_type,
            "key": self.key,
            "user_id": self.user_id,
            "conversation_id": self.conversation_id,
            "metadata": dict(self.metadata),
            "config": self._export_config(),
            "messages": [m.to_dict() for m in await self.get_all()],
        }

    async def import_(self, data: Mapping[str, Any]) -> None:
        """
        Replace this store's state with an ``export`` document.

        The document's identity and configuration are applied first, so only
        records under the imported key and scope are replaced. Messages are
        staged before anything is removed; when staging or the swap fails,
        the previous identity and configuration are restored and the stored
        history is left as it was.

        Raises:
            ValueError: The document belongs to another memory type.
            MemoryWriteError: The document is malformed or the backend could
                not persist the messages.
        """
        kind = data.get("type")
        if kind is not None and kind != self.memory_type:
            raise ValueError(f"Cannot import '{kind}' memory into {type(self).__name__}")
        try:
            messages = [Message.from_dict(m) for m in data.get("messages") or []]
        except (TypeError, ValueError) as e:
            raise MemoryWriteError(f"{type(self).__name__} '{self.key}': malformed export document: {e}") from e

        async with self._lock:
            previous_identity = (self.key, self.user_id, self.conversation_id, dict(self.metadata))
            previous_config = self._export_config()
            try:
                self._set_identity(
                    key=data.get("key") or self.key,
                    user_id=data.get("user_id"),
                    conversation_id=data.get("conversation_id"),
                    metadata=data.get("metadata") or {},
                )
                self._apply_config(data.get("config") or {})
                staged = await self._stage(messages)
                await self._swap(staged)
            except Exception as e:
                self._set_identity(*previous_identity)
                self._apply_config(previous_config)
                if isinstance(e, MemoryWriteError):
                    raise
                logger.error(f"{type(self).__name__} '{self.key}' failed to import messages: {e}")
                raise MemoryWriteError(f"{type(self).__name__} '{self.key}' failed to import messages: {e}") from e
        logger.debug(f"{type(self).__name__} '{self.key}': imported {len(messages)} messages")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"
