"""Role-tagged chat messages shared by prompts, memory and the agent loop."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant", "tool"]
ROLES: tuple[str, ...] = ("system", "user", "assistant", "tool")


def new_message_id() -> str:
    """Generate a unique message identifier."""
    return uuid4().hex


class Message(BaseModel):
    """
    A single chat message.

    Attributes:
        id: Identity used for de-duplication across memory strategies.
        role: One of ``system``, ``user``, ``assistant`` or ``tool``.
        content: The message text.
        tool_call_id: For tool results, the id of the call being answered.
        tool_name: For tool results, the name of the tool that ran.
        tool_calls: For assistant messages that request tools, the calls in
            OpenAI function-call format.
        is_error: True when a tool result carries a failure.
        is_summary: True for the single compacted summary kept by SummaryMemory.
        metadata: Arbitrary extension fields (scope identifiers, timestamps).
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_message_id)
    role: Role
    content: str = ""
    tool_call_id: str | None = None
    tool_name: str | None = None
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)
    is_error: bool = False
    is_summary: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @classmethod
    def system(cls, content: str, **kwargs: Any) -> Message:
        return cls(role="system", content=content, **kwargs)

    @classmethod
    def user(cls, content: str, **kwargs: Any) -> Message:
        return cls(role="user", content=content, **kwargs)

    @classmethod
    def assistant(cls, content: str, **kwargs: Any) -> Message:
        return cls(role="assistant", content=content, **kwargs)

    @classmethod
    def tool_result(
        cls,
        call_id: str,
        tool_name: str,
        content: str,
        is_error: bool = False,
    ) -> Message:
        """Build the message that answers one tool call."""
        return cls(
            role="tool",
            content=content,
            tool_call_id=call_id,
            tool_name=tool_name,
            is_error=is_error,
        )

    def to_provider(self) -> dict[str, Any]:
        """Convert to the OpenAI-style dict sent to providers."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.role == "tool":
            data["tool_call_id"] = self.tool_call_id or ""
            data["name"] = self.tool_name or ""
        if self.role == "assistant" and self.tool_calls:
            data["tool_calls"] = self.tool_calls
        return data

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        """Deserialize from a dict produced by ``to_dict`` or a provider payload."""
        payload = dict(data)
        if "name" in payload and "tool_name" not in payload and payload.get("role") == "tool":
            payload["tool_name"] = payload.pop("name")
        if payload.get("text") is not None and "content" not in payload:
            payload["content"] = payload.pop("text")
        return cls.model_validate(payload)


def coerce_message(value: Message | str | Mapping[str, Any], default_role: Role = "user") -> Message:
    """
    Normalize a message-like value into a Message.

    Args:
        value: A Message, plain text (treated as ``default_role``) or a mapping.
        default_role: Role applied to plain text and to mappings without a role.

    Returns:
        The Message instance.
    """
    if isinstance(value, Message):
        return value
    if isinstance(value, str):
        return Message(role=default_role, content=value)
    if isinstance(value, Mapping):
        payload = dict(value)
        payload.setdefault("role", default_role)
        return Message.from_dict(payload)
    raise TypeError(f"Cannot build a message from {type(value).__name__}")


def to_provider_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert an ordered message list to provider dicts."""
    return [m.to_provider() for m in messages]
