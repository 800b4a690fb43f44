"""Exception types raised by the agent engine and its collaborators."""

from __future__ import annotations


class TaskweaveError(Exception):
    """Base class for every error raised by taskweave."""


class SchemaValidationError(TaskweaveError):
    """Raised when a tool or parameter schema is malformed at registration time."""

    def __init__(self, message: str, tool_name: str = "") -> None:
        super().__init__(message)
        self.tool_name = tool_name


class TemplateRenderError(TaskweaveError):
    """Raised when a prompt placeholder has no binding."""

    def __init__(self, placeholder: str) -> None:
        super().__init__(f"No binding provided for placeholder '${{{placeholder}}}'")
        self.placeholder = placeholder


class UnsupportedModelError(TaskweaveError):
    """Raised when an agent exposes tools to a provider without tool support."""


class ToolResolutionError(TaskweaveError):
    """Raised when the model requests a tool that is not registered. Fatal."""

    def __init__(self, tool_name: str, available: list[str] | None = None) -> None:
        known = ", ".join(available or []) or "none"
        super().__init__(f"Tool '{tool_name}' not found (available: {known})")
        self.tool_name = tool_name
        self.available = list(available or [])


class ToolExecutionError(TaskweaveError):
    """
    Raised when a tool callback fails, times out or gets invalid arguments.

    The agent loop recovers from this error by turning it into an
    error-flagged tool result message.
    """

    def __init__(self, tool_name: str, message: str, call_id: str = "") -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.call_id = call_id


class ModelCallError(TaskweaveError):
    """Raised when the language model could not be reached after all retries."""

    def __init__(self, message: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class MaxIterationsExceeded(TaskweaveError):
    """Raised when the tool-call loop hits its iteration ceiling."""

    def __init__(self, max_iterations: int, agent_name: str = "") -> None:
        who = f"Agent '{agent_name}'" if agent_name else "Agent"
        super().__init__(f"{who} exceeded the maximum of {max_iterations} iterations")
        self.max_iterations = max_iterations
        self.agent_name = agent_name


class MemoryReadError(TaskweaveError):
    """Raised when a memory backend cannot be read."""


class MemoryWriteError(TaskweaveError):
    """Raised when a memory backend cannot persist a message."""
