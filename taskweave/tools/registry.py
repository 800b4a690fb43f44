"""Name-keyed tool registry used by the agent loop."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from loguru import logger

from taskweave.errors import SchemaValidationError, ToolExecutionError, ToolResolutionError
from taskweave.tools.base import Tool
from taskweave.utils.helpers import format_error


class ToolRegistry:
    """
    In-memory tool registry.

    Maps a unique tool name to its Tool. Registration validates the tool's
    schema, so malformed declarations fail before any model call.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """
        Register a tool.

        Raises:
            SchemaValidationError: The schema is malformed or the name is taken.
        """
        tool.validate_schema()
        if tool.name in self._tools:
            raise SchemaValidationError(f"Duplicate tool name '{tool.name}'", tool_name=tool.name)
        self._tools[tool.name] = tool
        logger.debug(f"Tool registered: {tool.name}")

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def resolve(self, name: str) -> Tool:
        """
        Look up a tool by name.

        Raises:
            ToolResolutionError: No tool is registered under ``name``.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolResolutionError(name, self.tool_names)
        return tool

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_definitions(self) -> list[dict[str, Any]]:
        return [tool.to_schema() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute(
        self,
        name: str,
        params: dict[str, Any],
        timeout: float | None = None,
        call_id: str = "",
    ) -> str:
        """
        Validate arguments and run a tool.

        Args:
            name: Tool name.
            params: Arguments produced by the model.
            timeout: Optional per-call timeout in seconds.
            call_id: Correlation id, attached to raised errors.

        Returns:
            The tool's text result.

        Raises:
            ToolResolutionError: Unknown tool.
            ToolExecutionError: Invalid arguments, callback failure or timeout.
        """
        tool = self.resolve(name)

        errors = tool.validate_params(params)
        if errors:
            raise ToolExecutionError(
                name, f"Invalid parameters for tool '{name}': " + "; ".join(errors), call_id=call_id
            )

        try:
            if timeout is not None:
                return await asyncio.wait_for(tool.execute(**params), timeout=timeout)
            return await tool.execute(**params)
        except asyncio.TimeoutError as e:
            raise ToolExecutionError(
                name, f"Tool '{name}' timed out after {timeout}s", call_id=call_id
            ) from e
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001 - converted into a model-visible result
            raise ToolExecutionError(name, format_error(e), call_id=call_id) from e
