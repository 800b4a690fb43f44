"""Delegation tools: sub-agents exposed to a parent agent as ordinary tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from taskweave.tools.base import Tool
from taskweave.utils.helpers import slugify_name, stringify

if TYPE_CHECKING:
    from taskweave.agent.agent import Agent

DELEGATION_PREFIX = "delegate_to_"


def delegation_tool_name(agent_name: str) -> str:
    """Tool name under which a sub-agent is exposed, e.g. ``delegate_to_weather_bot``."""
    return DELEGATION_PREFIX + slugify_name(agent_name)


class SubAgentTool(Tool):
    """
    Adapter that runs a referenced agent's own loop as a tool call.

    The agent is wrapped, not copied: the same agent may be a sub-agent of
    several parents.
    """

    def __init__(self, agent: Agent) -> None:
        self._agent = agent

    @property
    def agent(self) -> Agent:
        return self._agent

    @property
    def name(self) -> str:
        return delegation_tool_name(self._agent.name)

    @property
    def description(self) -> str:
        summary = self._agent.description or self._agent.instructions or f"the {self._agent.name} agent"
        return f"Delegate a task to {self._agent.name}: {summary}"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "task": {"type": "string", "description": "The task for the sub-agent to complete"},
                "context": {"type": "string", "description": "Optional background for the task"},
            },
            "required": ["task"],
        }

    async def execute(self, task: str, context: str | None = None, **kwargs: Any) -> str:
        prompt = task if not context else f"{task}\n\nContext:\n{context}"
        logger.info(f"Delegating to sub-agent '{self._agent.name}': {task[:80]}")
        result = await self._agent.run(prompt, options={"return_format": "single"})
        return stringify(result)

    def __repr__(self) -> str:
        return f"SubAgentTool(agent={self._agent.name!r})"
