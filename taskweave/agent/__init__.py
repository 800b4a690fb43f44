"""Agent execution engine."""

from taskweave.agent.agent import Agent, ai_agent
from taskweave.agent.state import AgentRun, AgentState

__all__ = ["Agent", "AgentRun", "AgentState", "ai_agent"]
