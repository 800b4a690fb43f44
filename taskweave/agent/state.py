"""Per-run bookkeeping for the agent loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskweave.messages import Message


class AgentState(str, Enum):
    """States of one agent run."""

    INIT = "init"
    AWAITING_MODEL = "awaiting_model"
    TOOLS_REQUESTED = "tools_requested"
    RESOLVING_TOOLS = "resolving_tools"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[AgentState, frozenset[AgentState]] = {
    AgentState.INIT: frozenset({AgentState.AWAITING_MODEL}),
    AgentState.AWAITING_MODEL: frozenset({AgentState.TOOLS_REQUESTED, AgentState.DONE}),
    AgentState.TOOLS_REQUESTED: frozenset({AgentState.RESOLVING_TOOLS}),
    AgentState.RESOLVING_TOOLS: frozenset({AgentState.AWAITING_MODEL}),
    AgentState.DONE: frozenset(),
    AgentState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({AgentState.DONE, AgentState.FAILED})


@dataclass
class AgentRun:
    """
    Mutable state of a single ``Agent.run`` call.

    Each call creates its own AgentRun, so concurrent runs of one agent
    never share loop state.

    Attributes:
        agent_name: Name of the agent executing the run.
        messages: The running outbound message list.
        state: Current state.
        history: Every state visited, in order.
        iteration: Number of model calls made so far.
        error: The failure, once the run is FAILED.
    """

    agent_name: str
    messages: list[Message] = field(default_factory=list)
    state: AgentState = AgentState.INIT
    history: list[AgentState] = field(default_factory=lambda: [AgentState.INIT])
    iteration: int = 0
    error: BaseException | None = None
    raw: Any = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new_state: AgentState) -> None:
        """
        Move to ``new_state``.

        Raises:
            RuntimeError: The move is not allowed from the current state.
        """
        if new_state is AgentState.FAILED:
            if self.finished:
                raise RuntimeError(f"Run already finished in state {self.state.value}")
        elif new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid agent transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: BaseException) -> None:
        self.error = error
        if not self.finished:
            self.transition(AgentState.FAILED)

    def append(self, message: Message) -> Message:
        self.messages.append(message)
        return message
