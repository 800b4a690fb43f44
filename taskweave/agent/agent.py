"""Agent: the tool-calling loop over a provider, tools, sub-agents and memory."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from loguru import logger

from taskweave.agent.state import AgentRun, AgentState
from taskweave.errors import (
    MaxIterationsExceeded,
    MemoryReadError,
    ModelCallError,
    ToolExecutionError,
    UnsupportedModelError,
)
from taskweave.memory.base import MemoryStore
from taskweave.memory.window import WindowMemory
from taskweave.messages import Message, coerce_message, to_provider_messages
from taskweave.providers.base import LLMProvider, LLMResponse, ToolCallRequest
from taskweave.runnables.base import ChunkCallback, Runnable, RunOptions, emit_chunk
from taskweave.tools.base import Tool
from taskweave.tools.delegation import SubAgentTool
from taskweave.tools.registry import ToolRegistry
from taskweave.utils.helpers import format_error


class Agent(Runnable):
    """
    Runs the model/tool loop for one request.

    1. Builds the outbound list: a system message from description and
       instructions, context from every attached memory, then the input.
    2. Calls the model with all tools, including one delegation tool per
       sub-agent.
    3. Plain content ends the run; the input and the answer are committed
       to every memory.
    4. Tool calls are resolved, executed (concurrently by default) and
       their results appended in call order before the model is called
       again, up to ``max_iterations`` model calls.

    Configuration methods return new agents. Tools, sub-agents and memory
    stores are shared by reference with the derived agent.
    """

    def __init__(
        self,
        provider: LLMProvider,
        name: str = "Agent",
        description: str = "",
        instructions: str = "",
        model: str | None = None,
        tools: Iterable[Tool] = (),
        sub_agents: Iterable[Agent] = (),
        memory: MemoryStore | Sequence[MemoryStore] | None = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
        max_iterations: int = 10,
        model_timeout: float | None = None,
        tool_timeout: float | None = None,
        max_model_retries: int = 2,
        retry_backoff: float = 0.5,
        strict_memory: bool = False,
        parallel_tools: bool = True,
    ) -> None:
        super().__init__(name=name, params=params, options=options)
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if max_model_retries < 0:
            raise ValueError("max_model_retries cannot be negative")

        self.provider = provider
        self.description = description
        self.instructions = instructions
        self.model = model
        self.max_iterations = max_iterations
        self.model_timeout = model_timeout
        self.tool_timeout = tool_timeout
        self.max_model_retries = max_model_retries
        self.retry_backoff = retry_backoff
        self.strict_memory = strict_memory
        self.parallel_tools = parallel_tools

        self._tools: tuple[Tool, ...] = tuple(tools)
        self._sub_agents: tuple[Agent, ...] = tuple(sub_agents)
        if memory is None:
            self._memories: tuple[MemoryStore, ...] = (WindowMemory(),)
        elif isinstance(memory, MemoryStore):
            self._memories = (memory,)
        else:
            self._memories = tuple(memory)

        self._registry = ToolRegistry(
            [*self._tools, *(SubAgentTool(agent) for agent in self._sub_agents)]
        )
        if len(self._registry) and not getattr(provider, "supports_tools", True):
            raise UnsupportedModelError(
                f"Agent '{name}' exposes {len(self._registry)} tools but "
                f"{type(provider).__name__} does not support tool calling"
            )

    # -- read-only views ---------------------------------------------------

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools)

    @property
    def sub_agents(self) -> list[Agent]:
        return list(self._sub_agents)

    @property
    def memories(self) -> list[MemoryStore]:
        return list(self._memories)

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # -- persistent configuration -----------------------------------------

    def _replace(self, **changes: Any) -> Agent:
        settings: dict[str, Any] = {
            "provider": self.provider,
            "name": self.name,
            "description": self.description,
            "instructions": self.instructions,
            "model": self.model,
            "tools": self._tools,
            "sub_agents": self._sub_agents,
            "memory": list(self._memories),
            "params": self._params,
            "options": self._options,
            "max_iterations": self.max_iterations,
            "model_timeout": self.model_timeout,
            "tool_timeout": self.tool_timeout,
            "max_model_retries": self.max_model_retries,
            "retry_backoff": self.retry_backoff,
            "strict_memory": self.strict_memory,
            "parallel_tools": self.parallel_tools,
        }
        settings.update(changes)
        return type(self)(**settings)

    def with_name(self, name: str) -> Agent:
        return self._replace(name=name)

    def with_description(self, description: str) -> Agent:
        return self._replace(description=description)

    def with_instructions(self, instructions: str) -> Agent:
        return self._replace(instructions=instructions)

    def with_model(self, model: str | None) -> Agent:
        return self._replace(model=model)

    def with_tools(self, *tools: Tool) -> Agent:
        """Return an agent with ``tools`` added to the existing ones."""
        return self._replace(tools=(*self._tools, *tools))

    def with_sub_agents(self, *agents: Agent) -> Agent:
        return self._replace(sub_agents=(*self._sub_agents, *agents))

    def with_memory(self, *stores: MemoryStore) -> Agent:
        """Return an agent reading and writing exactly ``stores``."""
        return self._replace(memory=list(stores))

    def with_params(self, params: Mapping[str, Any]) -> Agent:
        return self._replace(params={**self._params, **dict(params)})

    def with_options(self, options: RunOptions | Mapping[str, Any]) -> Agent:
        return self._replace(options=self._options.merged(options))

    def with_max_iterations(self, max_iterations: int) -> Agent:
        return self._replace(max_iterations=max_iterations)

    # -- execution ---------------------------------------------------------

    async def _run(self, input: Any, params: dict[str, Any], options: RunOptions) -> Any:
        return await self._execute(input, params, options)

    async def stream(
        self,
        on_chunk: ChunkCallback,
        input: Any = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Run the loop, emitting every message appended to the conversation.

        Chunks are, in order, assistant tool requests, tool results and the
        final answer. Metadata carries ``agent``, ``iteration`` and ``state``.
        """
        return await self._execute(
            input, self.merge_params(params), self.merge_options(options), on_chunk=on_chunk
        )

    async def _execute(
        self,
        input: Any,
        params: dict[str, Any],
        options: RunOptions,
        on_chunk: ChunkCallback | None = None,
    ) -> Any:
        run = AgentRun(agent_name=self.name)
        inputs = self._coerce_input(input)
        max_iterations = options.max_iterations or self.max_iterations
        logger.info(f"Agent '{self.name}' run started ({len(inputs)} input messages)")

        async def append(message: Message) -> None:
            run.append(message)
            if on_chunk is not None:
                await emit_chunk(
                    on_chunk,
                    message,
                    {"agent": self.name, "iteration": run.iteration, "state": run.state.value},
                )

        try:
            system = self._system_message()
            context = await self._read_memory(inputs, options)
            run.messages = [*([system] if system else []), *context, *inputs]

            while True:
                if run.iteration >= max_iterations:
                    raise MaxIterationsExceeded(max_iterations, self.name)
                run.iteration += 1
                run.transition(AgentState.AWAITING_MODEL)
                response = await self._call_model(run.messages, params, options)
                run.raw = response.raw if response.raw is not None else response

                if not response.has_tool_calls:
                    answer = Message.assistant(response.content or "")
                    await self._commit(inputs, answer)
                    run.transition(AgentState.DONE)
                    await append(answer)
                    logger.info(f"Agent '{self.name}' finished after {run.iteration} iterations")
                    return self._format(run, options)

                run.transition(AgentState.TOOLS_REQUESTED)
                await append(
                    Message.assistant(
                        response.content or "",
                        tool_calls=[call.to_provider() for call in response.tool_calls],
                    )
                )
                run.transition(AgentState.RESOLVING_TOOLS)
                for result in await self._run_tools(response.tool_calls, options):
                    await append(result)
        except Exception as e:
            run.fail(e)
            logger.error(f"Agent '{self.name}' failed in iteration {run.iteration}: {format_error(e)}")
            raise

    @staticmethod
    def _coerce_input(input: Any) -> list[Message]:
        if input is None:
            raise ValueError("Agent input cannot be None")
        if isinstance(input, (list, tuple)):
            messages = [coerce_message(item) for item in input]
        else:
            messages = [coerce_message(input)]
        if not messages:
            raise ValueError("Agent input cannot be empty")
        return messages

    def _system_message(self) -> Message | None:
        parts = [part.strip() for part in (self.description, self.instructions) if part and part.strip()]
        if not parts:
            return None
        return Message.system("\n\n".join(parts))

    async def _read_memory(self, inputs: list[Message], options: RunOptions) -> list[Message]:
        strict = self.strict_memory if options.strict_memory is None else options.strict_memory
        query = next((m.content for m in reversed(inputs) if m.role == "user"), inputs[-1].content)

        context: list[Message] = []
        for memory in self._memories:
            try:
                context.extend(await memory.get_context(query))
            except Exception as e:
                if strict:
                    if isinstance(e, MemoryReadError):
                        raise
                    raise MemoryReadError(f"Could not read memory '{memory.key}': {e}") from e
                logger.warning(f"Agent '{self.name}': memory '{memory.key}' unavailable, continuing without it: {e}")
        return context

    async def _commit(self, inputs: list[Message], answer: Message) -> None:
        turn = [m for m in inputs if m.role != "system"] + [answer]
        for memory in self._memories:
            for message in turn:
                await memory.add(message)

    async def _call_model(
        self,
        messages: list[Message],
        params: dict[str, Any],
        options: RunOptions,
    ) -> LLMResponse:
        timeout = options.model_timeout if options.model_timeout is not None else self.model_timeout
        definitions = self._registry.get_definitions() or None
        attempts = self.max_model_retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            logger.debug(f"Agent '{self.name}': model call {attempt}/{attempts}, messages={len(messages)}")
            try:
                call = self.provider.chat(
                    messages=to_provider_messages(messages),
                    tools=definitions,
                    model=self.model,
                    **params,
                )
                if timeout is not None:
                    return await asyncio.wait_for(call, timeout=timeout)
                return await call
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"Agent '{self.name}': model call {attempt} failed: {format_error(e)}")
                if attempt < attempts:
                    await asyncio.sleep(self.retry_backoff * (2 ** (attempt - 1)))

        raise ModelCallError(
            f"Model call failed after {attempts} attempts: {format_error(last_error)}",
            attempts=attempts,
        ) from last_error

    async def _run_tools(self, calls: list[ToolCallRequest], options: RunOptions) -> list[Message]:
        for call in calls:
            self._registry.resolve(call.name)
        timeout = options.tool_timeout if options.tool_timeout is not None else self.tool_timeout

        if self.parallel_tools:
            return list(await asyncio.gather(*(self._invoke_tool(call, timeout) for call in calls)))
        return [await self._invoke_tool(call, timeout) for call in calls]

    async def _invoke_tool(self, call: ToolCallRequest, timeout: float | None) -> Message:
        logger.debug(f"Agent '{self.name}': executing tool {call.name} ({call.id})")
        try:
            result = await self._registry.execute(call.name, call.arguments, timeout=timeout, call_id=call.id)
        except ToolExecutionError as e:
            logger.warning(f"Tool execution failed for {call.name}: {e}")
            return Message.tool_result(
                call.id,
                call.name,
                f"Error executing tool '{call.name}': {e}. Please correct your arguments and try again.",
                is_error=True,
            )
        return Message.tool_result(call.id, call.name, result)

    @staticmethod
    def _format(run: AgentRun, options: RunOptions) -> Any:
        if options.return_format == "all":
            return list(run.messages)
        if options.return_format == "raw":
            return run.raw
        return run.messages[-1].content

    # -- introspection -----------------------------------------------------

    async def get_config(self) -> dict[str, Any]:
        """Read-only snapshot of the agent's configuration."""
        return {
            "name": self.name,
            "description": self.description,
            "instructions": self.instructions,
            "model": self.model,
            "tool_count": len(self._tools),
            "tool_names": self._registry.tool_names,
            "sub_agent_count": len(self._sub_agents),
            "sub_agent_names": [agent.name for agent in self._sub_agents],
            "memory_count": len(self._memories),
            "memory_message_counts": [await memory.count() for memory in self._memories],
            "params": dict(self._params),
            "max_iterations": self.max_iterations,
        }

    async def get_memory_messages(self) -> list[Message]:
        """Every message held by the attached memories, store by store."""
        messages: list[Message] = []
        for memory in self._memories:
            messages.extend(await memory.get_all())
        return messages

    async def clear_memory(self) -> None:
        for memory in self._memories:
            await memory.clear()

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, tools={len(self._registry)})"


def ai_agent(provider: LLMProvider, name: str = "Agent", **kwargs: Any) -> Agent:
    """Build an agent; configure it further with the ``with_*`` methods."""
    return Agent(provider, name=name, **kwargs)
