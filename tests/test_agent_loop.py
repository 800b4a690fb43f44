"""Tests for the Agent tool-calling loop."""

import asyncio

import pytest

from taskweave.agent import Agent, AgentRun, AgentState
from taskweave.errors import (
    MaxIterationsExceeded,
    MemoryReadError,
    MemoryWriteError,
    ModelCallError,
    SchemaValidationError,
    ToolResolutionError,
    UnsupportedModelError,
)
from taskweave.memory import WindowMemory
from taskweave.messages import Message
from taskweave.prompts import ai_message
from taskweave.providers.base import LLMResponse
from taskweave.tools import ai_tool

from conftest import text_response, tool_response


def get_time() -> str:
    return "3pm"


@pytest.fixture
def time_tool():
    return ai_tool("get_time", "Current time", get_time)


@pytest.mark.asyncio
async def test_plain_answer_is_returned_and_committed(provider):
    memory = WindowMemory(max_messages=10)
    agent = Agent(provider, memory=memory)
    provider.chat.return_value = text_response("Hello")

    assert await agent.run("Hi") == "Hello"

    assert [(m.role, m.content) for m in await memory.get_all()] == [("user", "Hi"), ("assistant", "Hello")]
    kwargs = provider.chat.call_args.kwargs
    assert kwargs["tools"] is None
    assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]


@pytest.mark.asyncio
async def test_tool_result_feeds_next_model_call(provider, time_tool):
    agent = Agent(provider, tools=[time_tool])
    provider.chat.side_effect = [
        tool_response(("call_1", "get_time", {})),
        text_response("It is 3pm"),
    ]

    messages = await agent.run("What time is it?", options={"return_format": "all"})

    contents = [(m.role, m.content) for m in messages]
    user_at = contents.index(("user", "What time is it?"))
    tool_at = contents.index(("tool", "3pm"))
    answer_at = contents.index(("assistant", "It is 3pm"))
    assert user_at < tool_at < answer_at
    assert messages[-1].content == "It is 3pm"

    second_call = provider.chat.call_args_list[1].kwargs
    assert second_call["messages"][-1] == {
        "role": "tool",
        "content": "3pm",
        "tool_call_id": "call_1",
        "name": "get_time",
    }
    assert second_call["messages"][-2]["tool_calls"][0]["function"]["name"] == "get_time"
    assert second_call["tools"][0]["function"]["name"] == "get_time"


@pytest.mark.asyncio
async def test_default_format_returns_content(provider, time_tool):
    agent = Agent(provider, tools=[time_tool])
    provider.chat.side_effect = [tool_response(("call_1", "get_time", {})), text_response("It is 3pm")]
    assert await agent.run("What time is it?") == "It is 3pm"


@pytest.mark.asyncio
async def test_only_user_and_answer_are_committed(provider, time_tool):
    memory = WindowMemory()
    agent = Agent(provider, tools=[time_tool], memory=memory)
    provider.chat.side_effect = [tool_response(("call_1", "get_time", {})), text_response("It is 3pm")]

    await agent.run("What time is it?")

    assert [m.role for m in await memory.get_all()] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_self_requesting_tool_hits_iteration_ceiling(provider):
    def loop() -> str:
        return "again"

    memory = WindowMemory()
    agent = Agent(provider, tools=[ai_tool("loop", "Calls itself", loop)], memory=memory, max_iterations=3)
    provider.chat.return_value = tool_response(("c", "loop", {}))

    with pytest.raises(MaxIterationsExceeded) as exc:
        await agent.run("go")

    assert exc.value.max_iterations == 3
    assert provider.chat.call_count == 3
    assert await memory.count() == 0


@pytest.mark.asyncio
async def test_iteration_ceiling_overridable_per_run(provider):
    def loop() -> str:
        return "again"

    agent = Agent(provider, tools=[ai_tool("loop", "Calls itself", loop)])
    provider.chat.return_value = tool_response(("c", "loop", {}))

    with pytest.raises(MaxIterationsExceeded):
        await agent.run("go", options={"max_iterations": 2})
    assert provider.chat.call_count == 2


@pytest.mark.asyncio
async def test_parallel_results_keep_call_order(provider):
    completed = []

    async def work(job: str, delay: float) -> str:
        await asyncio.sleep(delay)
        completed.append(job)
        return f"done {job}"

    agent = Agent(provider, tools=[ai_tool("work", "Does work", work)])
    provider.chat.side_effect = [
        tool_response(
            ("1", "work", {"job": "1", "delay": 0.06}),
            ("2", "work", {"job": "2", "delay": 0.03}),
            ("3", "work", {"job": "3", "delay": 0.0}),
        ),
        text_response("all done"),
    ]

    messages = await agent.run("start", options={"return_format": "all"})

    assert completed == ["3", "2", "1"]
    tool_messages = [m for m in messages if m.role == "tool"]
    assert [m.tool_call_id for m in tool_messages] == ["1", "2", "3"]
    assert [m.content for m in tool_messages] == ["done 1", "done 2", "done 3"]


@pytest.mark.asyncio
async def test_sequential_tool_mode(provider):
    order = []

    async def work(job: str) -> str:
        order.append(job)
        return job

    agent = Agent(provider, tools=[ai_tool("work", "Does work", work)], parallel_tools=False)
    provider.chat.side_effect = [
        tool_response(("a", "work", {"job": "a"}), ("b", "work", {"job": "b"})),
        text_response("ok"),
    ]
    assert await agent.run("go") == "ok"
    assert order == ["a", "b"]


@pytest.mark.asyncio
async def test_failing_tool_becomes_error_result(provider):
    def broken() -> str:
        raise RuntimeError("database unavailable")

    agent = Agent(provider, tools=[ai_tool("broken", "Always fails", broken)])
    provider.chat.side_effect = [tool_response(("c1", "broken", {})), text_response("Sorry, try later")]

    messages = await agent.run("query", options={"return_format": "all"})

    [error] = [m for m in messages if m.role == "tool"]
    assert error.is_error
    assert error.tool_call_id == "c1"
    assert "database unavailable" in error.content
    assert error.content.startswith("Error executing tool 'broken'")
    assert messages[-1].content == "Sorry, try later"


@pytest.mark.asyncio
async def test_invalid_arguments_become_error_result(provider):
    def echo(text: str) -> str:
        return text

    agent = Agent(provider, tools=[ai_tool("echo", "Echo text", echo)])
    provider.chat.side_effect = [tool_response(("c1", "echo", {"text": 5})), text_response("fixed")]

    messages = await agent.run("go", options={"return_format": "all"})
    [error] = [m for m in messages if m.role == "tool"]
    assert error.is_error
    assert "text should be string" in error.content


@pytest.mark.asyncio
async def test_tool_timeout_becomes_error_result(provider):
    async def slow() -> str:
        await asyncio.sleep(1)
        return "late"

    agent = Agent(provider, tools=[ai_tool("slow", "Slow tool", slow)], tool_timeout=0.01)
    provider.chat.side_effect = [tool_response(("c1", "slow", {})), text_response("gave up")]

    messages = await agent.run("go", options={"return_format": "all"})
    [error] = [m for m in messages if m.role == "tool"]
    assert error.is_error
    assert "timed out" in error.content


@pytest.mark.asyncio
async def test_unknown_tool_is_fatal_before_any_execution(provider):
    executed = []

    def known() -> str:
        executed.append("known")
        return "ok"

    memory = WindowMemory()
    agent = Agent(provider, tools=[ai_tool("known", "Known tool", known)], memory=memory)
    provider.chat.return_value = tool_response(("c1", "known", {}), ("c2", "ghost", {}))

    with pytest.raises(ToolResolutionError) as exc:
        await agent.run("go")

    assert exc.value.tool_name == "ghost"
    assert executed == []
    assert await memory.count() == 0


@pytest.mark.asyncio
async def test_model_errors_retried_then_fatal(provider):
    provider.chat.side_effect = ConnectionError("connection refused")
    agent = Agent(provider, max_model_retries=2, retry_backoff=0)

    with pytest.raises(ModelCallError) as exc:
        await agent.run("hi")

    assert exc.value.attempts == 3
    assert provider.chat.call_count == 3
    assert isinstance(exc.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_model_retry_recovers(provider):
    provider.chat.side_effect = [TimeoutError("slow"), text_response("recovered")]
    agent = Agent(provider, retry_backoff=0)
    assert await agent.run("hi") == "recovered"


@pytest.mark.asyncio
async def test_model_timeout(provider):
    async def hang(**kwargs):
        await asyncio.sleep(1)
        return text_response("too late")

    provider.chat.side_effect = hang
    agent = Agent(provider, model_timeout=0.01, max_model_retries=0)

    with pytest.raises(ModelCallError):
        await agent.run("hi")


class UnreachableMemory(WindowMemory):
    async def get_context(self, query=None, limit=None):
        raise ConnectionError("memory backend unreachable")


@pytest.mark.asyncio
async def test_memory_read_failure_degrades(provider):
    provider.chat.return_value = text_response("still works")
    agent = Agent(provider, memory=UnreachableMemory())

    assert await agent.run("hi") == "still works"
    assert provider.chat.call_args.kwargs["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_memory_read_failure_strict(provider):
    agent = Agent(provider, memory=UnreachableMemory(), strict_memory=True)

    with pytest.raises(MemoryReadError):
        await agent.run("hi")
    provider.chat.assert_not_called()


@pytest.mark.asyncio
async def test_strict_memory_per_run_option(provider):
    agent = Agent(provider, memory=UnreachableMemory())
    with pytest.raises(MemoryReadError):
        await agent.run("hi", options={"strict_memory": True})


@pytest.mark.asyncio
async def test_memory_write_failure_surfaces(provider):
    class ReadOnlyMemory(WindowMemory):
        async def _add(self, message):
            raise PermissionError("read-only store")

    provider.chat.return_value = text_response("answer")
    agent = Agent(provider, memory=ReadOnlyMemory())

    with pytest.raises(MemoryWriteError):
        await agent.run("hi")


@pytest.mark.asyncio
async def test_outbound_order_system_memory_input(provider):
    memory = WindowMemory()
    await memory.add_all([Message.user("earlier question"), Message.assistant("earlier answer")])
    agent = Agent(provider, description="Support bot.", instructions="Be brief.", memory=memory)
    provider.chat.return_value = text_response("sure")

    await agent.run("new question")

    sent = provider.chat.call_args.kwargs["messages"]
    assert sent == [
        {"role": "system", "content": "Support bot.\n\nBe brief."},
        {"role": "user", "content": "earlier question"},
        {"role": "assistant", "content": "earlier answer"},
        {"role": "user", "content": "new question"},
    ]


@pytest.mark.asyncio
async def test_context_from_every_memory_is_concatenated(provider):
    first, second = WindowMemory(), WindowMemory()
    await first.add("from first")
    await second.add("from second")
    agent = Agent(provider, memory=[first, second])
    provider.chat.return_value = text_response("ok")

    await agent.run("hi")

    sent = [m["content"] for m in provider.chat.call_args.kwargs["messages"]]
    assert sent == ["from first", "from second", "hi"]
    assert await first.count() == await second.count() == 3


@pytest.mark.asyncio
async def test_default_memory_attached(provider):
    provider.chat.side_effect = [text_response("one"), text_response("two")]
    agent = Agent(provider)

    await agent.run("first")
    await agent.run("second")

    assert isinstance(agent.memories[0], WindowMemory)
    assert [m.content for m in await agent.get_memory_messages()] == ["first", "one", "second", "two"]
    second_call = provider.chat.call_args_list[1].kwargs["messages"]
    assert [m["content"] for m in second_call] == ["first", "one", "second"]

    await agent.clear_memory()
    assert await agent.get_memory_messages() == []


@pytest.mark.asyncio
async def test_raw_format_returns_provider_payload(provider):
    payload = {"id": "resp-1"}
    provider.chat.return_value = LLMResponse(content="hi", raw=payload)
    assert await Agent(provider).run("x", options={"return_format": "raw"}) is payload

    provider.chat.return_value = text_response("hi")
    raw = await Agent(provider).run("x", options={"return_format": "raw"})
    assert isinstance(raw, LLMResponse)


@pytest.mark.asyncio
async def test_params_forwarded_to_provider(provider):
    provider.chat.return_value = text_response("ok")
    agent = Agent(provider, model="m/1", params={"temperature": 0.1})

    await agent.run("x", params={"max_tokens": 5})

    kwargs = provider.chat.call_args.kwargs
    assert kwargs["model"] == "m/1"
    assert kwargs["temperature"] == 0.1
    assert kwargs["max_tokens"] == 5


@pytest.mark.asyncio
async def test_prompt_pipeline_into_agent(provider):
    memory = WindowMemory()
    provider.chat.return_value = text_response("hello")
    pipeline = ai_message("Translate: ${text}").to(Agent(provider, memory=memory))

    assert await pipeline.run({"text": "hola"}) == "hello"
    assert [m.content for m in await memory.get_all()] == ["Translate: hola", "hello"]


@pytest.mark.asyncio
async def test_stream_emits_appended_messages(provider, time_tool):
    agent = Agent(provider, tools=[time_tool])
    provider.chat.side_effect = [tool_response(("call_1", "get_time", {})), text_response("It is 3pm")]
    chunks = []

    result = await agent.stream(lambda chunk, meta: chunks.append((chunk, meta)), "time?")

    assert result == "It is 3pm"
    assert [(c.role, meta["iteration"], meta["state"]) for c, meta in chunks] == [
        ("assistant", 1, "tools_requested"),
        ("tool", 1, "resolving_tools"),
        ("assistant", 2, "done"),
    ]
    assert chunks[1][0].content == "3pm"
    assert all(meta["agent"] == "Agent" for _, meta in chunks)


@pytest.mark.asyncio
async def test_concurrent_runs_do_not_share_state(provider):
    async def echo(messages, tools=None, model=None, **params):
        await asyncio.sleep(0.01)
        return text_response("echo " + messages[-1]["content"])

    provider.chat.side_effect = echo
    agent = Agent(provider, memory=[])

    results = await asyncio.gather(agent.run("a"), agent.run("b"), agent.run("c"))
    assert results == ["echo a", "echo b", "echo c"]


def test_unsupported_model_rejected_when_tools_exposed(provider, time_tool):
    provider.supports_tools = False
    with pytest.raises(UnsupportedModelError):
        Agent(provider, tools=[time_tool])
    Agent(provider)


def test_duplicate_tool_names_rejected(provider, time_tool):
    with pytest.raises(SchemaValidationError):
        Agent(provider, tools=[time_tool, ai_tool("get_time", "Again", get_time)])


def test_configuration_is_persistent(provider, time_tool):
    base = Agent(provider, name="Base")
    derived = base.with_tools(time_tool).with_instructions("Be precise").with_name("Derived")

    assert base.tools == []
    assert base.instructions == ""
    assert base.name == "Base"
    assert derived.tools == [time_tool]
    assert derived.instructions == "Be precise"
    assert derived.name == "Derived"
    assert derived.memories == base.memories
    assert base.with_max_iterations(4).max_iterations == 4
    assert base.max_iterations == 10
    assert base.with_params({"temperature": 0}).params == {"temperature": 0}
    assert base.params == {}


@pytest.mark.asyncio
async def test_get_config_snapshot(provider, time_tool):
    helper = Agent(provider, name="Helper")
    memory = WindowMemory()
    await memory.add_all(["a", "b"])
    agent = Agent(
        provider,
        name="Main",
        description="Coordinator",
        instructions="Delegate when useful",
        tools=[time_tool],
        sub_agents=[helper],
        memory=memory,
        params={"temperature": 0.2},
    )

    config = await agent.get_config()

    assert config["name"] == "Main"
    assert config["description"] == "Coordinator"
    assert config["instructions"] == "Delegate when useful"
    assert config["tool_count"] == 1
    assert config["tool_names"] == ["get_time", "delegate_to_helper"]
    assert config["sub_agent_count"] == 1
    assert config["sub_agent_names"] == ["Helper"]
    assert config["memory_count"] == 1
    assert config["memory_message_counts"] == [2]
    assert config["params"] == {"temperature": 0.2}


def test_agent_run_transitions():
    run = AgentRun(agent_name="a")
    run.transition(AgentState.AWAITING_MODEL)
    run.transition(AgentState.TOOLS_REQUESTED)
    with pytest.raises(RuntimeError):
        run.transition(AgentState.DONE)
    run.fail(ValueError("x"))
    assert run.state is AgentState.FAILED
    assert run.history[-1] is AgentState.FAILED
    assert run.finished
