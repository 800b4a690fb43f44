"""Tests for Runnable composition."""

import pytest

from taskweave.runnables import RunnableSequence, RunOptions, TransformRunnable, ai_transform
from taskweave.runnables.base import Runnable


class AppendRunnable(Runnable):
    """Appends a suffix taken from params, falling back to a fixed one."""

    def __init__(self, suffix: str, **kwargs):
        super().__init__(**kwargs)
        self.suffix = suffix

    async def _run(self, input, params, options):
        return f"{input}{params.get('suffix', self.suffix)}"


@pytest.mark.asyncio
async def test_run_passes_merged_params():
    step = AppendRunnable("-a").with_params({"suffix": "-default"})
    assert await step.run("x") == "x-default"
    assert await step.run("x", params={"suffix": "-call"}) == "x-call"


def test_configuration_returns_new_objects():
    base = AppendRunnable("-a", name="base")
    renamed = base.with_name("renamed")
    tuned = base.with_params({"k": 1})
    assert base.name == "base"
    assert renamed.name == "renamed"
    assert base.params == {}
    assert tuned.params == {"k": 1}


def test_merge_params_runtime_wins():
    step = AppendRunnable("-a", params={"a": 1, "b": 2})
    assert step.merge_params({"b": 3}) == {"a": 1, "b": 3}


@pytest.mark.asyncio
async def test_to_leaves_receiver_and_next_unmodified():
    a, b = AppendRunnable("-a"), AppendRunnable("-b")
    seq = a.to(b)
    assert isinstance(seq, RunnableSequence)
    assert await seq.run("x") == "x-a-b"
    assert await a.run("x") == "x-a"
    assert await b.run("x") == "x-b"


@pytest.mark.asyncio
async def test_composition_is_associative():
    a, b, c = AppendRunnable("-a"), AppendRunnable("-b"), AppendRunnable("-c")
    left = a.to(b).to(c)
    right = a.to(b.to(c))
    assert left.count() == right.count() == 3
    assert [s.suffix for s in left.steps] == [s.suffix for s in right.steps]
    assert await left.run("x") == await right.run("x") == "x-a-b-c"


@pytest.mark.asyncio
async def test_base_pipeline_reused_in_branches():
    base = AppendRunnable("-a").to(AppendRunnable("-b"))
    left = base.to(AppendRunnable("-left"))
    right = base.to(AppendRunnable("-right"))
    assert await left.run("x") == "x-a-b-left"
    assert await right.run("x") == "x-a-b-right"
    assert base.count() == 2


@pytest.mark.asyncio
async def test_pipe_operator_and_transform():
    seq = AppendRunnable("-a") | AppendRunnable("-b")
    upper = seq.transform(str.upper)
    assert await upper.run("x") == "X-A-B"


@pytest.mark.asyncio
async def test_async_transform():
    async def double(value):
        return value * 2

    assert await ai_transform(double).run(4) == 8
    assert TransformRunnable(double).name == "double"


@pytest.mark.asyncio
async def test_stream_matches_buffered_output():
    seq = AppendRunnable("-a").to(AppendRunnable("-b"))
    chunks = []
    result = await seq.stream(lambda chunk, meta: chunks.append((chunk, meta)), "x")
    assert result == await seq.run("x")
    assert chunks == [("x-a-b", {"runnable": "AppendRunnable"})]


@pytest.mark.asyncio
async def test_stream_accepts_async_callback():
    received = []

    async def on_chunk(chunk, meta):
        received.append(chunk)

    await AppendRunnable("-a").stream(on_chunk, "x")
    assert received == ["x-a"]


def test_empty_sequence_rejected():
    with pytest.raises(ValueError):
        RunnableSequence([])


def test_run_options_merge_only_explicit_fields():
    base = RunOptions(return_format="all", tool_timeout=5)
    merged = base.merged({"tool_timeout": 1})
    assert merged.return_format == "all"
    assert merged.tool_timeout == 1
    assert base.tool_timeout == 5


@pytest.mark.asyncio
async def test_as_langchain_wraps_run():
    wrapped = AppendRunnable("-a").as_langchain()
    assert await wrapped.ainvoke("x") == "x-a"
