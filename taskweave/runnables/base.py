"""Runnable: the composable unit of work every pipeline stage implements."""

from __future__ import annotations

import copy
import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from taskweave.runnables.sequence import RunnableSequence

ReturnFormat = Literal["single", "all", "raw"]
ChunkCallback = Callable[[Any, dict[str, Any]], Any]


class RunOptions(BaseModel):
    """
    Execution options shared by all runnables.

    Attributes:
        return_format: ``single`` returns the content string, ``all`` the
            full message list, ``raw`` the provider payload.
        model_timeout: Seconds allowed for each model call.
        tool_timeout: Seconds allowed for each tool callback.
        max_iterations: Override for an agent's loop ceiling.
        strict_memory: Fail instead of degrading when memory reads fail.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    return_format: ReturnFormat = "single"
    model_timeout: float | None = None
    tool_timeout: float | None = None
    max_iterations: int | None = None
    strict_memory: bool | None = None

    @classmethod
    def coerce(cls, value: RunOptions | Mapping[str, Any] | None) -> RunOptions:
        if value is None:
            return cls()
        if isinstance(value, RunOptions):
            return value
        return cls.model_validate(dict(value))

    def merged(self, other: RunOptions | Mapping[str, Any] | None) -> RunOptions:
        """Return options where fields explicitly set on ``other`` win."""
        overrides = RunOptions.coerce(other).model_dump(exclude_unset=True)
        if not overrides:
            return self
        return RunOptions.model_validate({**self.model_dump(exclude_unset=True), **overrides})


async def emit_chunk(on_chunk: ChunkCallback, chunk: Any, metadata: dict[str, Any]) -> None:
    """Invoke a chunk callback that may be sync or async."""
    result = on_chunk(chunk, metadata)
    if inspect.isawaitable(result):
        await result


class Runnable(ABC):
    """
    Abstract composable unit of work.

    Configuration methods (``with_name``, ``with_params``, ``with_options``)
    and composition (``to``) return new objects; the receiver is never
    modified, so a base pipeline can be safely reused in several branches.
    """

    def __init__(
        self,
        name: str | None = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> None:
        self._name = name or type(self).__name__
        self._params: dict[str, Any] = dict(params or {})
        self._options = RunOptions.coerce(options)

    @property
    def name(self) -> str:
        return self._name

    @property
    def params(self) -> dict[str, Any]:
        """Default parameters (copy)."""
        return dict(self._params)

    @property
    def options(self) -> RunOptions:
        return self._options

    def _clone(self) -> Runnable:
        return copy.copy(self)

    def with_name(self, name: str) -> Runnable:
        clone = self._clone()
        clone._name = name
        return clone

    def with_params(self, params: Mapping[str, Any]) -> Runnable:
        """Return a copy whose default params are merged key-by-key with ``params``."""
        clone = self._clone()
        clone._params = {**self._params, **dict(params)}
        return clone

    def with_options(self, options: RunOptions | Mapping[str, Any]) -> Runnable:
        clone = self._clone()
        clone._options = self._options.merged(options)
        return clone

    def merge_params(self, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Merge runtime params over the defaults; runtime values win."""
        return {**self._params, **dict(params or {})}

    def merge_options(self, options: RunOptions | Mapping[str, Any] | None = None) -> RunOptions:
        return self._options.merged(options)

    async def run(
        self,
        input: Any = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Execute the runnable.

        Args:
            input: Input value.
            params: Runtime parameters merged over the defaults.
            options: Runtime options merged over the defaults.

        Returns:
            The output value.
        """
        return await self._run(input, self.merge_params(params), self.merge_options(options))

    @abstractmethod
    async def _run(self, input: Any, params: dict[str, Any], options: RunOptions) -> Any:
        """Perform the work with fully merged params and options."""

    async def stream(
        self,
        on_chunk: ChunkCallback,
        input: Any = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Execute the runnable, delivering output to ``on_chunk``.

        The default implementation emits the buffered result as a single chunk.

        Returns:
            The same output ``run`` would return.
        """
        result = await self.run(input, params, options)
        await emit_chunk(on_chunk, result, {"runnable": self.name})
        return result

    def to(self, next_step: Runnable) -> RunnableSequence:
        """Chain ``next_step`` after this runnable, returning a new sequence."""
        from taskweave.runnables.sequence import RunnableSequence

        return RunnableSequence([self, next_step])

    def __or__(self, other: Runnable) -> RunnableSequence:
        return self.to(other)

    def transform(self, fn: Callable[[Any], Any]) -> RunnableSequence:
        """Chain a plain function after this runnable."""
        from taskweave.runnables.transform import TransformRunnable

        return self.to(TransformRunnable(fn))

    def as_langchain(self) -> Any:
        """Wrap this runnable as a ``langchain_core`` RunnableLambda."""
        from langchain_core.runnables import RunnableLambda

        async def _invoke(payload: Any) -> Any:
            return await self.run(payload)

        return RunnableLambda(_invoke, name=self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"
