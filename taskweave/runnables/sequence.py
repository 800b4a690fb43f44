"""Sequential composition of runnables."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from taskweave.runnables.base import ChunkCallback, Runnable, RunOptions


class RunnableSequence(Runnable):
    """
    Runs steps in order, feeding each output into the next step.

    Nested sequences without their own defaults are flattened, so
    ``a.to(b).to(c)`` and ``a.to(b.to(c))`` produce the same step list.
    """

    def __init__(
        self,
        steps: Iterable[Runnable],
        name: str | None = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(name=name, params=params, options=options)
        flat: list[Runnable] = []
        for step in steps:
            if isinstance(step, RunnableSequence) and not step._params and not step._options.model_fields_set:
                flat.extend(step.steps)
            else:
                flat.append(step)
        if not flat:
            raise ValueError("RunnableSequence requires at least one step")
        self._steps: tuple[Runnable, ...] = tuple(flat)

    @property
    def steps(self) -> list[Runnable]:
        return list(self._steps)

    def count(self) -> int:
        return len(self._steps)

    async def _run(self, input: Any, params: dict[str, Any], options: RunOptions) -> Any:
        value = input
        for step in self._steps:
            value = await step.run(value, params, options)
        return value

    async def stream(
        self,
        on_chunk: ChunkCallback,
        input: Any = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> Any:
        merged_params = self.merge_params(params)
        merged_options = self.merge_options(options)
        value = input
        for step in self._steps[:-1]:
            value = await step.run(value, merged_params, merged_options)
        return await self._steps[-1].stream(on_chunk, value, merged_params, merged_options)
