"""Runnable wrapper around a plain function."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from typing import Any

from taskweave.runnables.base import Runnable, RunOptions


class TransformRunnable(Runnable):
    """Applies ``fn`` (sync or async) to its input."""

    def __init__(
        self,
        fn: Callable[[Any], Any],
        name: str | None = None,
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(name=name or getattr(fn, "__name__", None), params=params, options=options)
        self._fn = fn

    async def _run(self, input: Any, params: dict[str, Any], options: RunOptions) -> Any:
        result = self._fn(input)
        if inspect.isawaitable(result):
            result = await result
        return result


def ai_transform(fn: Callable[[Any], Any], name: str | None = None) -> TransformRunnable:
    """Build a transform step for use in pipelines."""
    return TransformRunnable(fn, name=name)
