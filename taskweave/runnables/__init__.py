"""Composable runnables."""

from taskweave.runnables.base import Runnable, RunOptions, emit_chunk
from taskweave.runnables.sequence import RunnableSequence
from taskweave.runnables.transform import TransformRunnable, ai_transform

__all__ = [
    "Runnable",
    "RunOptions",
    "RunnableSequence",
    "TransformRunnable",
    "ai_transform",
    "emit_chunk",
]
