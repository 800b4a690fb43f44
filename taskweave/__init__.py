"""taskweave: an agent execution engine with tools, sub-agents and pluggable memory."""

from taskweave.agent import Agent, AgentRun, AgentState, ai_agent
from taskweave.errors import (
    MaxIterationsExceeded,
    MemoryReadError,
    MemoryWriteError,
    ModelCallError,
    SchemaValidationError,
    TaskweaveError,
    TemplateRenderError,
    ToolExecutionError,
    ToolResolutionError,
    UnsupportedModelError,
)
from taskweave.memory import (
    FileMemory,
    HybridMemory,
    MemoryStore,
    SummaryMemory,
    VectorMemory,
    WindowMemory,
    create_memory,
)
from taskweave.messages import Message
from taskweave.prompts import PromptTemplate, ai_message
from taskweave.providers import LLMProvider, LLMResponse, ToolCallRequest
from taskweave.runnables import Runnable, RunnableSequence, RunOptions, ai_transform
from taskweave.tools import FunctionTool, SubAgentTool, Tool, ToolRegistry, ai_tool

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentRun",
    "AgentState",
    "FileMemory",
    "FunctionTool",
    "HybridMemory",
    "LLMProvider",
    "LLMResponse",
    "MaxIterationsExceeded",
    "MemoryReadError",
    "MemoryStore",
    "MemoryWriteError",
    "Message",
    "ModelCallError",
    "PromptTemplate",
    "RunOptions",
    "Runnable",
    "RunnableSequence",
    "SchemaValidationError",
    "SubAgentTool",
    "SummaryMemory",
    "TaskweaveError",
    "TemplateRenderError",
    "Tool",
    "ToolCallRequest",
    "ToolExecutionError",
    "ToolRegistry",
    "ToolResolutionError",
    "UnsupportedModelError",
    "VectorMemory",
    "WindowMemory",
    "ai_agent",
    "ai_message",
    "ai_tool",
    "ai_transform",
    "create_memory",
]
