"""Tools exposed to language models."""

from taskweave.tools.base import Tool
from taskweave.tools.delegation import SubAgentTool, delegation_tool_name
from taskweave.tools.function_tool import FunctionTool, ai_tool, infer_parameters
from taskweave.tools.registry import ToolRegistry

__all__ = [
    "FunctionTool",
    "SubAgentTool",
    "Tool",
    "ToolRegistry",
    "ai_tool",
    "delegation_tool_name",
    "infer_parameters",
]
