"""Tools built from plain caller functions."""

from __future__ import annotations

import asyncio
import copy
import inspect
import typing
from collections.abc import Callable
from typing import Any

from taskweave.errors import SchemaValidationError
from taskweave.tools.base import Tool
from taskweave.utils.helpers import stringify

_ANNOTATION_TYPES: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}


def _json_type(annotation: Any) -> str:
    origin = typing.get_origin(annotation) or annotation
    if isinstance(origin, str):
        origin = {"str": str, "int": int, "float": float, "bool": bool, "list": list, "dict": dict}.get(origin)
    return _ANNOTATION_TYPES.get(origin, "string")


def infer_parameters(callback: Callable[..., Any]) -> dict[str, Any]:
    """
    Build an object schema from a callback's signature.

    Parameters without defaults are required. Annotations map to JSON types;
    anything else is declared as a string.
    """
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return {"type": "object", "properties": {}, "required": []}
    try:
        hints = typing.get_type_hints(callback)
    except Exception:  # noqa: BLE001 - unresolved forward references
        hints = {}

    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(param.name, param.annotation)
        properties[param.name] = {
            "type": "string" if annotation is inspect.Parameter.empty else _json_type(annotation)
        }
        if param.default is inspect.Parameter.empty:
            required.append(param.name)
    return {"type": "object", "properties": properties, "required": required}


def _accepts_var_kwargs(callback: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return True
    return any(p.kind == p.VAR_KEYWORD for p in signature.parameters.values())


class FunctionTool(Tool):
    """
    Tool wrapping a sync or async caller function.

    The callback receives the model's arguments as keyword arguments.
    Sync callbacks run in a worker thread so they never block the loop.
    ``describe`` returns a new tool; the original is never modified.
    """

    def __init__(
        self,
        name: str,
        description: str,
        callback: Callable[..., Any],
        parameters: dict[str, Any] | None = None,
    ) -> None:
        if not callable(callback):
            raise SchemaValidationError(f"Tool '{name}' callback is not callable", tool_name=name)
        self._name = name
        self._description = description
        self._callback = callback
        self._parameters = parameters if parameters is not None else infer_parameters(callback)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return copy.deepcopy(self._parameters)

    @property
    def callback(self) -> Callable[..., Any]:
        return self._callback

    def describe(
        self,
        argument: str,
        description: str,
        type: str | None = None,
        required: bool | None = None,
    ) -> FunctionTool:
        """
        Describe one argument of the callback.

        Args:
            argument: Parameter name.
            description: Text shown to the model.
            type: JSON type override.
            required: Override whether the argument is required.

        Returns:
            A new FunctionTool with the updated schema.
        """
        schema = copy.deepcopy(self._parameters)
        properties = schema.setdefault("properties", {})
        if argument not in properties and not _accepts_var_kwargs(self._callback):
            raise SchemaValidationError(
                f"Tool '{self._name}' has no parameter named '{argument}'", tool_name=self._name
            )
        prop = properties.setdefault(argument, {"type": "string"})
        prop["description"] = description
        if type is not None:
            prop["type"] = type

        required_list: list[str] = list(schema.get("required", []))
        if required is True and argument not in required_list:
            required_list.append(argument)
        elif required is False and argument in required_list:
            required_list.remove(argument)
        schema["required"] = required_list
        return FunctionTool(self._name, self._description, self._callback, schema)

    async def execute(self, **kwargs: Any) -> str:
        if inspect.iscoroutinefunction(self._callback):
            result = await self._callback(**kwargs)
        else:
            result = await asyncio.to_thread(self._callback, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        return stringify(result)

    def __repr__(self) -> str:
        return f"FunctionTool(name={self._name!r})"


def ai_tool(name: str, description: str, callback: Callable[..., Any]) -> FunctionTool:
    """
    Build a tool from a callback.

    Example:
        get_weather = ai_tool("get_weather", "Current weather", lookup).describe(
            "city", "City name"
        )
    """
    return FunctionTool(name, description, callback)
