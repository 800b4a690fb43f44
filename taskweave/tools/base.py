"""Tool contract shared by function tools and delegation tools."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

from taskweave.errors import SchemaValidationError

TOOL_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


class Tool(ABC):
    """
    Base tool contract.

    A tool is a named, described function exposed to the model. Its
    ``parameters`` property is a JSON schema of type ``object``.
    """

    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        pass

    def validate_schema(self) -> None:
        """
        Check the tool's declaration.

        Raises:
            SchemaValidationError: The name, description or parameter schema is malformed.
        """
        name = self.name
        if not isinstance(name, str) or not TOOL_NAME_PATTERN.match(name):
            raise SchemaValidationError(
                f"Invalid tool name {name!r}: use 1-64 letters, digits, '_' or '-'",
                tool_name=str(name),
            )
        if not str(self.description or "").strip():
            raise SchemaValidationError(f"Tool '{name}' needs a description", tool_name=name)

        schema = self.parameters
        if not isinstance(schema, dict) or schema.get("type", "object") != "object":
            raise SchemaValidationError(
                f"Tool '{name}' parameter schema must be an object type", tool_name=name
            )
        properties = schema.get("properties", {})
        if not isinstance(properties, dict):
            raise SchemaValidationError(f"Tool '{name}' properties must be a mapping", tool_name=name)
        for prop_name, prop in properties.items():
            if not isinstance(prop, dict):
                raise SchemaValidationError(
                    f"Tool '{name}' property '{prop_name}' must be a schema mapping", tool_name=name
                )
            prop_type = prop.get("type")
            if prop_type is not None and prop_type not in self._TYPE_MAP and prop_type != "null":
                raise SchemaValidationError(
                    f"Tool '{name}' property '{prop_name}' has unknown type {prop_type!r}",
                    tool_name=name,
                )
        for required in schema.get("required", []):
            if required not in properties:
                raise SchemaValidationError(
                    f"Tool '{name}' requires undeclared parameter '{required}'", tool_name=name
                )

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"Schema must be object type, got {schema.get('type')!r}")
        return self._validate(params, {**schema, "type": "object"}, "")

    def _validate(self, value: Any, schema: dict[str, Any], path: str) -> list[str]:
        expected_type = schema.get("type")
        label = path or "parameter"
        if expected_type in self._TYPE_MAP:
            python_type = self._TYPE_MAP[expected_type]
            # bool is an int subclass; keep booleans out of numeric slots
            is_bool_in_number = isinstance(value, bool) and expected_type in ("integer", "number")
            if is_bool_in_number or not isinstance(value, python_type):
                return [f"{label} should be {expected_type}"]

        errors: list[str] = []
        if "enum" in schema and value not in schema["enum"]:
            errors.append(f"{label} must be one of {schema['enum']}")
        if expected_type in ("integer", "number"):
            if "minimum" in schema and value < schema["minimum"]:
                errors.append(f"{label} must be >= {schema['minimum']}")
            if "maximum" in schema and value > schema["maximum"]:
                errors.append(f"{label} must be <= {schema['maximum']}")
        if expected_type == "string":
            if "minLength" in schema and len(value) < schema["minLength"]:
                errors.append(f"{label} must be at least {schema['minLength']} chars")
            if "maxLength" in schema and len(value) > schema["maxLength"]:
                errors.append(f"{label} must be at most {schema['maxLength']} chars")
        if expected_type == "object":
            properties = schema.get("properties", {})
            for key in schema.get("required", []):
                if key not in value:
                    errors.append(f"missing required {path + '.' + key if path else key}")
            for key, item in value.items():
                if key in properties:
                    next_path = f"{path}.{key}" if path else key
                    errors.extend(self._validate(item, properties[key], next_path))
        if expected_type == "array" and "items" in schema:
            for idx, item in enumerate(value):
                next_path = f"{path}[{idx}]" if path else f"[{idx}]"
                errors.extend(self._validate(item, schema["items"], next_path))
        return errors

    def to_schema(self) -> dict[str, Any]:
        """OpenAI function-call schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
