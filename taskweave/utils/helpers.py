"""Common utility functions."""

import json
import re
from typing import Any


def truncate_output(text: str, max_length: int = 4000) -> str:
    """
    Truncate text output to prevent context overflow.

    Args:
        text: Text to truncate.
        max_length: Maximum allowed length.

    Returns:
        Truncated text with indicator if truncated.
    """
    if len(text) <= max_length:
        return text
    half = max_length // 2
    return text[:half] + f"\n\n... [truncated {len(text) - max_length} chars] ...\n\n" + text[-half:]


def slugify_name(name: str) -> str:
    """
    Lowercase a name and replace every non-alphanumeric character with '_'.

    Args:
        name: Raw name.

    Returns:
        Name safe for use as a tool identifier.
    """
    return re.sub(r"[^a-z0-9]", "_", name.lower())


def stringify(value: Any) -> str:
    """
    Convert an arbitrary value into text suitable for a message body.

    Strings pass through; everything else is JSON encoded, falling back
    to ``str()`` for values JSON cannot represent.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def format_error(error: BaseException) -> str:
    """
    Format an exception for display.

    Args:
        error: The exception to format.

    Returns:
        Human-readable error string.
    """
    error_type = type(error).__name__
    message = str(error)
    return f"{error_type}: {message}" if message else error_type
