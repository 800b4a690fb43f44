"""Utility functions."""

from taskweave.utils.helpers import format_error, slugify_name, stringify, truncate_output
from taskweave.utils.logging import configure_logging

__all__ = ["configure_logging", "format_error", "slugify_name", "stringify", "truncate_output"]
