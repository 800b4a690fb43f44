"""Prompt templates."""

from taskweave.prompts.template import PromptTemplate, ai_message

__all__ = ["PromptTemplate", "ai_message"]
