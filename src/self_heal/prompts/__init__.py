# Prompt Components Module
"""Exports reusable prompt components for the code-generation service."""

from .components import PromptComponents, build_file_repair_prompt, build_live_repair_prompt

__all__ = ["PromptComponents", "build_file_repair_prompt", "build_live_repair_prompt"]
