"""Presentation layer - human-friendly formatting."""

from .human_formatter import format_apply_result, format_outputs_lines, format_plan

__all__ = ["format_apply_result", "format_outputs_lines", "format_plan"]
