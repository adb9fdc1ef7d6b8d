"""Analyzers for inspecting invisible characters in text."""

from .frequency import FrequencyReport, analyze, format_report

__all__ = [
    "FrequencyReport",
    "analyze",
    "format_report",
]
