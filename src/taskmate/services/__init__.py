"""Taskmate services module.

Quick-add parsing, slot planning and clock helpers. Imports are lazy so that
loading one service does not pull in the others.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS: dict[str, tuple[str, str]] = {
    # Parser
    "DEFAULT_TITLE": ("taskmate.services.intent", "DEFAULT_TITLE"),
    "ParsedIntent": ("taskmate.services.intent", "ParsedIntent"),
    "Priority": ("taskmate.services.intent", "Priority"),
    "Parser": ("taskmate.services.parser", "Parser"),
    "get_parser": ("taskmate.services.parser", "get_parser"),
    "parse_task": ("taskmate.services.parser", "parse_task"),
    # Vocabulary
    "Vocabulary": ("taskmate.services.vocabulary", "Vocabulary"),
    "VocabularyError": ("taskmate.services.vocabulary", "VocabularyError"),
    # Scheduling
    "AvailabilityPlanner": ("taskmate.services.scheduling", "AvailabilityPlanner"),
    "Confidence": ("taskmate.services.scheduling", "Confidence"),
    "SchedulingSuggestion": ("taskmate.services.scheduling", "SchedulingSuggestion"),
    "SuggestionReason": ("taskmate.services.scheduling", "SuggestionReason"),
    "TaskTimeSlot": ("taskmate.services.scheduling", "TaskTimeSlot"),
    "TimeInterval": ("taskmate.services.scheduling", "TimeInterval"),
    "WorkingHours": ("taskmate.services.scheduling", "WorkingHours"),
    "get_planner": ("taskmate.services.scheduling", "get_planner"),
    # Timezone
    "TimezoneService": ("taskmate.services.timezone", "TimezoneService"),
    "get_timezone_service": ("taskmate.services.timezone", "get_timezone_service"),
    "is_overdue": ("taskmate.services.timezone", "is_overdue"),
    "now": ("taskmate.services.timezone", "now"),
}

__all__ = list(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = _EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))
