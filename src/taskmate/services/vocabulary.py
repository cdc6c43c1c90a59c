"""Word tables used by the quick-add parser.

Each table is ordered: when several entries match the same input, the
first entry in declaration order wins (not the first one in the text).
The tables are plain data so they can be inspected, tested and replaced
without touching the parser.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import yaml
from dateutil.relativedelta import relativedelta

from taskmate.services.intent import Priority
from taskmate.services.timezone import end_of_day, start_of_day

logger = logging.getLogger(__name__)

DateResolver = Callable[[datetime], datetime]


def _end_of_week(now: datetime) -> datetime:
    # Weeks run Sunday..Saturday
    days_from_sunday = (now.weekday() + 1) % 7
    return end_of_day(now + timedelta(days=6 - days_from_sunday))


TIME_KEYWORDS: dict[str, int] = {
    "morning": 9,
    "afternoon": 14,
    "evening": 18,
    "night": 20,
    "midnight": 0,
    "noon": 12,
}

DATE_KEYWORDS: dict[str, DateResolver] = {
    "today": start_of_day,
    "tomorrow": lambda now: start_of_day(now + timedelta(days=1)),
    "yesterday": lambda now: start_of_day(now - timedelta(days=1)),
    "next week": lambda now: start_of_day(now + timedelta(weeks=1)),
    "next month": lambda now: start_of_day(now + relativedelta(months=1)),
    "end of week": _end_of_week,
    # Last day of the *following* month
    "end of month": lambda now: end_of_day(now + relativedelta(months=1, day=31)),
}

PRIORITY_KEYWORDS: dict[str, Priority] = {
    "low": Priority.LOW,
    "medium": Priority.MEDIUM,
    "high": Priority.HIGH,
    "urgent": Priority.URGENT,
    "important": Priority.HIGH,
    "critical": Priority.URGENT,
    "asap": Priority.URGENT,
}

LABEL_KEYWORDS: tuple[str, ...] = (
    "work",
    "personal",
    "urgent",
    "meeting",
    "call",
    "email",
    "shopping",
    "health",
    "finance",
    "home",
    "family",
    "friends",
    "travel",
    "project",
)

FILLER_WORDS: tuple[str, ...] = (
    "at",
    "on",
    "in",
    "for",
    "with",
    "by",
    "due",
    "deadline",
    "priority",
    "label",
)


class VocabularyError(Exception):
    """Raised when a vocabulary file cannot be loaded."""


def keyword_pattern(phrase: str) -> re.Pattern[str]:
    """Compile a whole-word, case-insensitive pattern for a word or phrase.

    Words of a multi-word phrase may be separated by any run of whitespace.
    """
    words = phrase.split()
    if not words:
        raise ValueError("Keyword phrase must not be empty")
    body = r"\s+".join(re.escape(word) for word in words)
    return re.compile(rf"\b{body}\b", re.IGNORECASE)


@dataclass(frozen=True)
class Vocabulary:
    """The full set of tables consulted by the parser."""

    time_keywords: Mapping[str, int] = field(default_factory=lambda: dict(TIME_KEYWORDS))
    date_keywords: Mapping[str, DateResolver] = field(default_factory=lambda: dict(DATE_KEYWORDS))
    priority_keywords: Mapping[str, Priority] = field(
        default_factory=lambda: dict(PRIORITY_KEYWORDS)
    )
    label_keywords: tuple[str, ...] = LABEL_KEYWORDS
    filler_words: tuple[str, ...] = FILLER_WORDS

    @classmethod
    def default(cls) -> Vocabulary:
        return cls()

    @classmethod
    def from_yaml(cls, path: str | Path) -> Vocabulary:
        """Load word-table overrides from a YAML file.

        Recognised top-level keys: ``time_keywords`` (word -> hour),
        ``priority_keywords`` (word -> priority name), ``labels`` (list) and
        ``filler_words`` (list). Missing keys keep the built-in table. Date
        phrases map to date arithmetic and cannot be overridden here.

        Raises:
            VocabularyError: If the file is missing, unreadable or malformed.
        """
        path = Path(path).expanduser()
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise VocabularyError(f"Cannot read vocabulary file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise VocabularyError(f"Invalid YAML in {path}: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise VocabularyError(f"{path}: expected a mapping at the top level")

        unknown = set(raw) - {"time_keywords", "priority_keywords", "labels", "filler_words"}
        if unknown:
            raise VocabularyError(f"{path}: unknown keys {sorted(unknown)}")

        overrides: dict[str, Any] = {}
        if "time_keywords" in raw:
            overrides["time_keywords"] = _load_time_keywords(raw["time_keywords"], path)
        if "priority_keywords" in raw:
            overrides["priority_keywords"] = _load_priority_keywords(
                raw["priority_keywords"], path
            )
        if "labels" in raw:
            overrides["label_keywords"] = _load_word_list(raw["labels"], "labels", path)
        if "filler_words" in raw:
            overrides["filler_words"] = _load_word_list(raw["filler_words"], "filler_words", path)

        logger.debug(f"Loaded vocabulary overrides {sorted(overrides)} from {path}")
        return cls(**overrides)


def _load_time_keywords(value: Any, path: Path) -> dict[str, int]:
    if not isinstance(value, dict):
        raise VocabularyError(f"{path}: time_keywords must be a mapping of word to hour")
    table: dict[str, int] = {}
    for word, hour in value.items():
        if not isinstance(hour, int) or isinstance(hour, bool) or not 0 <= hour <= 23:
            raise VocabularyError(f"{path}: hour for {word!r} must be an integer 0-23")
        table[_keyword(word, "time_keywords", path)] = hour
    return table


def _load_priority_keywords(value: Any, path: Path) -> dict[str, Priority]:
    if not isinstance(value, dict):
        raise VocabularyError(f"{path}: priority_keywords must be a mapping of word to priority")
    table: dict[str, Priority] = {}
    for word, name in value.items():
        keyword = _keyword(word, "priority_keywords", path)
        try:
            table[keyword] = Priority(str(name).lower())
        except ValueError as e:
            raise VocabularyError(f"{path}: unknown priority {name!r} for {word!r}") from e
    return table


def _keyword(word: Any, key: str, path: Path) -> str:
    keyword = "" if word is None else str(word).strip().lower()
    if not keyword:
        raise VocabularyError(f"{path}: {key} contains an empty word")
    return keyword


def _load_word_list(value: Any, key: str, path: Path) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(w, str) for w in value):
        raise VocabularyError(f"{path}: {key} must be a list of strings")
    words: list[str] = []
    for word in value:
        word = word.strip().lower()
        if word and word not in words:
            words.append(word)
    return tuple(words)
