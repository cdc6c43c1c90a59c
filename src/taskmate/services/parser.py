"""Quick-add parser: turns one line of free text into a partial task.

Layered keyword scanning over fixed word tables (see ``vocabulary``):

1. First clock time in the text ("at 3pm", "15:30", "9am"), else the first
   time word from the table ("morning", "noon", ...).
2. First date phrase in table order ("today", "tomorrow", "next week", ...).
3. First priority word in table order, defaulting to medium.
4. Every label word present.
5. Title = the input with clock times, date phrases, priority words, label
   words and filler words cut out.

Parsing never raises; anything not found is left at its default.
"""

import logging
import re
from datetime import datetime

from taskmate.config import settings
from taskmate.services.intent import DEFAULT_TITLE, ParsedIntent, Priority
from taskmate.services.timezone import relocalize
from taskmate.services.vocabulary import Vocabulary, keyword_pattern

logger = logging.getLogger(__name__)

Span = tuple[int, int]


class Parser:
    # [at] H[:MM][am|pm]; hours without a meridiem are taken as 24-hour
    TIME_PATTERN = re.compile(
        r"\b(?:at\s+)?(\d{1,2})(?::(\d{2}))?(?:\s*(am|pm))?\b",
        re.IGNORECASE,
    )

    def __init__(self, vocabulary: Vocabulary | None = None):
        self.vocabulary = vocabulary or Vocabulary.default()

        self._time_words = [
            (keyword_pattern(word), hour) for word, hour in self.vocabulary.time_keywords.items()
        ]
        self._date_phrases = [
            (keyword_pattern(phrase), resolve)
            for phrase, resolve in self.vocabulary.date_keywords.items()
        ]
        self._priority_words = [
            (keyword_pattern(word), priority)
            for word, priority in self.vocabulary.priority_keywords.items()
        ]
        self._label_words = [(keyword_pattern(word), word) for word in self.vocabulary.label_keywords]
        self._filler_words = [keyword_pattern(word) for word in self.vocabulary.filler_words]

    def parse(self, text: str, now: datetime) -> ParsedIntent:
        """Parse ``text`` relative to the caller's ``now``."""
        text = text or ""
        text_lower = text.lower()

        clock_times = self._find_clock_times(text)
        time_of_day = clock_times[0][1] if clock_times else self._extract_time_word(text_lower)
        date = self._extract_date(text_lower, now)
        due_date = self._combine(date, time_of_day, now)
        priority = self._extract_priority(text_lower)
        labels = self._extract_labels(text_lower)
        title = self._generate_title(text, [span for span, _ in clock_times])

        logger.debug(
            f"Parsed {text!r}: title={title!r} due={due_date} "
            f"priority={priority.value} labels={labels}"
        )

        return ParsedIntent(
            title=title,
            due_date=due_date,
            priority=priority,
            labels=labels,
            due_time_explicit=time_of_day is not None,
            raw_text=text,
        )

    def _find_clock_times(self, text: str) -> list[tuple[Span, tuple[int, int]]]:
        """All valid clock times in left-to-right order with their spans."""
        found = []
        for match in self.TIME_PATTERN.finditer(text):
            hour = int(match.group(1))
            minute = int(match.group(2)) if match.group(2) else 0
            ampm = match.group(3).lower() if match.group(3) else None

            if ampm == "pm" and hour < 12:
                hour += 12
            elif ampm == "am" and hour == 12:
                hour = 0

            if hour > 23 or minute > 59:
                continue
            found.append((match.span(), (hour, minute)))
        return found

    def _extract_time_word(self, text: str) -> tuple[int, int] | None:
        for pattern, hour in self._time_words:
            if pattern.search(text):
                return (hour, 0)
        return None

    def _extract_date(self, text: str, now: datetime) -> datetime | None:
        for pattern, resolve in self._date_phrases:
            if pattern.search(text):
                return resolve(now)
        return None

    def _combine(
        self,
        date: datetime | None,
        time_of_day: tuple[int, int] | None,
        now: datetime,
    ) -> datetime | None:
        if date is None and time_of_day is None:
            return None

        if time_of_day is None:
            return relocalize(date)

        anchor = date if date is not None else now
        hour, minute = time_of_day
        return relocalize(anchor.replace(hour=hour, minute=minute, second=0, microsecond=0))

    def _extract_priority(self, text: str) -> Priority:
        for pattern, priority in self._priority_words:
            if pattern.search(text):
                return priority
        return Priority.MEDIUM

    def _extract_labels(self, text: str) -> list[str]:
        return [label for pattern, label in self._label_words if pattern.search(text)]

    def _generate_title(self, text: str, clock_spans: list[Span]) -> str:
        spans = list(clock_spans)

        patterns = [pattern for pattern, _ in self._date_phrases]
        patterns += [pattern for pattern, _ in self._priority_words]
        patterns += [pattern for pattern, _ in self._label_words]
        patterns += self._filler_words

        for pattern in patterns:
            spans.extend(match.span() for match in pattern.finditer(text))

        title = " ".join(_cut_spans(text, spans).split())
        return title or DEFAULT_TITLE


def _cut_spans(text: str, spans: list[Span]) -> str:
    """Rebuild ``text`` without the given (possibly overlapping) spans."""
    pieces = []
    cursor = 0
    for start, end in sorted(spans):
        if end <= cursor:
            continue
        if start > cursor:
            pieces.append(text[cursor:start])
        cursor = max(cursor, end)
    pieces.append(text[cursor:])
    # Removed words leave a gap so neighbours never fuse together
    return " ".join(pieces)


# Module-level singleton
_parser: Parser | None = None


def get_parser() -> Parser:
    """Get or create the global Parser, honouring ``settings.vocabulary_file``."""
    global _parser
    if _parser is None:
        if settings.has_vocabulary_file:
            _parser = Parser(Vocabulary.from_yaml(settings.vocabulary_file))
        else:
            _parser = Parser()
    return _parser


def reset_parser() -> None:
    """Drop the global Parser so the next ``get_parser`` call rebuilds it."""
    global _parser
    _parser = None


def parse_task(text: str, now: datetime) -> ParsedIntent:
    """Parse quick-add text using the global parser."""
    return get_parser().parse(text, now)
