"""Smart scheduling: free time slots around existing commitments.

Heuristic, single-day, single-resource planning:
- Walk the day's commitments once and offer one slot per gap plus one after
  the last commitment
- Rate each slot by time of day (high/medium/low confidence)
- Detect overlaps with existing commitments
- Probe forward in fixed steps for the next conflict-free start

Every operation is a pure function of its arguments; the caller supplies
"now". Nothing here raises for ordinary input.
"""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from itertools import islice

from taskmate.config import settings
from taskmate.services.intent import Priority

logger = logging.getLogger(__name__)

# Prime focus hours (inclusive start hours)
MORNING_FOCUS_HOURS = (9, 11)
AFTERNOON_FOCUS_HOURS = (14, 16)
LUNCH_HOURS = (11, 13)

# Another commitment starting closer than this makes a slot "busy"
NEARBY_WINDOW = timedelta(hours=2)


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestionReason(str, Enum):
    """Which reason branch produced a suggestion."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    LUNCH = "lunch"
    QUIET = "quiet"
    FITS = "fits"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class WorkingHours:
    start_hour: int = 9
    end_hour: int = 18
    break_minutes: int = 15

    @property
    def break_duration(self) -> timedelta:
        return timedelta(minutes=self.break_minutes)

    def window(self, day: datetime) -> tuple[datetime, datetime]:
        """Working window ``[start, end)`` on the calendar day of ``day``."""
        from taskmate.services.timezone import relocalize

        midnight = day.replace(hour=0, minute=0, second=0, microsecond=0)
        return (
            relocalize(midnight + timedelta(hours=self.start_hour)),
            relocalize(midnight + timedelta(hours=self.end_hour)),
        )


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval ``[start, end)``. Callers guarantee start < end."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        """True if the intervals share any time; touching ends do not count."""
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class TaskTimeSlot(TimeInterval):
    """An existing commitment on the calendar."""

    title: str = ""
    priority: Priority = Priority.MEDIUM


@dataclass(frozen=True)
class SchedulingSuggestion:
    suggested_time: datetime
    reason: str
    confidence: Confidence
    reason_kind: SuggestionReason


class AvailabilityPlanner:
    """Finds and ranks free time slots within a working day.

    Defaults come from settings; every one of them can be overridden per
    instance.
    """

    FALLBACK_REASON = "No available slots on that day. Suggested for the next morning."

    def __init__(
        self,
        working_hours: WorkingHours | None = None,
        default_duration_minutes: int | None = None,
        max_suggestions: int | None = None,
        probe_step_minutes: int | None = None,
        probe_count: int | None = None,
    ) -> None:
        self.working_hours = settings.working_hours if working_hours is None else working_hours
        self.default_duration_minutes = (
            settings.default_duration_minutes
            if default_duration_minutes is None
            else default_duration_minutes
        )
        self.max_suggestions = (
            settings.max_suggestions if max_suggestions is None else max_suggestions
        )
        self.probe_step_minutes = (
            settings.probe_step_minutes if probe_step_minutes is None else probe_step_minutes
        )
        self.probe_count = settings.probe_count if probe_count is None else probe_count

    def free_slots(
        self,
        day: datetime,
        commitments: Sequence[TimeInterval],
        duration_minutes: int,
    ) -> Iterator[TimeInterval]:
        """Yield candidate slots of ``duration_minutes`` on ``day``.

        ``commitments`` must belong to ``day`` and be sorted by start time.
        At most one slot is offered per gap (a gap must fit the duration plus
        a break) and one after the last commitment, so at most
        ``len(commitments) + 1`` slots come out.
        """
        duration = timedelta(minutes=duration_minutes)
        rest = self.working_hours.break_duration
        window_start, window_end = self.working_hours.window(day)

        cursor = window_start
        for commitment in commitments:
            if cursor < commitment.start and commitment.start - cursor >= duration + rest:
                slot_end = cursor + duration
                if slot_end <= commitment.start and slot_end <= window_end:
                    yield TimeInterval(start=cursor, end=slot_end)

            # Never step backwards when a shorter commitment sits inside a longer one
            cursor = max(cursor, commitment.end + rest)

        if cursor < window_end and window_end - cursor >= duration:
            yield TimeInterval(start=cursor, end=cursor + duration)

    def suggest(
        self,
        commitments: Sequence[TimeInterval],
        now: datetime,
        preferred_date: datetime | date | None = None,
        duration_minutes: int | None = None,
        priority: Priority = Priority.MEDIUM,
    ) -> list[SchedulingSuggestion]:
        """Suggest up to ``max_suggestions`` start times, never an empty list.

        Without a preferred date the target is today, or tomorrow once the
        working day is over.
        """
        duration_minutes = duration_minutes or self.default_duration_minutes
        target = self.target_day(now, preferred_date)

        day_commitments = sorted(
            (c for c in commitments if c.start.date() == target.date()),
            key=lambda c: c.start,
        )

        suggestions = []
        for slot in islice(
            self.free_slots(target, day_commitments, duration_minutes), self.max_suggestions
        ):
            kind = self.reason_kind(slot, day_commitments)
            suggestions.append(
                SchedulingSuggestion(
                    suggested_time=slot.start,
                    reason=_describe(kind, slot.start),
                    confidence=self.confidence(slot, priority),
                    reason_kind=kind,
                )
            )

        if not suggestions:
            next_morning = self.working_hours.window(target + timedelta(days=1))[0]
            logger.debug(f"No free slot on {target.date()}, falling back to {next_morning}")
            suggestions.append(
                SchedulingSuggestion(
                    suggested_time=next_morning,
                    reason=self.FALLBACK_REASON,
                    confidence=Confidence.MEDIUM,
                    reason_kind=SuggestionReason.FALLBACK,
                )
            )

        logger.debug(f"Suggested {len(suggestions)} slot(s) for {target.date()}")
        return suggestions

    def confidence(self, slot: TimeInterval, priority: Priority = Priority.MEDIUM) -> Confidence:
        """Rate a slot by its start hour.

        ``priority`` is accepted for callers but does not affect the rating.
        """
        hour = slot.start.hour
        if _within(hour, MORNING_FOCUS_HOURS) or _within(hour, AFTERNOON_FOCUS_HOURS):
            return Confidence.HIGH
        if self.working_hours.start_hour <= hour <= self.working_hours.end_hour:
            return Confidence.MEDIUM
        return Confidence.LOW

    def reason_kind(
        self, slot: TimeInterval, commitments: Sequence[TimeInterval]
    ) -> SuggestionReason:
        hour = slot.start.hour
        if _within(hour, MORNING_FOCUS_HOURS):
            return SuggestionReason.MORNING
        if _within(hour, AFTERNOON_FOCUS_HOURS):
            return SuggestionReason.AFTERNOON
        if _within(hour, LUNCH_HOURS):
            return SuggestionReason.LUNCH

        nearby = [c for c in commitments if abs(c.start - slot.start) < NEARBY_WINDOW]
        return SuggestionReason.FITS if nearby else SuggestionReason.QUIET

    def has_conflict(
        self,
        proposed_start: datetime,
        duration_minutes: int,
        commitments: Sequence[TimeInterval],
    ) -> bool:
        proposed = TimeInterval(
            start=proposed_start, end=proposed_start + timedelta(minutes=duration_minutes)
        )
        return any(proposed.overlaps(c) for c in commitments)

    def next_available(
        self,
        from_time: datetime,
        duration_minutes: int,
        commitments: Sequence[TimeInterval],
    ) -> datetime | None:
        """First conflict-free start, probing forward in fixed steps.

        Returns None once ``probe_count`` probes are exhausted.
        """
        step = timedelta(minutes=self.probe_step_minutes)
        probe = from_time
        for _ in range(self.probe_count):
            if not self.has_conflict(probe, duration_minutes, commitments):
                return probe
            probe += step
        logger.debug(f"No free start within {self.probe_count} probes from {from_time}")
        return None

    def target_day(
        self, now: datetime, preferred_date: datetime | date | None = None
    ) -> datetime:
        """Day that `suggest` plans on.

        A preferred date wins. Otherwise today, or the start of tomorrow's
        working window once today's has ended.
        """
        if isinstance(preferred_date, datetime):
            return preferred_date
        if isinstance(preferred_date, date):
            from taskmate.services.timezone import relocalize

            midnight = now.replace(
                year=preferred_date.year,
                month=preferred_date.month,
                day=preferred_date.day,
                hour=0,
                minute=0,
                second=0,
                microsecond=0,
            )
            return relocalize(midnight)
        if now.hour < self.working_hours.end_hour:
            return now
        return self.working_hours.window(now + timedelta(days=1))[0]


def _within(hour: int, bounds: tuple[int, int]) -> bool:
    return bounds[0] <= hour <= bounds[1]


def _describe(kind: SuggestionReason, start: datetime) -> str:
    time_str = start.strftime("%I:%M %p").lstrip("0")
    if kind == SuggestionReason.MORNING:
        return f"Great morning slot at {time_str} - high productivity time"
    if kind == SuggestionReason.AFTERNOON:
        return f"Good afternoon slot at {time_str} - focused work time"
    if kind == SuggestionReason.LUNCH:
        return f"Lunch hour slot at {time_str} - good for meetings"
    if kind == SuggestionReason.QUIET:
        return f"Free slot at {time_str} - no nearby tasks"
    return f"Available slot at {time_str} - fits well with your schedule"


# Module-level singleton
_planner: AvailabilityPlanner | None = None


def get_planner() -> AvailabilityPlanner:
    """Get or create the global AvailabilityPlanner instance."""
    global _planner
    if _planner is None:
        _planner = AvailabilityPlanner()
    return _planner
