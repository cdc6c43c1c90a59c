"""Tests for the smart scheduling engine.

Covers free-slot search, ranked suggestions, conflict detection and the
next-available probe. Every test passes its own "now".
"""

from datetime import date, datetime, timedelta
from types import GeneratorType

import pytest
import pytz

from taskmate.config import settings
from taskmate.services.intent import Priority
from taskmate.services.scheduling import (
    AvailabilityPlanner,
    Confidence,
    SchedulingSuggestion,
    SuggestionReason,
    TaskTimeSlot,
    TimeInterval,
    WorkingHours,
    get_planner,
)

DAY = datetime(2026, 10, 14)


def at(hour: int, minute: int = 0, day: datetime = DAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


def busy(start: datetime, end: datetime, title: str = "busy") -> TaskTimeSlot:
    return TaskTimeSlot(start=start, end=end, title=title)


# --- Fixtures ---


@pytest.fixture
def planner() -> AvailabilityPlanner:
    """Planner with the standard 9-18 day and 15 minute breaks."""
    return AvailabilityPlanner(
        working_hours=WorkingHours(start_hour=9, end_hour=18, break_minutes=15),
        default_duration_minutes=60,
        max_suggestions=5,
        probe_step_minutes=15,
        probe_count=96,
    )


@pytest.fixture
def hourly_gaps() -> list[TaskTimeSlot]:
    """Seven short commitments leaving a 30 minute gap before each one."""
    return [busy(at(h, 30), at(h, 45)) for h in range(9, 16)]


# --- Models ---


class TestModels:
    def test_interval_duration(self):
        assert TimeInterval(start=at(9), end=at(10, 30)).duration_minutes == 90

    def test_overlap_is_symmetric(self):
        a = TimeInterval(start=at(9), end=at(10))
        b = TimeInterval(start=at(9, 30), end=at(11))
        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_touching_intervals_do_not_overlap(self):
        a = TimeInterval(start=at(9), end=at(10))
        b = TimeInterval(start=at(10), end=at(11))
        assert not a.overlaps(b)
        assert not b.overlaps(a)

    def test_task_time_slot_defaults(self):
        slot = TaskTimeSlot(start=at(9), end=at(10))
        assert slot.priority == Priority.MEDIUM
        assert slot.title == ""

    def test_working_hours_window(self):
        start, end = WorkingHours().window(at(15, 42))
        assert start == at(9)
        assert end == at(18)

    def test_planner_defaults_from_settings(self):
        planner = AvailabilityPlanner()
        assert planner.working_hours == settings.working_hours
        assert planner.default_duration_minutes == settings.default_duration_minutes
        assert planner.max_suggestions == settings.max_suggestions
        assert planner.probe_count == settings.probe_count

    def test_get_planner_is_cached(self):
        assert get_planner() is get_planner()


# --- free_slots ---


class TestFreeSlots:
    def test_empty_day_gives_one_slot_at_window_start(self, planner):
        slots = list(planner.free_slots(DAY, [], 60))
        assert slots == [TimeInterval(start=at(9), end=at(10))]

    def test_duration_equal_to_window(self, planner):
        slots = list(planner.free_slots(DAY, [], 9 * 60))
        assert slots == [TimeInterval(start=at(9), end=at(18))]

    def test_duration_longer_than_window(self, planner):
        assert list(planner.free_slots(DAY, [], 9 * 60 + 1)) == []

    def test_window_ignores_time_of_day_argument(self, planner):
        slots = list(planner.free_slots(at(16, 37), [], 60))
        assert slots[0].start == at(9)

    def test_gap_needs_room_for_break(self, planner):
        # 09:00-10:00 is exactly 60 minutes, not enough for 60 + 15
        commitments = [busy(at(10), at(11)), busy(at(13), at(14))]
        slots = list(planner.free_slots(DAY, commitments, 60))
        assert [s.start for s in slots] == [at(11, 15), at(14, 15)]

    def test_gap_slot_and_trailing_slot(self, planner):
        commitments = [busy(at(10, 30), at(11))]
        slots = list(planner.free_slots(DAY, commitments, 60))
        assert slots == [
            TimeInterval(start=at(9), end=at(10)),
            TimeInterval(start=at(11, 15), end=at(12, 15)),
        ]

    def test_one_slot_per_gap(self, planner, hourly_gaps):
        slots = list(planner.free_slots(DAY, hourly_gaps, 15))
        assert len(slots) == len(hourly_gaps) + 1
        assert slots[0].start == at(9)
        assert slots[-1].start == at(16)

    def test_commitment_past_window_end(self, planner):
        commitments = [busy(at(17), at(19))]
        slots = list(planner.free_slots(DAY, commitments, 60))
        assert [s.start for s in slots] == [at(9)]

    def test_commitment_before_window_start(self, planner):
        commitments = [busy(at(7), at(10))]
        slots = list(planner.free_slots(DAY, commitments, 60))
        assert [s.start for s in slots] == [at(10, 15)]

    def test_nested_commitment_does_not_rewind(self, planner):
        commitments = [busy(at(9), at(12)), busy(at(10), at(10, 30))]
        slots = list(planner.free_slots(DAY, commitments, 60))
        assert [s.start for s in slots] == [at(12, 15)]

    def test_gap_slot_must_end_inside_window(self):
        planner = AvailabilityPlanner(working_hours=WorkingHours(9, 10, 15))
        commitments = [busy(at(11), at(12))]
        assert list(planner.free_slots(DAY, commitments, 90)) == []

    def test_fully_booked_day(self, planner):
        assert list(planner.free_slots(DAY, [busy(at(9), at(18))], 30)) == []

    def test_slots_are_lazy(self, planner):
        slots = planner.free_slots(DAY, [], 60)
        assert isinstance(slots, GeneratorType)
        assert next(slots).start == at(9)
        assert list(slots) == []

    @pytest.mark.parametrize(
        "commitments",
        [
            [],
            [busy(at(10), at(11)), busy(at(13), at(14))],
            [busy(at(9), at(12)), busy(at(10), at(10, 30))],
            [busy(at(9, 30), at(9, 45)), busy(at(12), at(17, 30))],
            [busy(at(7), at(10)), busy(at(16), at(20))],
        ],
    )
    def test_free_slots_never_conflict(self, planner, commitments):
        for slot in planner.free_slots(DAY, commitments, 30):
            assert not planner.has_conflict(slot.start, slot.duration_minutes, commitments)


# --- suggest ---


class TestSuggest:
    def test_today_when_before_end_of_day(self, planner):
        suggestions = planner.suggest([], now=at(10, 30))
        assert suggestions == [
            SchedulingSuggestion(
                suggested_time=at(9),
                reason=suggestions[0].reason,
                confidence=Confidence.HIGH,
                reason_kind=SuggestionReason.MORNING,
            )
        ]

    def test_just_before_cutoff_stays_today(self, planner):
        suggestions = planner.suggest([], now=at(17, 59))
        assert suggestions[0].suggested_time == at(9)

    def test_tomorrow_after_end_of_day(self, planner):
        suggestions = planner.suggest([], now=at(19))
        assert suggestions[0].suggested_time == at(9) + timedelta(days=1)

    def test_preferred_date(self, planner):
        suggestions = planner.suggest([], now=at(10), preferred_date=date(2026, 10, 20))
        assert suggestions[0].suggested_time == datetime(2026, 10, 20, 9, 0)

    def test_preferred_datetime(self, planner):
        suggestions = planner.suggest(
            [busy(datetime(2026, 10, 20, 9), datetime(2026, 10, 20, 12))],
            now=at(10),
            preferred_date=datetime(2026, 10, 20, 8),
        )
        assert suggestions[0].suggested_time == datetime(2026, 10, 20, 12, 15)

    def test_other_days_are_ignored(self, planner):
        tomorrow_all_day = busy(at(9) + timedelta(days=1), at(18) + timedelta(days=1))
        suggestions = planner.suggest([tomorrow_all_day], now=at(10))
        assert suggestions[0].suggested_time == at(9)

    def test_unsorted_commitments_are_sorted(self, planner):
        commitments = [busy(at(13), at(14)), busy(at(10), at(11))]
        suggestions = planner.suggest(commitments, now=at(8))
        assert [s.suggested_time for s in suggestions] == [at(11, 15), at(14, 15)]

    def test_default_duration(self, planner):
        # Only a 60 minute task (+ break) fits before 10:15
        commitments = [busy(at(10, 15), at(17, 30))]
        suggestions = planner.suggest(commitments, now=at(8))
        assert [s.suggested_time for s in suggestions] == [at(9)]

        longer = planner.suggest(commitments, now=at(8), duration_minutes=61)
        assert longer[0].reason_kind == SuggestionReason.FALLBACK

    def test_capped_at_max_suggestions(self, planner, hourly_gaps):
        suggestions = planner.suggest(hourly_gaps, now=at(8), duration_minutes=15)
        assert len(suggestions) == 5
        assert [s.suggested_time for s in suggestions] == [at(h) for h in range(9, 14)]

    def test_custom_max_suggestions(self, hourly_gaps):
        planner = AvailabilityPlanner(working_hours=WorkingHours(), max_suggestions=3)
        suggestions = planner.suggest(hourly_gaps, now=at(8), duration_minutes=15)
        assert len(suggestions) == 3

    def test_zero_max_suggestions_only_falls_back(self):
        planner = AvailabilityPlanner(working_hours=WorkingHours(), max_suggestions=0)
        assert planner.max_suggestions == 0
        suggestions = planner.suggest([], now=at(10))
        assert [s.reason_kind for s in suggestions] == [SuggestionReason.FALLBACK]

    def test_fallback_when_day_is_full(self, planner):
        suggestions = planner.suggest([busy(at(9), at(18))], now=at(10))
        assert len(suggestions) == 1
        fallback = suggestions[0]
        assert fallback.suggested_time == at(9) + timedelta(days=1)
        assert fallback.confidence == Confidence.MEDIUM
        assert fallback.reason_kind == SuggestionReason.FALLBACK
        assert fallback.reason == AvailabilityPlanner.FALLBACK_REASON

    def test_never_empty(self, planner):
        assert planner.suggest([], now=at(23, 59), duration_minutes=10 * 60)

    def test_same_arguments_same_result(self, planner, hourly_gaps):
        first = planner.suggest(hourly_gaps, now=at(8), duration_minutes=15)
        second = planner.suggest(hourly_gaps, now=at(8), duration_minutes=15)
        assert first == second

    def test_input_is_not_mutated(self, planner):
        commitments = [busy(at(13), at(14)), busy(at(10), at(11))]
        planner.suggest(commitments, now=at(8))
        assert [c.start for c in commitments] == [at(13), at(10)]

    def test_reason_mentions_time(self, planner):
        suggestions = planner.suggest([], now=at(8))
        assert "9:00 AM" in suggestions[0].reason


# --- Confidence and reasons ---


class TestTargetDay:
    def test_today_during_working_hours(self, planner):
        assert planner.target_day(at(10, 30)) == at(10, 30)

    def test_tomorrow_morning_after_hours(self, planner):
        assert planner.target_day(at(19)) == at(9) + timedelta(days=1)

    def test_preferred_date_is_midnight(self, planner):
        assert planner.target_day(at(19), date(2026, 10, 20)) == datetime(2026, 10, 20)

    def test_preferred_datetime_is_kept(self, planner):
        preferred = datetime(2026, 10, 20, 8)
        assert planner.target_day(at(19), preferred) is preferred

    def test_after_hours_across_dst_change(self, planner):
        tz = pytz.timezone("America/Los_Angeles")
        target = planner.target_day(tz.localize(datetime(2026, 10, 31, 19, 0)))
        assert target.replace(tzinfo=None) == datetime(2026, 11, 1, 9, 0)
        assert target.utcoffset() == timedelta(hours=-8)


class TestConfidence:
    @pytest.mark.parametrize(
        "hour, expected",
        [
            (9, Confidence.HIGH),
            (10, Confidence.HIGH),
            (11, Confidence.HIGH),
            (12, Confidence.MEDIUM),
            (13, Confidence.MEDIUM),
            (14, Confidence.HIGH),
            (16, Confidence.HIGH),
            (17, Confidence.MEDIUM),
            (18, Confidence.MEDIUM),
            (8, Confidence.LOW),
            (19, Confidence.LOW),
        ],
    )
    def test_confidence_by_hour(self, planner, hour, expected):
        slot = TimeInterval(start=at(hour), end=at(hour, 30))
        assert planner.confidence(slot) == expected

    def test_priority_does_not_change_confidence(self, planner):
        slot = TimeInterval(start=at(12), end=at(13))
        assert planner.confidence(slot, Priority.URGENT) == planner.confidence(slot, Priority.LOW)


class TestReasonKind:
    @pytest.mark.parametrize(
        "hour, expected",
        [
            (9, SuggestionReason.MORNING),
            (11, SuggestionReason.MORNING),
            (12, SuggestionReason.LUNCH),
            (13, SuggestionReason.LUNCH),
            (14, SuggestionReason.AFTERNOON),
            (16, SuggestionReason.AFTERNOON),
        ],
    )
    def test_hour_bands(self, planner, hour, expected):
        slot = TimeInterval(start=at(hour), end=at(hour, 30))
        assert planner.reason_kind(slot, []) == expected

    def test_quiet_when_nothing_nearby(self, planner):
        slot = TimeInterval(start=at(17), end=at(17, 30))
        assert planner.reason_kind(slot, []) == SuggestionReason.QUIET

    def test_fits_when_commitment_starts_soon(self, planner):
        slot = TimeInterval(start=at(17), end=at(17, 30))
        assert planner.reason_kind(slot, [busy(at(18), at(19))]) == SuggestionReason.FITS

    def test_fits_when_commitment_started_recently(self, planner):
        slot = TimeInterval(start=at(17), end=at(17, 30))
        assert planner.reason_kind(slot, [busy(at(15, 30), at(16))]) == SuggestionReason.FITS

    def test_exactly_two_hours_away_is_quiet(self, planner):
        slot = TimeInterval(start=at(17), end=at(17, 30))
        assert planner.reason_kind(slot, [busy(at(19), at(20))]) == SuggestionReason.QUIET


# --- has_conflict ---


class TestHasConflict:
    def test_identical_interval_conflicts(self, planner):
        assert planner.has_conflict(at(10), 60, [busy(at(10), at(11))])

    def test_starting_at_commitment_end_is_free(self, planner):
        assert not planner.has_conflict(at(11), 60, [busy(at(10), at(11))])

    def test_ending_at_commitment_start_is_free(self, planner):
        assert not planner.has_conflict(at(9), 60, [busy(at(10), at(11))])

    def test_partial_overlap(self, planner):
        assert planner.has_conflict(at(10, 45), 30, [busy(at(10), at(11))])

    def test_proposal_containing_commitment(self, planner):
        assert planner.has_conflict(at(9), 180, [busy(at(10), at(11))])

    def test_no_commitments(self, planner):
        assert not planner.has_conflict(at(10), 60, [])

    def test_any_commitment_counts(self, planner):
        commitments = [busy(at(8), at(9)), busy(at(14), at(15))]
        assert planner.has_conflict(at(14, 30), 15, commitments)


# --- next_available ---


class TestNextAvailable:
    def test_free_start_is_returned_as_is(self, planner):
        assert planner.next_available(at(10, 7), 30, []) == at(10, 7)

    def test_skips_past_commitment(self, planner):
        commitments = [busy(at(10), at(11))]
        assert planner.next_available(at(9, 45), 30, commitments) == at(11)

    def test_fully_booked_day_returns_none(self, planner):
        whole_day = [busy(at(0), at(0) + timedelta(hours=26))]
        assert planner.next_available(at(0), 30, whole_day) is None

    def test_probe_budget(self):
        planner = AvailabilityPlanner(
            working_hours=WorkingHours(), probe_step_minutes=15, probe_count=2
        )
        commitments = [busy(at(10), at(11))]
        assert planner.next_available(at(10), 15, commitments) is None

    def test_zero_probe_count_is_honoured(self):
        planner = AvailabilityPlanner(working_hours=WorkingHours(), probe_count=0)
        assert planner.probe_count == 0
        assert planner.next_available(at(10), 15, []) is None

    def test_result_never_conflicts(self, planner):
        commitments = [busy(at(9), at(12)), busy(at(12, 30), at(13))]
        start = planner.next_available(at(9), 30, commitments)
        assert start == at(12)
        assert not planner.has_conflict(start, 30, commitments)
