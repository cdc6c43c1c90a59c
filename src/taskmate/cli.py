import argparse
import logging
import sys
from datetime import date, datetime

from taskmate.config import settings
from taskmate.sentry import capture_exception, init_sentry, set_tag
from taskmate.sentry import flush as sentry_flush
from taskmate.services.intent import Priority
from taskmate.services.scheduling import TaskTimeSlot, get_planner
from taskmate.services.timezone import (
    format_date,
    format_time,
    get_timezone_service,
    start_of_day,
)
from taskmate.services.vocabulary import VocabularyError

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_timestamp(value: str | None) -> datetime:
    """ISO 8601 timestamp in the user's timezone; None means now."""
    tz_service = get_timezone_service()
    if value is None:
        return tz_service.now()
    return tz_service.localize(datetime.fromisoformat(value))


def parse_busy(values: list[str] | None, day: datetime) -> list[TaskTimeSlot]:
    """Turn "HH:MM-HH:MM" ranges into commitments on ``day``."""
    commitments = []
    for value in values or []:
        try:
            start_str, end_str = value.split("-")
            start_h, start_m = (int(part) for part in start_str.split(":"))
            end_h, end_m = (int(part) for part in end_str.split(":"))
            midnight = start_of_day(day)
            start = midnight.replace(hour=start_h, minute=start_m)
            end = midnight.replace(hour=end_h, minute=end_m)
        except ValueError as e:
            raise ValueError(f"Invalid busy range {value!r}, expected HH:MM-HH:MM") from e
        if start >= end:
            raise ValueError(f"Invalid busy range {value!r}, start must be before end")
        commitments.append(TaskTimeSlot(start=start, end=end, title="busy"))
    return commitments


def parse_command(args: argparse.Namespace) -> None:
    from taskmate.services.parser import get_parser

    now = parse_timestamp(args.now)
    result = get_parser().parse(args.text, now)

    print(f"Title:    {result.title}")
    if result.due_date:
        due = format_date(result.due_date)
        if result.due_time_explicit:
            due = f"{due} at {format_time(result.due_date)}"
        print(f"Due:      {due}")
    else:
        print("Due:      -")
    print(f"Priority: {result.priority.value}")
    print(f"Labels:   {', '.join(result.labels) if result.labels else '-'}")


def suggest_command(args: argparse.Namespace) -> None:
    now = parse_timestamp(args.now)
    preferred = date.fromisoformat(args.date) if args.date else None
    planner = get_planner()
    commitments = parse_busy(args.busy, planner.target_day(now, preferred))

    suggestions = planner.suggest(
        commitments,
        now,
        preferred_date=preferred,
        duration_minutes=args.duration,
        priority=Priority(args.priority),
    )

    print(f"Suggestions for {format_date(suggestions[0].suggested_time)}:\n")
    for suggestion in suggestions:
        print(f"  [{suggestion.confidence.value:>6}] {suggestion.reason}")


def next_slot_command(args: argparse.Namespace) -> None:
    start = parse_timestamp(args.from_time)
    commitments = parse_busy(args.busy, start)
    duration = args.duration or settings.default_duration_minutes

    slot = get_planner().next_available(start, duration, commitments)
    if slot is None:
        print("No free slot in the next 24 hours")
        return
    print(f"Next free slot: {format_date(slot)} at {format_time(slot)}")


def check_command(args: argparse.Namespace) -> None:
    print("Taskmate Configuration Check\n")

    rows = [
        ("Timezone", get_timezone_service().default_timezone),
        ("Working hours", f"{settings.work_start_hour}:00-{settings.work_end_hour}:00"),
        ("Break between tasks", f"{settings.break_minutes} min"),
        ("Default duration", f"{settings.default_duration_minutes} min"),
        ("Max suggestions", str(settings.max_suggestions)),
        (
            "Slot search",
            f"{settings.probe_count} probes x {settings.probe_step_minutes} min",
        ),
        ("Vocabulary file", settings.vocabulary_file or "built-in"),
        ("Sentry DSN", "OK" if settings.has_sentry else "MISSING"),
    ]
    for name, value in rows:
        print(f"  {name}: {value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Taskmate quick-add and scheduling tools")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    parse_p = subparsers.add_parser("parse", help="Parse quick-add text into a task")
    parse_p.add_argument("text", help='e.g. "Call mom tomorrow at 3pm"')
    parse_p.add_argument("--now", help="Reference time (ISO 8601), default: now")
    parse_p.set_defaults(func=parse_command)

    suggest_p = subparsers.add_parser("suggest", help="Suggest free time slots")
    suggest_p.add_argument("--date", help="Preferred day (YYYY-MM-DD)")
    suggest_p.add_argument("--duration", type=int, help="Task length in minutes")
    suggest_p.add_argument(
        "--priority", default="medium", choices=[p.value for p in Priority]
    )
    suggest_p.add_argument(
        "--busy", action="append", metavar="HH:MM-HH:MM", help="Existing commitment"
    )
    suggest_p.add_argument("--now", help="Reference time (ISO 8601), default: now")
    suggest_p.set_defaults(func=suggest_command)

    next_p = subparsers.add_parser("next-slot", help="Find the next conflict-free start")
    next_p.add_argument("--from", dest="from_time", help="Start searching at (ISO 8601)")
    next_p.add_argument("--duration", type=int, help="Task length in minutes")
    next_p.add_argument(
        "--busy", action="append", metavar="HH:MM-HH:MM", help="Existing commitment"
    )
    next_p.set_defaults(func=next_slot_command)

    check_p = subparsers.add_parser("check", help="Check configuration")
    check_p.set_defaults(func=check_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging()

    # Disabled when no DSN is configured
    init_sentry(
        dsn=settings.sentry_dsn if settings.has_sentry else None,
        environment=settings.sentry_environment,
    )

    if args.command is None:
        parser.print_help()
        return

    set_tag("command", args.command)
    try:
        args.func(args)
    except (ValueError, VocabularyError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        capture_exception(e)
        raise
    finally:
        sentry_flush(timeout=2.0)


if __name__ == "__main__":
    main()
