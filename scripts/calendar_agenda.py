"""Print a month's calendar marks and one day's agenda from a schedule file.

Expands weekly slots over the viewed month (plus its neighbours) and merges
assessment due dates and local events, exactly as the calendar screen does.

Run with: python scripts/calendar_agenda.py data/schedule.json
Day:      python scripts/calendar_agenda.py data/schedule.json --date 2026-03-02
JSON:     python scripts/calendar_agenda.py data/schedule.json --json

The schedule file holds three lists, each optional:
    {"slots": [...], "assessments": [...], "events": [...]}

Exit codes:
  0 = success
  1 = error (message on stderr)
"""

import argparse
import json
import os
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.rollbook.calendar import CalendarView  # noqa: E402
from src.rollbook.logging import setup_logging  # noqa: E402
from src.rollbook.models import (  # noqa: E402
    AgendaItem,
    Assessment,
    LocalEvent,
    WeeklyScheduleSlot,
)

_TAG_SYMBOL = {"class": "C", "test": "T", "event": "E"}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Show calendar marks and a day's agenda for a schedule file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("schedule", type=str, help="Schedule JSON file.")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=date.today(),
        help="Selected day, YYYY-MM-DD (default: today). Its month is shown.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output marks and agenda as JSON.",
    )
    return parser.parse_args()


def _describe(item: AgendaItem) -> str:
    p = item.payload
    if item.type == "CLASS":
        return f"{p.start_time}-{p.end_time}  CLASS  {p.subject_id} / {p.class_id}"
    if item.type == "EVENT":
        return f"{p.start_time}-{p.end_time}  EVENT  {p.title}"
    return f"due          EXAM   {p.title}"


def main(args: argparse.Namespace) -> None:
    setup_logging()

    data = json.loads(Path(args.schedule).read_text(encoding="utf-8"))
    slots = [WeeklyScheduleSlot.model_validate(s) for s in data.get("slots", [])]
    assessments = [Assessment.model_validate(a) for a in data.get("assessments", [])]
    events = [LocalEvent.model_validate(e) for e in data.get("events", [])]

    view = CalendarView(today=args.date)
    view.set_sources(slots, assessments, events)
    agenda = view.agenda()

    month_marks = {
        d: tags
        for d, tags in sorted(view.marks.items())
        if (d.year, d.month) == (args.date.year, args.date.month)
    }

    if args.json:
        output = {
            "marks": {d.isoformat(): sorted(tags) for d, tags in month_marks.items()},
            "agenda": [item.model_dump(mode="json") for item in agenda],
        }
        print(json.dumps(output, indent=2))
        return

    print(f"{args.date:%B %Y}")
    for d, tags in month_marks.items():
        symbols = "".join(_TAG_SYMBOL[t] for t in sorted(tags))
        print(f"  {d:%a %d}  {symbols}")
    print()
    print(f"Queue for {args.date:%A, %b %d}")
    if not agenda:
        print("  (nothing scheduled)")
    for item in agenda:
        print(f"  {_describe(item)}")


if __name__ == "__main__":
    args = _parse_args()
    try:
        main(args)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
