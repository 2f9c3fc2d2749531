"""Recurrence projection of weekly slots onto a month calendar.

Weekly slots are expanded into concrete dates for a three-month window
(previous, viewed and next month) so that paging one month either way
already has marks to show. One-off items (assessment due dates, local
events) are placed on their own date regardless of the window.

Each date carries a set of category tags:
    class  - at least one active weekly slot falls on that date
    test   - at least one assessment is due
    event  - at least one local event/reminder
"""

from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from src.rollbook.models import (
    AgendaItem,
    Assessment,
    CalendarTag,
    DayOfWeek,
    LocalEvent,
    WeeklyScheduleSlot,
)

# Sorts after every "HH:MM" time of day
DATE_ONLY_TIME = "24:00"


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


@dataclass(frozen=True)
class MonthWindow:
    """Months, as (year, month) pairs, to expand recurring slots into."""

    months: tuple[tuple[int, int], ...]

    @classmethod
    def around(cls, viewed: date) -> "MonthWindow":
        """Previous, current and next month relative to `viewed`."""
        return cls(
            tuple(_shift_month(viewed.year, viewed.month, d) for d in (-1, 0, 1))
        )

    @classmethod
    def single(cls, year: int, month: int) -> "MonthWindow":
        return cls(((year, month),))

    def __contains__(self, day: date) -> bool:
        return (day.year, day.month) in self.months


def dates_for_weekday(day: DayOfWeek | str, year: int, month: int) -> list[date]:
    """Every date in the month falling on `day`, ascending.

    Finds the first matching date of the month, then steps by 7 days while
    still inside it.
    """
    weekday = DayOfWeek.parse(day).weekday
    current = date(year, month, 1)
    current += timedelta(days=(weekday - current.weekday()) % 7)

    dates = []
    while current.month == month:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


@dataclass
class CalendarProjection:
    """Projected calendar state: a mark index plus per-day agenda lookup."""

    window: MonthWindow
    marks: dict[date, frozenset[CalendarTag]]
    slots: list[WeeklyScheduleSlot] = field(default_factory=list)
    assessments: list[Assessment] = field(default_factory=list)
    events: list[LocalEvent] = field(default_factory=list)

    def tags_for(self, day: date) -> frozenset[CalendarTag]:
        return self.marks.get(day, frozenset())

    def agenda_for(self, day: date) -> list[AgendaItem]:
        """Everything happening on `day`, ordered by time of day.

        Recurring slots match on weekday alone, so the agenda is available
        for any date, not only those inside the window.
        """
        weekday = DayOfWeek.from_date(day)
        items = [
            AgendaItem(type="CLASS", time=s.start_time, payload=s)
            for s in self.slots
            if s.day_of_week == weekday
        ]
        items += [
            AgendaItem(type="TEST", time=None, payload=a)
            for a in self.assessments
            if a.due_date == day
        ]
        items += [
            AgendaItem(type="EVENT", time=e.start_time, payload=e)
            for e in self.events
            if e.date == day
        ]
        # Stable sort keeps class, test, event order on equal times
        items.sort(key=lambda item: item.time or DATE_ONLY_TIME)
        return items


def project(
    slots: Iterable[WeeklyScheduleSlot],
    assessments: Iterable[Assessment] = (),
    events: Iterable[LocalEvent] = (),
    window: MonthWindow | None = None,
) -> CalendarProjection:
    """Build the calendar mark index for `window` (default: around today).

    Inactive slots and assessments, and assessments without a due date,
    are left out.
    """
    window = window or MonthWindow.around(date.today())
    active_slots = [s for s in slots if s.active]
    dated_assessments = [a for a in assessments if a.active and a.due_date]
    events = list(events)

    marks: dict[date, set[CalendarTag]] = {}

    for year, month in window.months:
        for day in {s.day_of_week for s in active_slots}:
            for d in dates_for_weekday(day, year, month):
                marks.setdefault(d, set()).add("class")

    for assessment in dated_assessments:
        marks.setdefault(assessment.due_date, set()).add("test")

    for event in events:
        marks.setdefault(event.date, set()).add("event")

    return CalendarProjection(
        window=window,
        marks={d: frozenset(tags) for d, tags in marks.items()},
        slots=active_slots,
        assessments=dated_assessments,
        events=events,
    )
