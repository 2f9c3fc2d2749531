"""Read-side helpers over a teacher's weekly slots."""

from collections.abc import Iterable
from datetime import datetime

from src.rollbook.models import DayOfWeek, WeeklyScheduleSlot


def active_slots_at(
    slots: Iterable[WeeklyScheduleSlot], when: datetime
) -> list[WeeklyScheduleSlot]:
    """Slots running at `when`, used to pick the class to take attendance for.

    Both ends are inclusive, so a class is still offered at its end minute.
    """
    day = DayOfWeek.from_date(when.date())
    now = when.strftime("%H:%M")
    return sorted(
        (
            s
            for s in slots
            if s.active
            and s.day_of_week == day
            and s.start_time <= now <= s.end_time
        ),
        key=lambda s: s.start_time,
    )


def next_slot(
    slots: Iterable[WeeklyScheduleSlot],
    day: DayOfWeek | str,
    current_time: str,
) -> WeeklyScheduleSlot | None:
    """Earliest active slot on `day` starting strictly after `current_time`."""
    day = DayOfWeek.parse(day)
    upcoming = [
        s
        for s in slots
        if s.active and s.day_of_week == day and s.start_time > current_time
    ]
    if not upcoming:
        return None
    return min(upcoming, key=lambda s: s.start_time)
