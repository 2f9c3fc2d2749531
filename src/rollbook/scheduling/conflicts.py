"""Weekly schedule conflict detection.

Two slots of the same teacher conflict when they fall on the same weekday
in the same academic year and their half-open [start, end) intervals
overlap. Back-to-back classes (one ends exactly when the next starts) are
allowed.

Times are "HH:MM" strings; zero padding makes string comparison correct.
"""

from collections.abc import Iterable

from src.rollbook.models import WeeklyScheduleSlot


def intervals_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """True when [start_a, end_a) and [start_b, end_b) share any instant."""
    return start_a < end_b and start_b < end_a


def _same_bucket(candidate: WeeklyScheduleSlot, other: WeeklyScheduleSlot) -> bool:
    if other.teacher_id != candidate.teacher_id:
        return False
    if other.day_of_week != candidate.day_of_week:
        return False
    # Slots loaded without a year (legacy documents) are compared anyway
    if (
        candidate.academic_year_id
        and other.academic_year_id
        and other.academic_year_id != candidate.academic_year_id
    ):
        return False
    return True


def find_conflicts(
    candidate: WeeklyScheduleSlot,
    existing: Iterable[WeeklyScheduleSlot],
    exclude_id: str | None = None,
) -> list[WeeklyScheduleSlot]:
    """Return the active slots in `existing` that overlap `candidate`.

    Args:
        candidate: Slot about to be created or updated.
        existing: The teacher's current slots (usually pre-filtered by day).
        exclude_id: Id of the slot being edited, so it is not compared with
            its own previous version.
    """
    conflicts = []
    for slot in existing:
        if not slot.active:
            continue
        if exclude_id is not None and slot.id == exclude_id:
            continue
        if not _same_bucket(candidate, slot):
            continue
        if intervals_overlap(
            candidate.start_time, candidate.end_time, slot.start_time, slot.end_time
        ):
            conflicts.append(slot)
    return conflicts


def has_conflict(
    candidate: WeeklyScheduleSlot,
    existing: Iterable[WeeklyScheduleSlot],
    exclude_id: str | None = None,
) -> bool:
    """Pre-write gate: True if `candidate` overlaps any active slot."""
    return bool(find_conflicts(candidate, existing, exclude_id))
