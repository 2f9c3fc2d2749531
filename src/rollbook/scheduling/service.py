"""Conflict-gated schedule writes.

ScheduleService is the only path that creates or edits weekly slots:
validate fields, resolve the current academic year, read the teacher's
slots for that day, run the conflict gate, then write.

There is no lock between the read and the write. Two near-simultaneous
conflicting saves for the same teacher can both pass the check.
"""

import re

from src.rollbook.config import RollbookConfig, get_config
from src.rollbook.errors import (
    MissingActiveAcademicYear,
    ScheduleConflict,
    ValidationError,
)
from src.rollbook.logging import get_logger
from src.rollbook.models import WeeklyScheduleSlot
from src.rollbook.scheduling.conflicts import find_conflicts
from src.rollbook.store import ScheduleStore
from src.rollbook.utils import read_with_retry

log = get_logger(__name__)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def require_time(value: str, field_name: str) -> str:
    if not value or not _TIME_RE.match(value):
        raise ValidationError(field_name, "must be a 24h time in HH:MM form")
    return value


def validate_slot(slot: WeeklyScheduleSlot) -> None:
    """Raise a field-scoped ValidationError for the first invalid field."""
    for field_name in ("class_id", "subject_id", "teacher_id"):
        if not (getattr(slot, field_name) or "").strip():
            raise ValidationError(field_name, "is required")

    require_time(slot.start_time, "start_time")
    require_time(slot.end_time, "end_time")

    if slot.start_time >= slot.end_time:
        raise ValidationError("end_time", "End time must be after start time")


class ScheduleService:
    def __init__(
        self, store: ScheduleStore, config: RollbookConfig | None = None
    ) -> None:
        self._store = store
        self._config = config or get_config()

    async def save(
        self,
        slot: WeeklyScheduleSlot,
        *,
        institution_id: str,
        editing_id: str | None = None,
    ) -> WeeklyScheduleSlot:
        """Create a slot, or update `editing_id` in place.

        Raises:
            ValidationError: A required field is missing or times are invalid.
            MissingActiveAcademicYear: The institution has no current year.
            ScheduleConflict: The slot overlaps an active slot of the teacher.
        """
        validate_slot(slot)

        year = await read_with_retry(
            self._store.current_academic_year, institution_id, config=self._config
        )
        if year is None:
            log.warning("academic_year_missing", institution_id=institution_id)
            raise MissingActiveAcademicYear(
                "Cannot create schedule without an active academic year."
            )

        candidate = slot.model_copy(
            update={
                "academic_year_id": year.id,
                "institution_id": institution_id,
                "active": True,
            }
        )

        existing = await read_with_retry(
            self._store.list_slots,
            teacher_id=candidate.teacher_id,
            day_of_week=candidate.day_of_week,
            active_only=True,
            config=self._config,
        )
        conflicts = find_conflicts(candidate, existing, exclude_id=editing_id)
        if conflicts:
            log.info(
                "schedule_conflict",
                teacher_id=candidate.teacher_id,
                day=candidate.day_of_week.value,
                start=candidate.start_time,
                end=candidate.end_time,
                conflicting_ids=[c.id for c in conflicts],
            )
            raise ScheduleConflict(conflicts)

        if editing_id is not None:
            saved = await self._store.update_slot(
                editing_id, candidate.model_copy(update={"id": editing_id})
            )
            log.info("schedule_updated", slot_id=editing_id)
        else:
            saved = await self._store.create_slot(candidate)
            log.info("schedule_created", slot_id=saved.id)
        return saved

    async def deactivate(self, slot_id: str) -> WeeklyScheduleSlot:
        """Soft delete: the slot stays in the store with active=False."""
        slot = await self._store.deactivate_slot(slot_id)
        log.info("schedule_deactivated", slot_id=slot_id)
        return slot
