"""Collaborator interfaces consumed by the core.

The remote document store, the roster source and the vision model are all
owned by the surrounding application. The core only depends on these
protocols; tests plug in in-memory fakes.

Store implementations should raise TransientError for failures worth
retrying (timeouts, 5xx) and PermanentError for everything else.
"""

from typing import Protocol, Sequence

from src.rollbook.models import (
    AcademicYear,
    Assessment,
    AttendanceRecord,
    AttendanceSession,
    DayOfWeek,
    LocalEvent,
    Student,
    WeeklyScheduleSlot,
)


class RosterProvider(Protocol):
    async def list_students(self, class_id: str) -> Sequence[Student]:
        """Students of a class, in roster order."""

        raise NotImplementedError


class ScheduleStore(Protocol):
    async def current_academic_year(self, institution_id: str) -> AcademicYear | None:
        raise NotImplementedError

    async def list_slots(
        self,
        *,
        teacher_id: str,
        day_of_week: DayOfWeek | None = None,
        active_only: bool = True,
    ) -> Sequence[WeeklyScheduleSlot]:
        """Equality-filtered slot query. No server-side conflict checking."""

        raise NotImplementedError

    async def create_slot(self, slot: WeeklyScheduleSlot) -> WeeklyScheduleSlot:
        """Persist a new slot and return it with its id assigned."""

        raise NotImplementedError

    async def update_slot(
        self, slot_id: str, slot: WeeklyScheduleSlot
    ) -> WeeklyScheduleSlot:
        raise NotImplementedError

    async def deactivate_slot(self, slot_id: str) -> WeeklyScheduleSlot:
        raise NotImplementedError


class AttendanceStore(Protocol):
    async def list_records(self, session_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def update_record(self, record_id: str, present: bool) -> AttendanceRecord:
        raise NotImplementedError

    async def create_session(self, session: AttendanceSession) -> AttendanceSession:
        """Persist a session and return it with its id assigned."""

        raise NotImplementedError

    async def create_record(
        self, *, session_id: str, student_id: str, present: bool
    ) -> AttendanceRecord:
        raise NotImplementedError


class VisionProvider(Protocol):
    async def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        """Run the prompt against the image and return the raw response text."""

        raise NotImplementedError


class CalendarSources(Protocol):
    """Fetch callable used by CalendarView.reload."""

    async def __call__(
        self,
    ) -> tuple[list[WeeklyScheduleSlot], list[Assessment], list[LocalEvent]]:
        """Current (slots, assessments, events) for the signed-in teacher."""

        raise NotImplementedError


__all__ = [
    "AttendanceStore",
    "CalendarSources",
    "RosterProvider",
    "ScheduleStore",
    "VisionProvider",
]
