"""Pydantic models for schedule, calendar and attendance data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Field names are snake_case; store adapters map them to document attributes.
"""

from collections.abc import Iterable
from datetime import date
from enum import Enum
from typing import Literal

from pydantic import BaseModel, field_validator


class DayOfWeek(str, Enum):
    """Weekday token stored on schedule slots. Declared Monday-first so the
    member order matches date.weekday()."""

    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"

    @classmethod
    def parse(cls, value: "str | DayOfWeek") -> "DayOfWeek":
        """Accept "MON", "mon", "Monday" and similar spellings."""
        if isinstance(value, cls):
            return value
        token = str(value).strip().upper()[:3]
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown day of week {value!r}") from None

    @classmethod
    def from_date(cls, day: date) -> "DayOfWeek":
        return list(cls)[day.weekday()]

    @property
    def weekday(self) -> int:
        """Python weekday number (0=Monday)."""
        return list(DayOfWeek).index(self)


class WeeklyScheduleSlot(BaseModel):
    """A weekly recurring class-schedule entry for one teacher.

    Times are zero-padded 24h "HH:MM" strings so plain string comparison
    orders them correctly.
    """

    id: str | None = None  # None until persisted
    teacher_id: str
    class_id: str
    subject_id: str
    day_of_week: DayOfWeek
    start_time: str  # "09:00"
    end_time: str  # "10:00", strictly after start_time
    academic_year_id: str | None = None  # Filled in by ScheduleService.save
    institution_id: str | None = None
    active: bool = True

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _parse_day(cls, value):
        return DayOfWeek.parse(value)


class AcademicYear(BaseModel):
    id: str
    label: str
    is_current: bool = False


class Student(BaseModel):
    """Roster entry. Roll numbers are strings; most rosters use integers."""

    id: str
    name: str
    roll_number: str
    class_id: str | None = None


class AttendanceSession(BaseModel):
    """One attendance-taking event for a class/subject/teacher on a date."""

    id: str | None = None
    class_id: str
    subject_id: str
    teacher_id: str
    date: date
    institution_id: str | None = None


class AttendanceRecord(BaseModel):
    """One student's outcome within a session. Unique per (session, student)."""

    id: str
    session_id: str
    student_id: str
    present: bool


AssessmentType = Literal["HOMEWORK", "TEST", "QUIZ", "ASSIGNMENT"]


class Assessment(BaseModel):
    id: str
    title: str
    type: AssessmentType = "TEST"
    class_id: str | None = None
    subject_id: str | None = None
    due_date: date | None = None
    active: bool = True

    @field_validator("due_date", mode="before")
    @classmethod
    def _date_only(cls, value):
        # Stores hand back ISO timestamps ("2026-03-04T00:00:00.000+00:00")
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value


class LocalEvent(BaseModel):
    """A personal event or reminder kept on the device, not in the store."""

    id: str
    title: str
    description: str | None = None
    date: date
    start_time: str
    end_time: str
    type: Literal["PERSONAL", "REMINDER"] = "PERSONAL"


CalendarTag = Literal["class", "test", "event"]


class AgendaItem(BaseModel):
    """One line of a day's agenda. Derived on every read, never persisted."""

    type: Literal["CLASS", "TEST", "EVENT"]
    time: str | None  # None for date-only items (assessment due dates)
    payload: WeeklyScheduleSlot | Assessment | LocalEvent


class DetectionMode(str, Enum):
    ROLL_NUMBER_LIST = "ROLL_NUMBER_LIST"
    ATTENDANCE_CHART = "ATTENDANCE_CHART"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


class DetectedAttendanceEntry(BaseModel):
    """A roll number read (or inferred) from an attendance image."""

    roll_number: str
    status: AttendanceStatus
    confidence: float
    student_id: str | None = None  # Roster match, None when unmatched
    needs_review: bool = False
    inferred: bool = False  # Status not read but implied (absent by omission)

    @property
    def present(self) -> bool:
        return self.status is AttendanceStatus.PRESENT


class DetectionProposal(BaseModel):
    """Unpersisted attendance candidate produced from an image.

    Handed to the diff engine (or a draft) for review; nothing here is
    written to the store directly.
    """

    mode: DetectionMode
    target_date: date
    entries: list[DetectedAttendanceEntry]
    unmatched: list[str] = []  # Raw rolls the model saw but the roster lacks
    unreported: list[str] = []  # Student ids the image said nothing about
    notes: str | None = None

    def auto_applicable(self) -> list[DetectedAttendanceEntry]:
        return [e for e in self.entries if e.student_id and not e.needs_review]

    def pending_review(self) -> list[DetectedAttendanceEntry]:
        return [e for e in self.entries if e.student_id and e.needs_review]

    def statuses_by_student(self, accept: Iterable[str] = ()) -> dict[str, bool]:
        """Map student id -> present for entries safe to apply.

        Args:
            accept: Roll numbers of review-flagged entries a human approved.
        """
        accepted = {str(roll).strip() for roll in accept}
        statuses: dict[str, bool] = {}
        for entry in self.entries:
            if not entry.student_id:
                continue
            if entry.needs_review and entry.roll_number not in accepted:
                continue
            statuses[entry.student_id] = entry.present
        return statuses
