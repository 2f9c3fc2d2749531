"""Scheduling and attendance consistency core.

Conflict-gated weekly schedules, calendar projection, minimal-diff
attendance editing and AI-assisted reading of attendance photos. The
document store, roster and UI are collaborators behind the protocols in
src.rollbook.store.
"""

from src.rollbook.attendance import AttendanceDiffEngine, AttendanceDraft
from src.rollbook.calendar import CalendarView, MonthWindow, project
from src.rollbook.scheduling import ScheduleService, has_conflict
from src.rollbook.vision import AttendanceVisionMatcher, GeminiVisionProvider

__all__ = [
    "AttendanceDiffEngine",
    "AttendanceDraft",
    "AttendanceVisionMatcher",
    "CalendarView",
    "GeminiVisionProvider",
    "MonthWindow",
    "ScheduleService",
    "has_conflict",
    "project",
]
