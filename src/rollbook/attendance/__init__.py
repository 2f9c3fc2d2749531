"""Attendance editing: diff engine for taken sessions, drafts for new ones."""

from src.rollbook.attendance.diff import (
    AttendanceDiffEngine,
    AttendanceEditState,
    CommitResult,
    confirmation_message,
)
from src.rollbook.attendance.draft import AttendanceDraft

__all__ = [
    "AttendanceDiffEngine",
    "AttendanceDraft",
    "AttendanceEditState",
    "CommitResult",
    "confirmation_message",
]
