"""Taking attendance for a new session.

A draft starts with every roster student marked present. The teacher
toggles individuals or merges in a vision proposal, then submits: the
session is created first, followed by one record per student.
"""

import asyncio
from collections.abc import Iterable, Sequence
from datetime import date

from src.rollbook.errors import ValidationError
from src.rollbook.logging import get_logger
from src.rollbook.models import AttendanceSession, DetectionProposal, Student
from src.rollbook.store import AttendanceStore, RosterProvider

log = get_logger(__name__)


class AttendanceDraft:
    def __init__(self, roster: Sequence[Student], default_present: bool = True) -> None:
        if not roster:
            raise ValidationError("roster", "Please select a class with students first.")

        seen: set[str] = set()
        for student in roster:
            if student.id in seen:
                raise ValidationError(
                    "roster", f"Student {student.id!r} appears twice in the roster"
                )
            seen.add(student.id)

        self.roster = list(roster)
        self._status: dict[str, bool] = {s.id: default_present for s in self.roster}

    @classmethod
    async def for_class(
        cls, roster_provider: RosterProvider, class_id: str, default_present: bool = True
    ) -> "AttendanceDraft":
        """Start a draft for every student currently enrolled in `class_id`."""
        if not class_id:
            raise ValidationError("class_id", "is required")
        roster = await roster_provider.list_students(class_id)
        log.debug("attendance_draft_started", class_id=class_id, students=len(roster))
        return cls(roster, default_present)

    def toggle(self, student_id: str, present: bool | None = None) -> None:
        """Set (or flip, when `present` is None) one student's status."""
        if student_id not in self._status:
            raise ValidationError("student", f"Unknown student {student_id!r}")
        self._status[student_id] = (
            not self._status[student_id] if present is None else present
        )

    def apply_proposal(
        self, proposal: DetectionProposal, accept: Iterable[str] = ()
    ) -> int:
        """Overwrite statuses from a proposal; see DetectionProposal.statuses_by_student."""
        applied = 0
        for student_id, present in proposal.statuses_by_student(accept).items():
            if student_id in self._status:
                self._status[student_id] = present
                applied += 1
        return applied

    def statuses(self) -> dict[str, bool]:
        return dict(self._status)

    def present_count(self) -> int:
        return sum(self._status.values())

    async def submit(
        self,
        store: AttendanceStore,
        *,
        class_id: str,
        subject_id: str,
        teacher_id: str,
        on_date: date,
        institution_id: str | None = None,
    ) -> AttendanceSession:
        """Create the session and its records.

        Records are created concurrently once the session exists. A failure
        propagates to the caller unretried; the session may then exist with
        only some of its records.
        """
        for field_name, value in (
            ("class_id", class_id),
            ("subject_id", subject_id),
            ("teacher_id", teacher_id),
        ):
            if not value:
                raise ValidationError(field_name, "is required")

        session = await store.create_session(
            AttendanceSession(
                class_id=class_id,
                subject_id=subject_id,
                teacher_id=teacher_id,
                date=on_date,
                institution_id=institution_id,
            )
        )
        await asyncio.gather(
            *(
                store.create_record(
                    session_id=session.id, student_id=student_id, present=present
                )
                for student_id, present in self._status.items()
            )
        )
        log.info(
            "attendance_submitted",
            session_id=session.id,
            students=len(self._status),
            present=self.present_count(),
        )
        return session
