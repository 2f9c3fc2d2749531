from __future__ import annotations

import pytest

from src.rollbook.attendance import AttendanceDraft
from src.rollbook.errors import ValidationError
from src.rollbook.models import (
    AttendanceStatus,
    DetectedAttendanceEntry,
    DetectionMode,
    DetectionProposal,
)
from tests.conftest import FakeAttendanceStore, make_roster


def test_draft_starts_with_everyone_present():
    draft = AttendanceDraft(make_roster("1", "2", "3"))
    assert draft.statuses() == {"stu_1": True, "stu_2": True, "stu_3": True}
    assert draft.present_count() == 3


def test_empty_roster_is_rejected():
    with pytest.raises(ValidationError) as exc:
        AttendanceDraft([])
    assert exc.value.field == "roster"


def test_duplicate_student_is_rejected():
    roster = make_roster("1", "2") + make_roster("1")
    with pytest.raises(ValidationError):
        AttendanceDraft(roster)


def test_toggle_flips_or_sets():
    draft = AttendanceDraft(make_roster("1", "2"))
    draft.toggle("stu_1")
    assert draft.statuses()["stu_1"] is False
    draft.toggle("stu_1")
    assert draft.statuses()["stu_1"] is True
    draft.toggle("stu_2", present=False)
    draft.toggle("stu_2", present=False)
    assert draft.statuses()["stu_2"] is False

    with pytest.raises(ValidationError):
        draft.toggle("stu_99")


def test_apply_proposal_overwrites_matched_students(target_date):
    draft = AttendanceDraft(make_roster("1", "2", "3"))
    proposal = DetectionProposal(
        mode=DetectionMode.ROLL_NUMBER_LIST,
        target_date=target_date,
        entries=[
            DetectedAttendanceEntry(
                roll_number="2",
                status=AttendanceStatus.ABSENT,
                confidence=1.0,
                student_id="stu_2",
                inferred=True,
            ),
            DetectedAttendanceEntry(
                roll_number="3",
                status=AttendanceStatus.ABSENT,
                confidence=0.5,
                student_id="stu_3",
                needs_review=True,
            ),
            DetectedAttendanceEntry(roll_number="42", status=AttendanceStatus.PRESENT, confidence=0.9),
        ],
        unmatched=["42"],
    )

    assert draft.apply_proposal(proposal) == 1
    assert draft.statuses() == {"stu_1": True, "stu_2": False, "stu_3": True}


async def test_submit_creates_session_then_one_record_per_student(target_date):
    store = FakeAttendanceStore()
    draft = AttendanceDraft(make_roster("1", "2", "3"))
    draft.toggle("stu_2")

    session = await draft.submit(
        store, class_id="class_10a", subject_id="math", teacher_id="t1", on_date=target_date
    )

    assert session.id == "ses_1"
    assert store.sessions["ses_1"].date == target_date
    by_student = {r.student_id: r for r in store.records.values()}
    assert {sid: r.present for sid, r in by_student.items()} == {
        "stu_1": True,
        "stu_2": False,
        "stu_3": True,
    }
    assert all(r.session_id == "ses_1" for r in by_student.values())


async def test_submit_requires_subject(target_date):
    store = FakeAttendanceStore()
    draft = AttendanceDraft(make_roster("1"))
    with pytest.raises(ValidationError) as exc:
        await draft.submit(
            store, class_id="class_10a", subject_id="", teacher_id="t1", on_date=target_date
        )
    assert exc.value.field == "subject_id"
    assert store.sessions == {}


async def test_for_class_loads_roster_from_provider():
    class Roster:
        async def list_students(self, class_id):
            return make_roster("1", "2") if class_id == "class_10a" else []

    draft = await AttendanceDraft.for_class(Roster(), "class_10a")
    assert draft.statuses() == {"stu_1": True, "stu_2": True}

    with pytest.raises(ValidationError) as exc:
        await AttendanceDraft.for_class(Roster(), "class_9b")
    assert exc.value.field == "roster"
