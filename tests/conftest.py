from __future__ import annotations

import asyncio
from datetime import date

import pytest

from src.rollbook.config import RollbookConfig
from src.rollbook.errors import TransientError
from src.rollbook.models import (
    AcademicYear,
    AttendanceRecord,
    AttendanceSession,
    DayOfWeek,
    Student,
    WeeklyScheduleSlot,
)


@pytest.fixture
def config() -> RollbookConfig:
    return RollbookConfig(
        _env_file=None,
        gemini_api_key="test-key",
        store_read_attempts=3,
        store_read_wait_seconds=0,
    )


class FakeScheduleStore:
    def __init__(self, year: AcademicYear | None = None):
        self.year = year
        self.slots: dict[str, WeeklyScheduleSlot] = {}
        self._next_id = 1
        self.list_failures = 0

    async def current_academic_year(self, institution_id: str):
        return self.year

    async def list_slots(self, *, teacher_id, day_of_week=None, active_only=True):
        if self.list_failures:
            self.list_failures -= 1
            raise TransientError("503 Service Unavailable")
        return [
            s
            for s in self.slots.values()
            if s.teacher_id == teacher_id
            and (day_of_week is None or s.day_of_week == day_of_week)
            and (s.active or not active_only)
        ]

    async def create_slot(self, slot: WeeklyScheduleSlot) -> WeeklyScheduleSlot:
        slot_id = f"slot_{self._next_id}"
        self._next_id += 1
        saved = slot.model_copy(update={"id": slot_id})
        self.slots[slot_id] = saved
        return saved

    async def update_slot(self, slot_id: str, slot: WeeklyScheduleSlot):
        self.slots[slot_id] = slot
        return slot

    async def deactivate_slot(self, slot_id: str):
        slot = self.slots[slot_id].model_copy(update={"active": False})
        self.slots[slot_id] = slot
        return slot


class FakeAttendanceStore:
    def __init__(self, records: list[AttendanceRecord] | None = None):
        self.records: dict[str, AttendanceRecord] = {r.id: r for r in records or []}
        self.sessions: dict[str, AttendanceSession] = {}
        self.update_calls: list[tuple[str, bool]] = []
        self.fail_updates: set[str] = set()
        self.list_calls = 0

    async def list_records(self, session_id: str):
        self.list_calls += 1
        return [r for r in self.records.values() if r.session_id == session_id]

    async def update_record(self, record_id: str, present: bool):
        self.update_calls.append((record_id, present))
        await asyncio.sleep(0)
        if record_id in self.fail_updates:
            raise TransientError("update failed")
        record = self.records[record_id].model_copy(update={"present": present})
        self.records[record_id] = record
        return record

    async def create_session(self, session: AttendanceSession):
        session_id = f"ses_{len(self.sessions) + 1}"
        saved = session.model_copy(update={"id": session_id})
        self.sessions[session_id] = saved
        return saved

    async def create_record(self, *, session_id: str, student_id: str, present: bool):
        record = AttendanceRecord(
            id=f"rec_{len(self.records) + 1}",
            session_id=session_id,
            student_id=student_id,
            present=present,
        )
        self.records[record.id] = record
        return record


class FakeVisionProvider:
    def __init__(self, response: str):
        self.response = response
        self.prompts: list[str] = []

    async def generate(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        self.prompts.append(prompt)
        return self.response


def make_slot(
    start: str,
    end: str,
    *,
    day: str = "MON",
    teacher: str = "t1",
    slot_id: str | None = None,
    year: str | None = "ay_2026",
    active: bool = True,
) -> WeeklyScheduleSlot:
    return WeeklyScheduleSlot(
        id=slot_id,
        teacher_id=teacher,
        class_id="class_10a",
        subject_id="math",
        day_of_week=DayOfWeek.parse(day),
        start_time=start,
        end_time=end,
        academic_year_id=year,
        active=active,
    )


def make_roster(*rolls: str) -> list[Student]:
    return [
        Student(id=f"stu_{roll}", name=f"Student {roll}", roll_number=roll, class_id="class_10a")
        for roll in rolls
    ]


@pytest.fixture
def schedule_store() -> FakeScheduleStore:
    return FakeScheduleStore(AcademicYear(id="ay_2026", label="2025-26", is_current=True))


@pytest.fixture
def target_date() -> date:
    return date(2026, 3, 2)
