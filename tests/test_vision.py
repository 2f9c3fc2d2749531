from __future__ import annotations

import json

import pytest

from src.rollbook.errors import ValidationError, VisionProviderError
from src.rollbook.models import AttendanceStatus, DetectionMode, Student
from src.rollbook.vision import AttendanceVisionMatcher, parse_payload
from src.rollbook.vision.matcher import roll_key, roll_range, strip_fences
from tests.conftest import FakeVisionProvider, make_roster

IMAGE = b"\xff\xd8\xff\xe0fake-jpeg"


def _response(mode: str, detected: list[dict], **extra) -> str:
    return json.dumps({"mode": mode, "detected": detected, **extra})


def _by_roll(proposal):
    return {e.roll_number: e for e in proposal.entries}


async def test_roll_list_marks_listed_present_and_rest_absent(config, target_date):
    provider = FakeVisionProvider(
        _response(
            "ROLL_NUMBER_LIST",
            [
                {"rollNumber": "1", "confidence": 0.95},
                {"rollNumber": "3", "confidence": 0.9},
                {"rollNumber": "5", "confidence": 0.92},
            ],
        )
    )
    matcher = AttendanceVisionMatcher(provider, config)

    proposal = await matcher.extract(IMAGE, make_roster("1", "2", "3", "4", "5"), target_date)

    entries = _by_roll(proposal)
    assert proposal.mode is DetectionMode.ROLL_NUMBER_LIST
    assert {r for r, e in entries.items() if e.present} == {"1", "3", "5"}
    assert {r for r, e in entries.items() if not e.present} == {"2", "4"}
    assert entries["2"].inferred and entries["2"].confidence == 1.0
    assert not entries["1"].inferred
    assert proposal.unmatched == []
    assert proposal.statuses_by_student() == {
        "stu_1": True,
        "stu_2": False,
        "stu_3": True,
        "stu_4": False,
        "stu_5": True,
    }


async def test_chart_mode_reads_status_and_reports_missing_rows(config, target_date):
    provider = FakeVisionProvider(
        _response(
            "ATTENDANCE_CHART",
            [
                {"rollNumber": "1", "status": "present", "confidence": 0.9},
                {"rollNumber": "2", "status": "ABSENT", "confidence": 0.88},
            ],
            notes="Column for 2026-03-02 found",
        )
    )
    proposal = await AttendanceVisionMatcher(provider, config).extract(
        IMAGE, make_roster("1", "2", "3"), target_date
    )

    entries = _by_roll(proposal)
    assert entries["1"].status is AttendanceStatus.PRESENT
    assert entries["2"].status is AttendanceStatus.ABSENT
    assert "3" not in entries
    assert proposal.unreported == ["stu_3"]
    assert proposal.notes == "Column for 2026-03-02 found"


async def test_low_confidence_entries_need_review(config, target_date):
    provider = FakeVisionProvider(
        _response(
            "ATTENDANCE_CHART",
            [
                {"rollNumber": "1", "status": "ABSENT", "confidence": 0.74},
                {"rollNumber": "2", "status": "ABSENT", "confidence": 0.75},
            ],
        )
    )
    proposal = await AttendanceVisionMatcher(provider, config).extract(
        IMAGE, make_roster("1", "2"), target_date
    )

    assert [e.roll_number for e in proposal.pending_review()] == ["1"]
    assert [e.roll_number for e in proposal.auto_applicable()] == ["2"]
    assert proposal.statuses_by_student() == {"stu_2": False}
    assert proposal.statuses_by_student(accept=["1"]) == {"stu_1": False, "stu_2": False}


async def test_unknown_and_ambiguous_rolls_are_unmatched(config, target_date):
    provider = FakeVisionProvider(
        _response(
            "ROLL_NUMBER_LIST",
            [{"rollNumber": "1", "confidence": 0.9}, {"rollNumber": "77", "confidence": 0.9}],
            ambiguous=["1?", 18],
        )
    )
    proposal = await AttendanceVisionMatcher(provider, config).extract(
        IMAGE, make_roster("1", "2"), target_date
    )

    assert proposal.unmatched == ["77", "1?", "18"]
    assert all(e.student_id for e in proposal.entries)


async def test_ambiguous_roster_roll_is_not_inferred_absent(config, target_date):
    provider = FakeVisionProvider(
        _response(
            "ROLL_NUMBER_LIST",
            [{"rollNumber": "1", "confidence": 0.9}],
            ambiguous=["02"],
        )
    )
    proposal = await AttendanceVisionMatcher(provider, config).extract(
        IMAGE, make_roster("1", "2", "3"), target_date
    )

    assert proposal.unmatched == ["02"]
    assert proposal.unreported == ["stu_2"]
    assert "2" not in _by_roll(proposal)
    assert proposal.statuses_by_student() == {"stu_1": True, "stu_3": False}


@pytest.mark.parametrize("rolls", [("7", "07"), ("4", "4")])
async def test_roster_rolls_sharing_a_key_are_rejected(config, target_date, rolls):
    provider = FakeVisionProvider(_response("ROLL_NUMBER_LIST", []))
    roster = [
        Student(id=f"stu_{n}", name=f"Student {n}", roll_number=roll)
        for n, roll in enumerate(rolls)
    ]

    with pytest.raises(ValidationError) as exc:
        await AttendanceVisionMatcher(provider, config).extract(IMAGE, roster, target_date)

    assert exc.value.field == "roster"
    assert provider.prompts == []


async def test_leading_zeros_and_numeric_rolls_match_roster(config, target_date):
    provider = FakeVisionProvider(
        _response(
            "ROLL_NUMBER_LIST",
            [
                {"rollNumber": "07", "confidence": 0.6},
                {"rollNumber": 7, "confidence": 0.97},
                {"rollNumber": " 12 ", "confidence": 0.9},
            ],
        )
    )
    proposal = await AttendanceVisionMatcher(provider, config).extract(
        IMAGE, make_roster("7", "12"), target_date
    )

    entries = _by_roll(proposal)
    assert entries["7"].present and entries["7"].confidence == 0.97
    assert not entries["7"].needs_review
    assert entries["12"].present
    assert proposal.unmatched == []


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "I could not read this image, sorry.",
        '{"mode": "ROLL_NUMBER_LIST"}',
        '{"mode": "SEATING_PLAN", "detected": []}',
        '{"mode": "ROLL_NUMBER_LIST", "detected": [{"rollNumber": "1", "confidence": 1.4}]}',
        '{"mode": "ROLL_NUMBER_LIST", "detected": [{"rollNumber": "1"}]}',
        '{"mode": "ATTENDANCE_CHART", "detected": [{"rollNumber": "1", "status": "LATE", "confidence": 0.9}]}',
    ],
)
async def test_invalid_payload_rejects_whole_extraction(config, target_date, raw):
    matcher = AttendanceVisionMatcher(FakeVisionProvider(raw), config)
    with pytest.raises(VisionProviderError):
        await matcher.extract(IMAGE, make_roster("1"), target_date)


def test_markdown_fences_are_stripped():
    raw = '```json\n{"mode": "ROLL_NUMBER_LIST", "detected": [{"rollNumber": "4", "confidence": 0.8}]}\n```'
    assert strip_fences(raw).startswith("{")
    payload = parse_payload(raw)
    assert payload.detected[0].roll_number == "4"
    assert payload.ambiguous == []


async def test_prompt_carries_only_a_roster_sample(config, target_date):
    provider = FakeVisionProvider(_response("ROLL_NUMBER_LIST", []))
    roster = make_roster(*[str(n) for n in range(1, 11)])

    await AttendanceVisionMatcher(provider, config).extract(IMAGE, roster, target_date)

    prompt = provider.prompts[0]
    assert 'Roll "1"' in prompt and 'Roll "3"' in prompt
    assert 'Roll "4"' not in prompt
    assert "1 to 10" in prompt
    assert "2026-03-02" in prompt
    assert "Student 5" not in prompt


async def test_explicit_range_overrides_roster(config, target_date):
    provider = FakeVisionProvider(_response("ROLL_NUMBER_LIST", []))
    await AttendanceVisionMatcher(provider, config).extract(
        IMAGE, make_roster("1", "2"), target_date, numeric_range=(1, 60)
    )
    assert "1 to 60" in provider.prompts[0]


async def test_empty_roster_or_image_is_rejected(config, target_date):
    provider = FakeVisionProvider(_response("ROLL_NUMBER_LIST", []))
    matcher = AttendanceVisionMatcher(provider, config)

    with pytest.raises(ValidationError) as exc:
        await matcher.extract(IMAGE, [], target_date)
    assert exc.value.field == "roster"

    with pytest.raises(ValidationError) as exc:
        await matcher.extract(b"", make_roster("1"), target_date)
    assert exc.value.field == "image"
    assert provider.prompts == []


def test_roll_helpers(config):
    assert roll_key(" 007 ") == "7"
    assert roll_key("A12") == "A12"
    assert roll_range(make_roster("3", "A1", "21"), config) == (3, 21)
    assert roll_range(make_roster("A1"), config) == (1, 100)
