"""Attendance extraction from a photographed roll list or chart.

The model sees the image, the target date, the numeric roll range and a
handful of roster roll numbers as few-shot examples. The full roster is
never sent: the model should read the image, not recall identities. The
roster is used afterwards, locally, to reconcile what the model read.

The response contract is strict. Markdown fences are stripped, then the
payload must validate against VisionPayload; anything else rejects the
whole extraction with VisionProviderError.

Two artifact kinds are recognised:
    ROLL_NUMBER_LIST  - handwritten/printed list of present roll numbers.
                        Roster rolls not listed are inferred absent,
                        except those the model flagged ambiguous, which
                        are unreported like missing chart rows.
    ATTENDANCE_CHART  - grid keyed by date; the target date's column gives
                        each row's status. Roster students with no row are
                        reported as unreported, not guessed.
"""

import re
from collections.abc import Sequence
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.rollbook.config import RollbookConfig, get_config
from src.rollbook.errors import ValidationError, VisionProviderError
from src.rollbook.logging import get_logger
from src.rollbook.models import (
    AttendanceStatus,
    DetectedAttendanceEntry,
    DetectionMode,
    DetectionProposal,
    Student,
)
from src.rollbook.store import VisionProvider

log = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

PROMPT_TEMPLATE = """\
You are an AI assistant helping a teacher take attendance.
Analyze the provided image (attendance chart or list of roll numbers).

CONTEXT:
- Date: {date}
- Roll Number Format: Numeric, typically {roll_min} to {roll_max}.

FEW-SHOT PATTERNS (Examples Only):
{examples}
(Other roll numbers exist. Extract whatever you see.)

TASK:
1. Identify if this is an "ATTENDANCE_CHART" (grid with names/dates) or a "ROLL_NUMBER_LIST" (handwritten numbers).
2. If CHART: Find the column for {date}. Extract status (PRESENT/ABSENT) for every row.
3. If LIST: Extract all roll numbers. Listed numbers are PRESENT.
4. IGNORE names in the image; focus only on extracting Roll Numbers.
5. Put anything you cannot read with certainty into "ambiguous".

OUTPUT FORMAT (JSON ONLY):
{{
  "mode": "ROLL_NUMBER_LIST" | "ATTENDANCE_CHART",
  "detected": [
    {{ "rollNumber": "12", "status": "PRESENT" | "ABSENT", "confidence": 0.95 }}
  ],
  "ambiguous": ["18", "XX"],
  "notes": "Blurry handwriting on bottom left"
}}

RULES:
- Deduplicate roll numbers.
- confidence is a number between 0 and 1.
- Return ONLY JSON. No prose.
"""


# ---------------------------------------------------------------------------
# Response contract
# ---------------------------------------------------------------------------
class VisionDetection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    roll_number: str = Field(alias="rollNumber", min_length=1)
    status: AttendanceStatus = AttendanceStatus.PRESENT
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("roll_number", mode="before")
    @classmethod
    def _roll_as_text(cls, value):
        # Models happily emit 12 instead of "12"
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _status_upper(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class VisionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: DetectionMode
    detected: list[VisionDetection]
    ambiguous: list[str] = []
    notes: str | None = None

    @field_validator("ambiguous", mode="before")
    @classmethod
    def _ambiguous_as_text(cls, value):
        if value is None:
            return []
        if isinstance(value, list):
            return [str(v) for v in value]
        return value


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_payload(text: str) -> VisionPayload:
    """Validate the raw model text against the response contract.

    Raises:
        VisionProviderError: On empty, non-JSON or schema-violating text.
    """
    cleaned = strip_fences(text or "")
    if not cleaned:
        raise VisionProviderError("No response text from the vision model.")
    try:
        return VisionPayload.model_validate_json(cleaned)
    except PydanticValidationError as e:
        log.warning("vision_payload_invalid", errors=e.error_count())
        raise VisionProviderError(
            "The vision model returned an invalid attendance payload."
        ) from e


# ---------------------------------------------------------------------------
# Prompt inputs
# ---------------------------------------------------------------------------
def roll_key(roll: str) -> str:
    """Comparison key for roll numbers: trimmed, numeric rolls without leading zeros."""
    text = str(roll).strip()
    return str(int(text)) if text.isdecimal() else text


def roll_range(
    roster: Sequence[Student], config: RollbookConfig | None = None
) -> tuple[int, int]:
    """Min and max of the roster's numeric roll numbers."""
    config = config or get_config()
    numbers = [int(s.roll_number) for s in roster if s.roll_number.strip().isdecimal()]
    if not numbers:
        return config.default_roll_min, config.default_roll_max
    return min(numbers), max(numbers)


def build_prompt(
    sample: Sequence[Student], numeric_range: tuple[int, int], target_date: date
) -> str:
    examples = "\n".join(f'Roll "{s.roll_number}"' for s in sample) or "(none)"
    return PROMPT_TEMPLATE.format(
        date=target_date.isoformat(),
        roll_min=numeric_range[0],
        roll_max=numeric_range[1],
        examples=examples,
    )


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------
def index_roster(roster: Sequence[Student]) -> dict[str, Student]:
    """Roster keyed by roll_key; two students sharing a key are rejected."""
    by_key: dict[str, Student] = {}
    for student in roster:
        key = roll_key(student.roll_number)
        if key in by_key:
            raise ValidationError(
                "roster",
                f"Students {by_key[key].id!r} and {student.id!r} share roll number "
                f"{student.roll_number!r}",
            )
        by_key[key] = student
    return by_key


def reconcile(
    payload: VisionPayload,
    roster: Sequence[Student],
    target_date: date,
    review_threshold: float,
) -> DetectionProposal:
    """Match the model's detections to the roster and build a proposal."""
    roster_by_key = index_roster(roster)
    ambiguous_keys = {roll_key(raw) for raw in payload.ambiguous if raw.strip()}

    # Deduplicate, keeping the most confident reading of each roll
    best: dict[str, VisionDetection] = {}
    for detection in payload.detected:
        key = roll_key(detection.roll_number)
        if key not in best or detection.confidence > best[key].confidence:
            best[key] = detection

    unmatched: list[str] = []
    for key, detection in best.items():
        if key not in roster_by_key:
            unmatched.append(detection.roll_number.strip())
    for raw in payload.ambiguous:
        raw = raw.strip()
        if raw and raw not in unmatched:
            unmatched.append(raw)

    entries: list[DetectedAttendanceEntry] = []
    unreported: list[str] = []
    is_list = payload.mode is DetectionMode.ROLL_NUMBER_LIST

    for key, student in roster_by_key.items():
        detection = best.get(key)
        if detection is None:
            if is_list and key not in ambiguous_keys:
                entries.append(
                    DetectedAttendanceEntry(
                        roll_number=student.roll_number,
                        status=AttendanceStatus.ABSENT,
                        confidence=1.0,
                        student_id=student.id,
                        inferred=True,
                    )
                )
            else:
                unreported.append(student.id)
            continue

        entries.append(
            DetectedAttendanceEntry(
                roll_number=student.roll_number,
                status=AttendanceStatus.PRESENT if is_list else detection.status,
                confidence=detection.confidence,
                student_id=student.id,
                needs_review=detection.confidence < review_threshold,
            )
        )

    return DetectionProposal(
        mode=payload.mode,
        target_date=target_date,
        entries=entries,
        unmatched=unmatched,
        unreported=unreported,
        notes=payload.notes,
    )


class AttendanceVisionMatcher:
    """Turns an attendance photo into a reviewable DetectionProposal."""

    def __init__(
        self, provider: VisionProvider, config: RollbookConfig | None = None
    ) -> None:
        self._provider = provider
        self._config = config or get_config()

    async def extract(
        self,
        image_bytes: bytes,
        roster: Sequence[Student],
        target_date: date,
        numeric_range: tuple[int, int] | None = None,
        mime_type: str = "image/jpeg",
    ) -> DetectionProposal:
        """Read the image and reconcile it against `roster`.

        Only the first `roster_sample_size` roll numbers reach the prompt.

        Raises:
            ValidationError: Empty roster or image, or two students sharing
                a roll number.
            VisionProviderError: Provider failure or invalid payload.
        """
        if not roster:
            raise ValidationError("roster", "Please select a class with students first.")
        if not image_bytes:
            raise ValidationError("image", "No image captured.")

        index_roster(roster)

        sample = list(roster[: self._config.roster_sample_size])
        numeric_range = numeric_range or roll_range(roster, self._config)
        prompt = build_prompt(sample, numeric_range, target_date)

        text = await self._provider.generate(prompt, image_bytes, mime_type)
        payload = parse_payload(text)
        proposal = reconcile(
            payload, roster, target_date, self._config.review_confidence_threshold
        )

        log.info(
            "vision_extraction_completed",
            mode=proposal.mode.value,
            target_date=target_date.isoformat(),
            entries=len(proposal.entries),
            needs_review=len(proposal.pending_review()),
            unmatched=len(proposal.unmatched),
            unreported=len(proposal.unreported),
        )
        return proposal
