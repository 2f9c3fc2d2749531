"""Read an attendance photo with the vision model and print the proposal.

Standalone CLI script around AttendanceVisionMatcher. Sends the image with
a few roster roll numbers to Gemini, reconciles the answer against the full
roster and prints the proposal as JSON or a human-readable table. Nothing
is written anywhere: the proposal is for review only.

Run with: python scripts/scan_attendance.py photo.jpg --roster data/roster-10A.json
Date:     python scripts/scan_attendance.py photo.jpg --roster r.json --date 2026-03-02
Table:    python scripts/scan_attendance.py photo.jpg --roster r.json --table

The roster file is a JSON list of students:
    [{"id": "stu_1", "name": "Asha Rao", "roll_number": "1"}, ...]

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import mimetypes
import os
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.rollbook.config import get_config  # noqa: E402
from src.rollbook.logging import setup_logging  # noqa: E402
from src.rollbook.models import DetectionProposal, Student  # noqa: E402
from src.rollbook.vision import (  # noqa: E402
    AttendanceVisionMatcher,
    GeminiVisionProvider,
)


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Extract attendance from a photo of a roll list or chart.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("image", type=str, help="Path to the attendance photo.")
    parser.add_argument(
        "--roster",
        type=str,
        required=True,
        help="JSON file with the class roster (list of students).",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=date.today(),
        help="Attendance date, YYYY-MM-DD (default: today).",
    )
    parser.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable table instead of JSON.",
    )
    return parser.parse_args()


def _load_roster(path: str) -> list[Student]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [Student.model_validate(item) for item in data]


def _format_table(proposal: DetectionProposal, roster: list[Student]) -> str:
    """Format a proposal as a table.

    Columns: Roll | Student | Status | Confidence | Note
    """
    names = {s.id: s.name for s in roster}
    headers = ["Roll", "Student", "Status", "Confidence", "Note"]

    rows = []
    for e in proposal.entries:
        note = "REVIEW" if e.needs_review else ("inferred" if e.inferred else "")
        rows.append(
            [
                e.roll_number,
                names.get(e.student_id or "", "-"),
                e.status.value,
                f"{e.confidence:.2f}",
                note,
            ]
        )

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [
        " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows
    ]

    lines = [f"Mode: {proposal.mode.value}  Date: {proposal.target_date}"]
    lines += [header_line, separator, *row_lines]
    if proposal.unmatched:
        lines.append(f"Could not match: {', '.join(proposal.unmatched)}")
    if proposal.unreported:
        missing = ", ".join(names.get(sid, sid) for sid in proposal.unreported)
        lines.append(f"Not on the sheet: {missing}")
    if proposal.notes:
        lines.append(f"Notes: {proposal.notes}")
    return "\n".join(lines)


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging()

    image_path = Path(args.image)
    roster = _load_roster(args.roster)
    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"

    _log(f"scan_attendance: {image_path.name}, {len(roster)} students, {args.date}")

    matcher = AttendanceVisionMatcher(GeminiVisionProvider(config), config)
    proposal = await matcher.extract(
        image_path.read_bytes(), roster, args.date, mime_type=mime_type
    )

    if args.table:
        print(_format_table(proposal, roster))
    else:
        print(json.dumps(proposal.model_dump(mode="json"), indent=2))

    _log("scan_attendance: done")


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
