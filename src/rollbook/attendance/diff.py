"""Minimal-diff editing of a taken attendance session.

The engine loads a session's records as the baseline snapshot and keeps
a change-set of record id -> new present value. Every toggle is compared
against the baseline, never against the previous local value, so the
change-set stays minimal whatever the toggle history:

    Baseline --toggle(differs)--> Toggled --toggle(matches baseline)--> Baseline

Commit is confirm-then-dispatch. All updates start together and are
awaited together; this is a best-effort batch, not a transaction. On any
failure there is no per-record rollback or retry: local state is thrown
away and reloaded from the store, then SaveFailure is raised. After a
successful commit the engine reloads as well, so displayed state always
comes from the store.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict

from src.rollbook.config import RollbookConfig, get_config
from src.rollbook.errors import SaveFailure, StoreError, ValidationError
from src.rollbook.logging import get_logger
from src.rollbook.models import AttendanceRecord, DetectionProposal
from src.rollbook.store import AttendanceStore
from src.rollbook.utils import Generation, read_with_retry


Confirm = Callable[[int], bool | Awaitable[bool]]


class AttendanceEditState(BaseModel):
    """Serializable snapshot of the engine: baseline plus pending changes."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    baseline: dict[str, bool]  # record id -> present, as loaded
    changes: dict[str, bool]  # record id -> present, only where it differs


class CommitResult(BaseModel):
    status: Literal["noop", "cancelled", "committed"]
    updated: int = 0


def confirmation_message(count: int) -> str:
    return f"Are you sure you want to update attendance for {count} student(s)?"


class AttendanceDiffEngine:
    """Tracks present/absent toggles for one session against its baseline."""

    def __init__(
        self,
        store: AttendanceStore,
        session_id: str,
        config: RollbookConfig | None = None,
    ) -> None:
        self._store = store
        self.session_id = session_id
        self._config = config or get_config()
        self._records: dict[str, AttendanceRecord] = {}
        self._changes: dict[str, bool] = {}
        self._generation = Generation()
        self._log = get_logger(__name__, session_id=session_id)
        self.loaded = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load(self) -> bool:
        """Replace baseline and change-set with the store's current records.

        Returns:
            False if a newer load started meanwhile (this result is dropped).
        """
        token = self._generation.begin()
        records = await read_with_retry(
            self._store.list_records, self.session_id, config=self._config
        )
        if not self._generation.is_current(token):
            self._log.debug("attendance_load_stale", token=token)
            return False

        self._records = {r.id: r for r in records}
        self._changes = {}
        self.loaded = True
        self._log.debug("attendance_loaded", records=len(records))
        return True

    def _discard(self) -> None:
        self._records = {}
        self._changes = {}
        self.loaded = False

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def _baseline_value(self, record_id: str) -> bool:
        record = self._records.get(record_id)
        if record is None:
            raise ValidationError("record", f"Unknown attendance record {record_id!r}")
        return record.present

    def toggle(self, record_id: str, present: bool) -> None:
        """Set the local value of one record.

        Matching the baseline removes the record from the change-set;
        anything else inserts or overwrites it.
        """
        if present == self._baseline_value(record_id):
            self._changes.pop(record_id, None)
        else:
            self._changes[record_id] = present

    def change_set(self) -> dict[str, bool]:
        return dict(self._changes)

    @property
    def has_changes(self) -> bool:
        return bool(self._changes)

    def value_of(self, record_id: str) -> bool:
        return self._changes.get(record_id, self._baseline_value(record_id))

    def records(self) -> list[AttendanceRecord]:
        """Records as currently displayed (baseline with local edits applied)."""
        return [
            r.model_copy(update={"present": self._changes[r.id]})
            if r.id in self._changes
            else r
            for r in self._records.values()
        ]

    def present_count(self) -> int:
        return sum(1 for r in self.records() if r.present)

    @property
    def state(self) -> AttendanceEditState:
        return AttendanceEditState(
            session_id=self.session_id,
            baseline={rid: r.present for rid, r in self._records.items()},
            changes=dict(self._changes),
        )

    def apply_proposal(
        self, proposal: DetectionProposal, accept: Iterable[str] = ()
    ) -> int:
        """Stage statuses from a vision proposal as local toggles.

        Review-flagged entries are only applied when their roll number is in
        `accept`. Nothing is written; the user can still toggle and must
        commit.

        Returns:
            Number of records the proposal touched.
        """
        record_by_student = {r.student_id: r.id for r in self._records.values()}
        applied = 0
        for student_id, present in proposal.statuses_by_student(accept).items():
            record_id = record_by_student.get(student_id)
            if record_id is None:
                self._log.warning(
                    "proposal_student_without_record", student_id=student_id
                )
                continue
            self.toggle(record_id, present)
            applied += 1
        self._log.info(
            "proposal_applied",
            applied=applied,
            pending_review=len(proposal.pending_review()),
            unmatched=len(proposal.unmatched),
        )
        return applied

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    async def commit(self, confirm: Confirm) -> CommitResult:
        """Confirm with the user, then push every change concurrently.

        Args:
            confirm: Called with the number of affected students; returns
                (or resolves to) True to proceed.

        Raises:
            SaveFailure: At least one update failed. Local state has been
                discarded and reloaded from the store.
        """
        changes = dict(self._changes)
        if not changes:
            return CommitResult(status="noop")

        answer = confirm(len(changes))
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            self._log.info("attendance_commit_cancelled")
            return CommitResult(status="cancelled")

        results = await asyncio.gather(
            *(
                self._store.update_record(record_id, present)
                for record_id, present in changes.items()
            ),
            return_exceptions=True,
        )
        errors = {
            record_id: result
            for record_id, result in zip(changes, results)
            if isinstance(result, BaseException)
        }

        if errors:
            failed = list(errors)
            self._log.error(
                "attendance_commit_failed",
                failed=failed,
                attempted=len(changes),
                error=str(next(iter(errors.values()))),
            )
            self._discard()
            try:
                await self.load()
            except StoreError as exc:
                self._log.error("attendance_reload_failed", error=str(exc))
                raise SaveFailure(failed) from exc
            raise SaveFailure(failed) from next(iter(errors.values()))

        self._log.info("attendance_committed", updated=len(changes))
        self._changes = {}
        await self.load()
        return CommitResult(status="committed", updated=len(changes))
