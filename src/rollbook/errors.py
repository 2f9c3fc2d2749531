"""Error hierarchy for the scheduling and attendance core.

Two families live here. The domain errors (conflict, validation, vision,
save) are what callers surface to the user. The store errors classify
collaborator failures so tenacity retry decorators can tell transient
failures (retry the read) from permanent ones (fail fast).

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    async def load_records(session_id: str):
        ...

Writes are never wrapped in a retry decorator.
"""


class RollbookError(Exception):
    """Base exception for all rollbook errors."""

    pass


class ScheduleConflict(RollbookError):
    """Candidate slot overlaps an active slot of the same teacher.

    Blocks the write entirely. `conflicts` holds the overlapping slots.
    """

    def __init__(self, conflicts: list, message: str | None = None) -> None:
        self.conflicts = list(conflicts)
        super().__init__(
            message
            or "This time slot overlaps with another scheduled class on this day."
        )


class MissingActiveAcademicYear(RollbookError):
    """No current academic year could be resolved for the institution."""

    pass


class ValidationError(RollbookError):
    """A required field is missing or invalid.

    Field-scoped so a form can attach the message to the offending input.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class VisionProviderError(RollbookError):
    """Attendance image extraction failed.

    Missing credentials, non-success response, or unparsable payload.
    No partial detections are ever returned alongside this error.
    """

    pass


class SaveFailure(RollbookError):
    """One or more attendance updates failed during commit.

    The engine has already reloaded (or tried to reload) from the store
    by the time this is raised.
    """

    def __init__(self, failed_ids: list[str], message: str | None = None) -> None:
        self.failed_ids = list(failed_ids)
        super().__init__(message or "Failed to save changes")


class StoreError(RollbookError):
    """Base exception for backing-store collaborator failures."""

    pass


class TransientError(StoreError):
    """Temporary store failure that may succeed on retry.

    Examples: network timeouts, 503 Service Unavailable.
    """

    pass


class PermanentError(StoreError):
    """Store failure that won't succeed on retry.

    Examples: document not found, permission denied, rejected payload.
    """

    pass
