"""Weekly schedule slots: conflict gate, gated writes and lookups."""

from src.rollbook.scheduling.conflicts import find_conflicts, has_conflict
from src.rollbook.scheduling.lookup import active_slots_at, next_slot
from src.rollbook.scheduling.service import ScheduleService, validate_slot

__all__ = [
    "ScheduleService",
    "active_slots_at",
    "find_conflicts",
    "has_conflict",
    "next_slot",
    "validate_slot",
]
