"""Navigable calendar state backed by RecurrenceProjector output."""

import asyncio
from collections.abc import Awaitable, Iterable
from datetime import date

from src.rollbook.calendar.projection import CalendarProjection, MonthWindow, project
from src.rollbook.logging import get_logger
from src.rollbook.models import (
    AgendaItem,
    Assessment,
    CalendarTag,
    LocalEvent,
    WeeklyScheduleSlot,
)
from src.rollbook.store import CalendarSources
from src.rollbook.utils import Generation

log = get_logger(__name__)


class CalendarView:
    """Viewed month, selected date and the projection for them.

    The projection is recomputed whenever the sources or the viewed month
    change; it has no identity of its own.
    """

    def __init__(self, today: date | None = None) -> None:
        today = today or date.today()
        self.selected: date = today
        self.viewed: date = today.replace(day=1)
        self._slots: list[WeeklyScheduleSlot] = []
        self._assessments: list[Assessment] = []
        self._events: list[LocalEvent] = []
        self._generation = Generation()
        self._projection = self._project()

    def _project(self) -> CalendarProjection:
        return project(
            self._slots,
            self._assessments,
            self._events,
            MonthWindow.around(self.viewed),
        )

    @property
    def projection(self) -> CalendarProjection:
        return self._projection

    @property
    def marks(self) -> dict[date, frozenset[CalendarTag]]:
        return self._projection.marks

    def set_sources(
        self,
        slots: Iterable[WeeklyScheduleSlot],
        assessments: Iterable[Assessment] = (),
        events: Iterable[LocalEvent] = (),
    ) -> None:
        self._slots = list(slots)
        self._assessments = list(assessments)
        self._events = list(events)
        self._projection = self._project()

    def show_month(self, day: date) -> None:
        """Move the window so the month of `day` is the viewed month."""
        self.viewed = day.replace(day=1)
        self._projection = self._project()

    def select(self, day: date) -> None:
        self.selected = day
        if day not in self._projection.window:
            self.show_month(day)

    def agenda(self, day: date | None = None) -> list[AgendaItem]:
        return self._projection.agenda_for(day or self.selected)

    async def reload(self, fetch: CalendarSources) -> bool:
        """Fetch fresh sources and republish the projection.

        Returns False when a newer reload started while this one was in
        flight; the stale result is discarded.
        """
        token = self._generation.begin()
        slots, assessments, events = await fetch()
        if not self._generation.is_current(token):
            log.debug(
                "calendar_reload_stale",
                token=token,
                latest=self._generation.value,
            )
            return False
        self.set_sources(slots, assessments, events)
        log.debug(
            "calendar_reloaded",
            slots=len(self._slots),
            assessments=len(self._assessments),
            events=len(self._events),
        )
        return True


async def gather_sources(
    slots: Awaitable[list[WeeklyScheduleSlot]],
    assessments: Awaitable[list[Assessment]],
    events: Awaitable[list[LocalEvent]],
) -> tuple[list[WeeklyScheduleSlot], list[Assessment], list[LocalEvent]]:
    """Await the three source queries together."""
    s, a, e = await asyncio.gather(slots, assessments, events)
    return list(s), list(a), list(e)
