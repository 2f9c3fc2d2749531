"""Calendar projection of recurring slots and one-off dated items."""

from src.rollbook.calendar.projection import (
    CalendarProjection,
    MonthWindow,
    dates_for_weekday,
    project,
)
from src.rollbook.calendar.view import CalendarView

__all__ = [
    "CalendarProjection",
    "CalendarView",
    "MonthWindow",
    "dates_for_weekday",
    "project",
]
