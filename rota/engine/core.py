"""Helpers shared by the engine modules."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from ..data.models import Day, LessonSlot, day_name, weekday_of
from ..errors import NoSchoolDayError, RotaError

if TYPE_CHECKING:
    from ..data.store import TimetableStore


def school_day(on: date) -> Day:
    """Weekday of a date, refusing weekends."""
    day = weekday_of(on)
    if day is None:
        raise NoSchoolDayError(f"{on.isoformat()} is a weekend; there are no lessons")
    return day


def lesson_on(store: TimetableStore, lesson_id: str, on: date) -> LessonSlot:
    """
    Resolve a lesson for a specific date.

    Raises:
        MissingReferenceError: Lesson not in the store's half-year
        NoSchoolDayError: Date is a weekend
        RotaError: Lesson does not run on that date's weekday
    """
    lesson = store.require_lesson(lesson_id)
    day = school_day(on)
    if lesson.day != day:
        raise RotaError(
            f"Lesson '{lesson_id}' runs on {day_name(lesson.day)}, "
            f"but {on.isoformat()} is a {day_name(day)}"
        )
    return lesson
