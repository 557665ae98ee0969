"""
Advisory checks.

Nothing here blocks a write. Each check returns ``Advisory`` objects for a
person to review; the record is saved either way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..data.models import ClassGroup, Day, Room, RoomType, Subject, Teacher, day_name

if TYPE_CHECKING:
    from ..data.store import TimetableStore

MIN_DAILY_LESSONS = 4


@dataclass(frozen=True)
class Advisory:
    """A warning about questionable but permitted data."""
    code: str
    message: str
    subject: Optional[str] = None

    def __str__(self) -> str:
        if self.subject:
            return f"{self.subject}: {self.message}"
        return self.message


def room_advisories(cls: Optional[ClassGroup], subject: Optional[Subject], room: Optional[Room]) -> list[Advisory]:
    """
    Fit between a class, its subject and a room.

    - room has fewer seats than the class has students
    - room type differs from the subject's required type (unless the
      subject takes any room or a general classroom)
    """
    if room is None:
        return []
    advisories: list[Advisory] = []

    if cls is not None and room.capacity < cls.student_count:
        advisories.append(Advisory(
            code="room_capacity",
            message=f"{room.name} seats {room.capacity}, class {cls.name} has {cls.student_count} students",
            subject=cls.name,
        ))

    if subject is not None:
        required = subject.required_room_type
        if required not in (RoomType.ANY, RoomType.GENERAL) and room.type != required:
            advisories.append(Advisory(
                code="room_type",
                message=f"{subject.name} needs a {required.value} room, {room.name} is {room.type.value}",
                subject=subject.name,
            ))

    return advisories


def teacher_advisories(teacher: Teacher) -> list[Advisory]:
    advisories: list[Advisory] = []
    if not teacher.shifts:
        advisories.append(Advisory(
            code="no_shift",
            message="not a member of any shift; duty and candidate lists may skip them",
            subject=teacher.name,
        ))
    return advisories


def day_problems(store: TimetableStore, day: Day, limit: Optional[int] = None) -> list[Advisory]:
    """
    Problems in one weekday's timetable, per class.

    - no lessons, or fewer than four
    - the class's teacher teaches another lesson in the same slot
    - the room is too small for the class

    Duplicates are collapsed; ``limit`` caps the list.
    """
    problems: list[Advisory] = []
    seen: set[tuple[str, str]] = set()

    def add(code: str, class_name: str, message: str) -> None:
        if (class_name, message) in seen:
            return
        seen.add((class_name, message))
        problems.append(Advisory(code=code, message=message, subject=class_name))

    for cls in store.classes:
        lessons = [l for l in store.lessons if l.class_id == cls.id and l.day == day]
        if not lessons:
            add("no_lessons", cls.name, f"no lessons on {day_name(day)}")
        elif len(lessons) < MIN_DAILY_LESSONS:
            add("few_lessons", cls.name, f"only {len(lessons)} lessons")

        for lesson in lessons:
            double_booked = any(
                other.id != lesson.id and other.teacher_id == lesson.teacher_id
                for other in store.lessons_in_slot(*lesson.slot)
            )
            if double_booked:
                add("teacher_conflict", cls.name, f"teacher conflict in period {lesson.period}")
            if lesson.room_id:
                room = store.get_room(lesson.room_id)
                if room is not None and room.capacity < cls.student_count:
                    add("cramped_room", cls.name, f"{room.name} too small in period {lesson.period}")

    return problems[:limit] if limit is not None else problems
