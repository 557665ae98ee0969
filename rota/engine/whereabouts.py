"""Where is a teacher right now."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..data.models import weekday_of
from .clock import bells_for_day

if TYPE_CHECKING:
    from ..data.store import TimetableStore


class Whereabouts(str, Enum):
    NO_SCHOOL = "no_school"
    ABSENT = "absent"
    BETWEEN_LESSONS = "between_lessons"
    FREE_PERIOD = "free_period"
    TEACHING = "teaching"


@dataclass
class TeachingItem:
    """One class the teacher is with at the moment."""
    lesson_id: str
    class_name: str
    subject_name: str
    room: Optional[str]
    track: Optional[str] = None
    is_substitution: bool = False
    covering_for: Optional[str] = None


@dataclass
class TeacherLocation:
    teacher_id: str
    status: Whereabouts
    reason: Optional[str] = None
    items: list[TeachingItem] = field(default_factory=list)


def locate_teacher(store: TimetableStore, teacher_id: str, now: datetime) -> TeacherLocation:
    """
    Current whereabouts of a teacher.

    Own lessons count unless the day's substitution hands them to someone
    else; lessons the teacher covers for others are added. Rooms reflect
    any replacement room on the substitution.
    """
    teacher = store.require_teacher(teacher_id)
    on = now.date()
    day = weekday_of(on)
    if day is None:
        return TeacherLocation(teacher_id=teacher.id, status=Whereabouts.NO_SCHOOL)
    if teacher.is_absent(on):
        return TeacherLocation(teacher_id=teacher.id, status=Whereabouts.ABSENT, reason=teacher.absence_reason(on))

    minutes = now.hour * 60 + now.minute
    ringing = [
        (b.shift, b.period) for b in bells_for_day(store.bell_schedule, day)
        if b.start_minutes <= minutes < b.end_minutes
    ]
    if not ringing:
        return TeacherLocation(teacher_id=teacher.id, status=Whereabouts.BETWEEN_LESSONS)

    def item(lesson, sub) -> TeachingItem:
        cls = store.get_class(sub.override_class_id if sub and sub.override_class_id else lesson.class_id)
        subject = store.get_subject(sub.override_subject_id if sub and sub.override_subject_id else lesson.subject_id)
        covering = None
        if sub and sub.original_teacher_id != teacher.id:
            original = store.get_teacher(sub.original_teacher_id)
            covering = original.name if original else sub.original_teacher_id
        return TeachingItem(
            lesson_id=lesson.id,
            class_name=cls.name if cls else lesson.class_id,
            subject_name=subject.name if subject else lesson.subject_id,
            room=store.room_label((sub.replacement_room_id if sub else None) or lesson.room_id),
            track=lesson.track,
            is_substitution=sub is not None and sub.replacement_teacher_id == teacher.id,
            covering_for=covering,
        )

    items: list[TeachingItem] = []
    for lesson in store.lessons:
        if lesson.day != day or (lesson.shift, lesson.period) not in ringing:
            continue
        sub = store.get_substitution(on, lesson.id)
        if lesson.teacher_id == teacher.id:
            if sub is None or sub.replacement_teacher_id == teacher.id or sub.is_conducted:
                items.append(item(lesson, sub if sub and not sub.is_conducted else None))
        elif sub is not None and sub.replacement_teacher_id == teacher.id:
            items.append(item(lesson, sub))

    if not items:
        return TeacherLocation(teacher_id=teacher.id, status=Whereabouts.FREE_PERIOD)
    return TeacherLocation(teacher_id=teacher.id, status=Whereabouts.TEACHING, items=items)
