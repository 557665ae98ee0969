"""
Timetable conflict detection.

A lesson conflicts with another lesson in the same (weekday, period, shift)
when they share:
- a teacher
- a class, unless the two lessons are on different tracks
- a room

Detection is advisory. Nothing here blocks a write.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional

from ..data.models import Day, LessonSlot, Shift

if TYPE_CHECKING:
    from ..data.store import TimetableStore


class ConflictTag(str, Enum):
    """What two lessons in the same slot collide on."""
    TEACHER = "teacher"
    CLASS = "class"
    ROOM = "room"


@dataclass
class ConflictReport:
    """Conflicts for one lesson."""
    lesson: LessonSlot
    tags: frozenset[ConflictTag]
    clashing_lesson_ids: tuple[str, ...]


def _tracks_overlap(a: LessonSlot, b: LessonSlot) -> bool:
    """Two tracks of one class may run side by side; an empty track overlaps everything."""
    if not a.track or not b.track:
        return True
    return a.track == b.track


def detect_conflicts(
    lesson: LessonSlot,
    lessons: Iterable[LessonSlot],
    excluded_class_ids: Optional[set[str]] = None,
) -> set[ConflictTag]:
    """
    Conflict tags for a candidate lesson against a half-year's lessons.

    Args:
        lesson: New or edited lesson (its own id is skipped in ``lessons``)
        lessons: All lessons of the half-year
        excluded_class_ids: Classes flagged to skip class conflict checks

    Returns:
        Subset of {teacher, class, room}
    """
    excluded = excluded_class_ids or set()
    tags: set[ConflictTag] = set()

    for other in _slot_mates(lesson, lessons):
        if other.teacher_id == lesson.teacher_id:
            tags.add(ConflictTag.TEACHER)
        if (
            other.class_id == lesson.class_id
            and lesson.class_id not in excluded
            and _tracks_overlap(lesson, other)
        ):
            tags.add(ConflictTag.CLASS)
        if lesson.room_id and other.room_id == lesson.room_id:
            tags.add(ConflictTag.ROOM)

    return tags


def _slot_mates(lesson: LessonSlot, lessons: Iterable[LessonSlot]) -> list[LessonSlot]:
    return [
        other for other in lessons
        if other.id != lesson.id
        and other.day == lesson.day
        and other.period == lesson.period
        and other.shift == lesson.shift
    ]


def excluded_classes(store: TimetableStore) -> set[str]:
    return {c.id for c in store.classes if c.exclude_from_conflicts}


def check_lesson(store: TimetableStore, lesson: LessonSlot) -> set[ConflictTag]:
    """Conflict tags for a lesson against the store's timetable."""
    return detect_conflicts(lesson, store.lessons, excluded_classes(store))


def find_all_conflicts(
    store: TimetableStore,
    day: Optional[Day] = None,
    shift: Optional[Shift] = None,
) -> list[ConflictReport]:
    """
    Every conflicting lesson in the timetable, for highlighting in a grid.

    Lessons are bucketed by slot first so each bucket is only compared
    against itself.
    """
    excluded = excluded_classes(store)
    buckets: dict[tuple[Day, int, Shift], list[LessonSlot]] = defaultdict(list)
    for lesson in store.lessons:
        if (day is None or lesson.day == day) and (shift is None or lesson.shift == shift):
            buckets[lesson.slot].append(lesson)

    reports: list[ConflictReport] = []
    for slot in sorted(buckets, key=lambda s: (s[0], s[2].value, s[1])):
        bucket = buckets[slot]
        if len(bucket) < 2:
            continue
        for lesson in bucket:
            tags = detect_conflicts(lesson, bucket, excluded)
            if tags:
                clashing = tuple(
                    other.id for other in bucket
                    if other.id != lesson.id and detect_conflicts(lesson, [other], excluded)
                )
                reports.append(ConflictReport(lesson=lesson, tags=frozenset(tags), clashing_lesson_ids=clashing))
    return reports
