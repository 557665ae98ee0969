"""
Lesson swaps and class mergers.

A swap exchanges the class and subject of two lessons taught by the same
teacher on the same day. Both lessons get a substitution naming that
teacher, each carrying the other lesson's class and subject as overrides.
Either both records are written or neither is.

A merger hands an uncovered lesson to the teacher of another class in the
same slot, combining the two classes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Optional

from ..data.models import LessonSlot, Substitution, TeacherReplacement
from ..errors import MissingReferenceError, RotaError, SwapRejectedError
from .core import lesson_on

if TYPE_CHECKING:
    from ..data.store import TimetableStore

logger = logging.getLogger(__name__)


def swap_targets(store: TimetableStore, lesson_id: str) -> list[LessonSlot]:
    """Other lessons of the same teacher on the same weekday, by period."""
    source = store.require_lesson(lesson_id)
    return sorted(
        (
            l for l in store.teacher_lessons(source.teacher_id, day=source.day)
            if l.id != source.id
        ),
        key=lambda l: (l.shift.value, l.period),
    )


def _swap_rooms(
    source: LessonSlot,
    target: LessonSlot,
    keep_own_rooms: bool,
    room_override: Optional[str],
) -> tuple[Optional[str], Optional[str]]:
    """Effective rooms for (source, target) after the swap."""
    if room_override:
        return room_override, (target.room_id if keep_own_rooms else source.room_id)
    if keep_own_rooms:
        return source.room_id, target.room_id
    return target.room_id, source.room_id


def plan_swap(
    store: TimetableStore,
    source_id: str,
    target_id: str,
    on: date,
    keep_own_rooms: bool = False,
    room_override: Optional[str] = None,
) -> tuple[Substitution, Substitution]:
    """
    Plan the two substitutions that swap two lessons' content.

    Args:
        store: Timetable store for the date's half-year
        source_id: Uncovered lesson
        target_id: Another lesson of the same teacher that day
        on: Date of the swap
        keep_own_rooms: Leave rooms where they are and move only the content
        room_override: Manual room for the source lesson; wins over the policy

    Returns:
        (source substitution, target substitution)

    Raises:
        SwapRejectedError: Either lesson is missing or the pair cannot swap
    """
    try:
        source = lesson_on(store, source_id, on)
        target = lesson_on(store, target_id, on)
        if room_override:
            store.require_room(room_override)
    except RotaError as e:
        raise SwapRejectedError(f"Swap rejected: {e}") from e

    if source.id == target.id:
        raise SwapRejectedError("Swap rejected: a lesson cannot be swapped with itself")
    if source.teacher_id != target.teacher_id:
        raise SwapRejectedError(
            f"Swap rejected: lessons '{source.id}' and '{target.id}' have different teachers"
        )

    source_room, target_room = _swap_rooms(source, target, keep_own_rooms, room_override)

    def overlay(lesson: LessonSlot, partner: LessonSlot, room: Optional[str]) -> Substitution:
        existing = store.get_substitution(on, lesson.id)
        kept_id = {"id": existing.id} if existing else {}
        return Substitution(
            **kept_id,
            date=on,
            lesson_id=lesson.id,
            original_teacher_id=lesson.teacher_id,
            replacement=TeacherReplacement(teacher_id=lesson.teacher_id),
            replacement_room_id=room if room != lesson.room_id else None,
            override_class_id=partner.class_id,
            override_subject_id=partner.subject_id,
        )

    return overlay(source, target, source_room), overlay(target, source, target_room)


def apply_swap(
    store: TimetableStore,
    source_id: str,
    target_id: str,
    on: date,
    keep_own_rooms: bool = False,
    room_override: Optional[str] = None,
) -> TimetableStore:
    """Plan a swap and write both substitutions in one step."""
    pair = plan_swap(store, source_id, target_id, on, keep_own_rooms, room_override)
    logger.info("Swapped lessons %s and %s on %s", source_id, target_id, on)
    return store.replace_substitutions(list(pair))


# =============================================================================
# Class merger
# =============================================================================

@dataclass
class MergeOption:
    """A lesson of another class running in the same slot."""
    lesson: LessonSlot
    class_name: str
    teacher_name: str
    subject_name: str


def merge_options(store: TimetableStore, lesson_id: str, on: date) -> list[MergeOption]:
    """Lessons of other classes in the same (weekday, period, shift)."""
    lesson = lesson_on(store, lesson_id, on)
    options: list[MergeOption] = []
    for other in store.lessons_in_slot(*lesson.slot):
        if other.class_id == lesson.class_id:
            continue
        cls = store.get_class(other.class_id)
        teacher = store.get_teacher(other.teacher_id)
        subject = store.get_subject(other.subject_id)
        if cls is None or teacher is None:
            continue
        options.append(MergeOption(
            lesson=other,
            class_name=cls.name,
            teacher_name=teacher.name,
            subject_name=subject.name if subject else other.subject_id,
        ))
    options.sort(key=lambda o: (o.class_name, o.teacher_name))
    return options


def merge_into(
    store: TimetableStore,
    lesson_id: str,
    on: date,
    target_lesson_id: str,
    absence_reason: Optional[str] = None,
) -> TimetableStore:
    """
    Combine an uncovered lesson with another class's lesson in the same slot.

    The substitution names the target lesson's teacher, class, subject and room.
    """
    lesson = lesson_on(store, lesson_id, on)
    target = store.get_lesson(target_lesson_id)
    if target is None or target.slot != lesson.slot or target.class_id == lesson.class_id:
        raise MissingReferenceError(
            "merge lesson", target_lesson_id, f"no other class has it in period {lesson.period}"
        )
    substitution = Substitution(
        date=on,
        lesson_id=lesson.id,
        original_teacher_id=lesson.teacher_id,
        replacement=TeacherReplacement(teacher_id=target.teacher_id),
        replacement_room_id=target.room_id,
        absence_reason=absence_reason,
        merger=True,
        override_class_id=target.class_id,
        override_subject_id=target.subject_id,
    )
    logger.info("Merged lesson %s into %s on %s", lesson.id, target.id, on)
    return store.upsert_substitution(substitution)
