"""
Notification text for substitutions.

Only formatting lives here. Sending the text (chat bot, e-mail) is up to
the caller; ``Teacher.notify_address`` holds where to send it.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from ..data.models import LessonSlot, Substitution

if TYPE_CHECKING:
    from ..data.store import TimetableStore

NO_SUBSTITUTIONS = "No substitutions for this date."


def _date_label(on: date) -> str:
    return on.strftime("%d.%m.%Y")


def _name(entity, fallback: Optional[str]) -> str:
    if entity is not None:
        return entity.name
    return fallback or "?"


def _room_line(store: TimetableStore, lesson: LessonSlot, substitution: Substitution) -> str:
    room_id = substitution.replacement_room_id or lesson.room_id
    line = f"Room {store.room_label(room_id) or '-'}"
    if substitution.replacement_room_id and substitution.replacement_room_id != lesson.room_id:
        line += " (room change)"
    return line


def format_substitution(store: TimetableStore, substitution: Substitution) -> str:
    """
    Describe one substitution: period, class, subject, who replaced whom, room.

    Raises:
        MissingReferenceError: The substitution's lesson is not in the store
    """
    lesson = store.require_lesson(substitution.lesson_id)
    cls = store.get_class(lesson.class_id)
    subject = store.get_subject(lesson.subject_id)
    original = store.get_teacher(substitution.original_teacher_id)

    lines = [
        f"Period {lesson.period} | {_name(cls, lesson.class_id)} | {_name(subject, lesson.subject_id)}",
        f"Replaced: {_name(original, substitution.original_teacher_id)}",
    ]

    if substitution.is_cancelled:
        lines.append("Cancelled")
    elif substitution.is_conducted:
        lines.append("Conducted as planned")
    else:
        replacement = store.get_teacher(substitution.replacement_teacher_id)
        name = _name(replacement, substitution.replacement_teacher_id)
        if substitution.merger:
            lines.append(f"Merged classes: {name}")
        elif substitution.override_class_id:
            partner = store.get_class(substitution.override_class_id)
            lines.append(f"Lesson swap: {_name(partner, substitution.override_class_id)}")
        else:
            lines.append(f"Cover: {name}")
        lines.append(_room_line(store, lesson, substitution))

    return "\n".join(lines)


def _lesson_order(store: TimetableStore, substitution: Substitution) -> tuple[str, int]:
    lesson = store.get_lesson(substitution.lesson_id)
    if lesson is None:
        return ("", 0)
    return (lesson.shift.value, lesson.period)


def format_day_summary(store: TimetableStore, on: date) -> str:
    """All teacher substitutions for a date, by period. Conducted and cancelled lessons are left out."""
    subs = [
        s for s in store.substitutions_on(on)
        if s.replacement_teacher_id is not None and store.get_lesson(s.lesson_id) is not None
    ]
    header = f"SUBSTITUTIONS FOR {_date_label(on)}"
    if not subs:
        return f"{header}\n\n{NO_SUBSTITUTIONS}"

    subs.sort(key=lambda s: _lesson_order(store, s))
    blocks = [format_substitution(store, s) for s in subs]
    return header + "\n\n" + "\n\n".join(blocks)


def format_teacher_digest(store: TimetableStore, teacher_id: str, on: date) -> Optional[str]:
    """
    Every lesson a teacher covers on a date, for sending to that teacher.

    Returns:
        The message, or None when the teacher has nothing to cover
    """
    teacher = store.require_teacher(teacher_id)
    subs = [
        s for s in store.substitutions_on(on)
        if s.replacement_teacher_id == teacher.id and store.get_lesson(s.lesson_id) is not None
    ]
    if not subs:
        return None
    subs.sort(key=lambda s: _lesson_order(store, s))

    blocks: list[str] = []
    for sub in subs:
        lesson = store.require_lesson(sub.lesson_id)
        cls = store.get_class(sub.override_class_id or lesson.class_id)
        subject = store.get_subject(sub.override_subject_id or lesson.subject_id)
        blocks.append("\n".join([
            f"Period {lesson.period} | {_name(cls, lesson.class_id)}",
            _name(subject, lesson.subject_id),
            _room_line(store, lesson, sub),
        ]))

    return f"Your substitutions for {_date_label(on)}, {teacher.name}\n\n" + "\n\n".join(blocks)
