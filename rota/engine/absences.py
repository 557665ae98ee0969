"""
Teacher absences for a date.

Marking a teacher absent only edits the teacher record. The lessons that
then need cover are derived on demand by ``affected_lessons``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Optional

from ..data.models import DEFAULT_ABSENCE_REASON, LessonSlot
from .core import school_day

if TYPE_CHECKING:
    from ..data.store import TimetableStore

logger = logging.getLogger(__name__)


def mark_absent(
    store: TimetableStore,
    teacher_id: str,
    on: date,
    reason: str = DEFAULT_ABSENCE_REASON,
) -> TimetableStore:
    """Add a date to a teacher's unavailable dates, recording the reason."""
    teacher = store.require_teacher(teacher_id)
    dates = teacher.unavailable_dates if on in teacher.unavailable_dates else [*teacher.unavailable_dates, on]
    updated = teacher.model_copy(update={
        "unavailable_dates": dates,
        "absence_reasons": {**teacher.absence_reasons, on: reason},
    })
    logger.info("Marked %s absent on %s (%s)", teacher.name, on, reason)
    return store.upsert_teacher(updated)


def clear_absence(store: TimetableStore, teacher_id: str, on: date) -> TimetableStore:
    """Remove a date from a teacher's unavailable dates. Substitutions are kept."""
    teacher = store.require_teacher(teacher_id)
    reasons = dict(teacher.absence_reasons)
    reasons.pop(on, None)
    updated = teacher.model_copy(update={
        "unavailable_dates": [d for d in teacher.unavailable_dates if d != on],
        "absence_reasons": reasons,
    })
    return store.upsert_teacher(updated)


def affected_lessons(store: TimetableStore, on: date) -> tuple[list[LessonSlot], list[LessonSlot]]:
    """
    Lessons needing attention on a date.

    Covers every lesson of a teacher absent that day plus any lesson that
    already has a substitution for the date, ordered by period.

    Returns:
        (pending, resolved): resolved lessons have a substitution record
    """
    day = school_day(on)
    absent_ids = {t.id for t in store.teachers if t.is_absent(on)}
    covered_ids = {s.lesson_id for s in store.substitutions_on(on)}

    lessons = [
        l for l in store.lessons
        if l.day == day and (l.teacher_id in absent_ids or l.id in covered_ids)
    ]
    lessons.sort(key=lambda l: (l.period, l.shift.value))

    pending = [l for l in lessons if l.id not in covered_ids]
    resolved = [l for l in lessons if l.id in covered_ids]
    return pending, resolved


@dataclass
class AbsenteeEntry:
    """A teacher missing all or part of a day."""
    teacher_id: str
    name: str
    full_day: bool
    reason: Optional[str] = None
    periods: list[int] = field(default_factory=list)

    def describe(self) -> str:
        if self.full_day:
            return f"{self.name}: absent ({self.reason or DEFAULT_ABSENCE_REASON})"
        periods = ", ".join(str(p) for p in self.periods)
        return f"{self.name}: period {periods} ({self.reason or 'absent'})"


def absence_overview(store: TimetableStore, on: date) -> list[AbsenteeEntry]:
    """
    Everyone missing lessons on a date, sorted by name.

    Full-day absentees come from the teacher records. Partial absentees are
    the original teachers of the day's substitutions handed to someone else
    (conducted lessons do not count).
    """
    entries: dict[str, AbsenteeEntry] = {}
    for teacher in store.teachers:
        if teacher.is_absent(on):
            entries[teacher.id] = AbsenteeEntry(
                teacher_id=teacher.id,
                name=teacher.name,
                full_day=True,
                reason=teacher.absence_reason(on),
            )

    partial: dict[str, list[tuple[int, Optional[str]]]] = defaultdict(list)
    for sub in store.substitutions_on(on):
        if sub.is_conducted or sub.replacement_teacher_id == sub.original_teacher_id:
            continue
        if sub.original_teacher_id in entries:
            continue
        lesson = store.get_lesson(sub.lesson_id)
        if lesson is None or store.get_teacher(sub.original_teacher_id) is None:
            continue
        partial[sub.original_teacher_id].append((lesson.period, sub.absence_reason))

    for teacher_id, lessons in partial.items():
        lessons.sort(key=lambda pair: pair[0])
        reasons = [r for _, r in lessons if r]
        entries[teacher_id] = AbsenteeEntry(
            teacher_id=teacher_id,
            name=store.require_teacher(teacher_id).name,
            full_day=False,
            reason=reasons[0] if reasons else None,
            periods=[p for p, _ in lessons],
        )

    return sorted(entries.values(), key=lambda e: e.name)
