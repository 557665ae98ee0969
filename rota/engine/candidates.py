"""
Substitute candidate ranking and assignment.

For an uncovered lesson every teacher is scored:
- absent on the date: RankingWeights.absent (kept in the list, sorted last)
- already teaching or substituting in that slot: RankingWeights.busy
- holds the lesson's subject: RankingWeights.specialist

The monthly substitution count is shown for load balancing and does not
affect the score. Ties keep the order of the store's teacher list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Iterable, Optional

from ..data.models import (
    CancelledReplacement,
    ConductedReplacement,
    LessonSlot,
    RankingWeights,
    Substitution,
    Teacher,
    TeacherReplacement,
    day_name,
)
from ..errors import CandidateDeclinedError, ConfirmationRequiredError
from .core import lesson_on

if TYPE_CHECKING:
    from ..data.store import TimetableStore

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """One teacher considered as a substitute."""
    teacher: Teacher
    is_absent: bool
    is_busy: bool
    is_specialist: bool
    score: int
    monthly_substitution_count: int
    is_declined: bool = False

    @property
    def is_free(self) -> bool:
        return not self.is_busy and not self.is_absent


def busy_teacher_ids(store: TimetableStore, lesson: LessonSlot, on: date) -> set[str]:
    """
    Teachers occupied in the lesson's (weekday, period, shift) on a date.

    Covers both the regular timetable and substitutions already written for
    other lessons in the same slot that day.
    """
    busy = {l.teacher_id for l in store.lessons_in_slot(*lesson.slot)}

    for sub in store.substitutions_on(on):
        if sub.lesson_id == lesson.id:
            continue
        teacher_id = sub.replacement_teacher_id
        if teacher_id is None:
            continue
        covered = store.get_lesson(sub.lesson_id)
        if covered is not None and covered.slot == lesson.slot:
            busy.add(teacher_id)

    return busy


def monthly_substitution_count(store: TimetableStore, teacher_id: str, on: date) -> int:
    """Lessons a teacher covered for someone else in the calendar month of ``on``."""
    return sum(
        1 for s in store.substitutions
        if s.replacement_teacher_id == teacher_id
        and s.original_teacher_id != teacher_id
        and s.date.year == on.year
        and s.date.month == on.month
    )


def rank_candidates(
    store: TimetableStore,
    lesson_id: str,
    on: date,
    search: str = "",
    declined: Iterable[str] = (),
    weights: Optional[RankingWeights] = None,
) -> list[Candidate]:
    """
    Ranked substitute candidates for one lesson on one date.

    Args:
        store: Timetable store for the date's half-year
        lesson_id: Lesson needing cover
        on: Date of the lesson
        search: Case-insensitive name filter applied before scoring
        declined: Teachers who declined; listed but marked
        weights: Score overrides (defaults to the store's configuration)

    Returns:
        Candidates, best first
    """
    weights = weights or store.config.ranking
    lesson = lesson_on(store, lesson_id, on)
    busy_ids = busy_teacher_ids(store, lesson, on)
    declined_ids = set(declined)
    needle = search.strip().lower()

    candidates: list[Candidate] = []
    for teacher in store.teachers:
        if needle and needle not in teacher.name.lower():
            continue

        is_absent = teacher.is_absent(on)
        is_busy = teacher.id in busy_ids
        is_specialist = lesson.subject_id in teacher.subject_ids

        score = 0
        if is_absent:
            score += weights.absent
        if is_busy:
            score += weights.busy
        if is_specialist:
            score += weights.specialist

        candidates.append(Candidate(
            teacher=teacher,
            is_absent=is_absent,
            is_busy=is_busy,
            is_specialist=is_specialist,
            score=score,
            monthly_substitution_count=monthly_substitution_count(store, teacher.id, on),
            is_declined=teacher.id in declined_ids,
        ))

    candidates.sort(key=lambda c: -c.score)
    return candidates


def recommended_candidates(candidates: list[Candidate], limit: int = 3) -> list[Candidate]:
    """The best free candidates who have not declined."""
    return [c for c in candidates if c.is_free and not c.is_declined][:limit]


def toggle_declined(declined: frozenset[str], teacher_id: str) -> frozenset[str]:
    """Mark a teacher as having declined, or undo it."""
    if teacher_id in declined:
        return declined - {teacher_id}
    return declined | {teacher_id}


# =============================================================================
# Assignment
# =============================================================================

def assign_substitute(
    store: TimetableStore,
    lesson_id: str,
    on: date,
    teacher_id: str,
    room_id: Optional[str] = None,
    absence_reason: Optional[str] = None,
    confirm_merger: bool = False,
    declined: Iterable[str] = (),
) -> TimetableStore:
    """
    Write a substitution naming ``teacher_id`` for a lesson on a date.

    Picking the lesson's own teacher keeps the lesson with them and only
    applies ``room_id``. Picking a busy teacher needs ``confirm_merger`` and
    marks the substitution as a merger. Picking an absent teacher is allowed
    and logged.

    Raises:
        MissingReferenceError: Unknown lesson, teacher or room
        CandidateDeclinedError: The teacher declined this lesson
        ConfirmationRequiredError: Busy teacher without ``confirm_merger``
    """
    lesson = lesson_on(store, lesson_id, on)
    teacher = store.require_teacher(teacher_id)
    if room_id:
        store.require_room(room_id)
    declined_ids = sorted(set(declined))

    if teacher_id in declined_ids:
        raise CandidateDeclinedError(f"{teacher.name} declined this lesson; undo the refusal first")

    merger = False
    if teacher_id != lesson.teacher_id:
        if teacher_id in busy_teacher_ids(store, lesson, on):
            if not confirm_merger:
                raise ConfirmationRequiredError(
                    f"{teacher.name} is already teaching period {lesson.period} on "
                    f"{day_name(lesson.day)}; confirm to merge the classes"
                )
            merger = True
        if teacher.is_absent(on):
            logger.warning("%s is absent on %s but was assigned lesson %s", teacher.name, on, lesson.id)

    substitution = Substitution(
        date=on,
        lesson_id=lesson.id,
        original_teacher_id=lesson.teacher_id,
        replacement=TeacherReplacement(teacher_id=teacher_id),
        replacement_room_id=room_id if room_id != lesson.room_id else None,
        absence_reason=absence_reason if teacher_id != lesson.teacher_id else None,
        merger=merger,
        declined_teacher_ids=declined_ids,
    )
    logger.info(
        "Lesson %s on %s: %s -> %s%s",
        lesson.id, on, lesson.teacher_id, teacher_id, " (merger)" if merger else "",
    )
    return store.upsert_substitution(substitution)


def reassign_room(store: TimetableStore, lesson_id: str, on: date, room_id: str) -> TimetableStore:
    """Move a lesson to another room for one day without changing the teacher."""
    lesson = lesson_on(store, lesson_id, on)
    return assign_substitute(store, lesson_id, on, lesson.teacher_id, room_id=room_id)


def mark_conducted(store: TimetableStore, lesson_id: str, on: date) -> TimetableStore:
    """Record that the lesson went ahead as planned."""
    lesson = lesson_on(store, lesson_id, on)
    return store.upsert_substitution(Substitution(
        date=on,
        lesson_id=lesson.id,
        original_teacher_id=lesson.teacher_id,
        replacement=ConductedReplacement(),
    ))


def mark_cancelled(
    store: TimetableStore,
    lesson_id: str,
    on: date,
    declined: Iterable[str] = (),
) -> TimetableStore:
    """Drop the lesson for the day."""
    lesson = lesson_on(store, lesson_id, on)
    return store.upsert_substitution(Substitution(
        date=on,
        lesson_id=lesson.id,
        original_teacher_id=lesson.teacher_id,
        replacement=CancelledReplacement(),
        declined_teacher_ids=sorted(set(declined)),
    ))


def remove_substitution(store: TimetableStore, lesson_id: str, on: date) -> TimetableStore:
    return store.remove_substitution(on, lesson_id)
