"""
Duty roster solver.

Greedy, zone-order-dependent heuristic. For each (weekday, shift) the
candidate pool is every teacher with a lesson in that shift. Zones are
filled in display order; each zone takes the best-scoring teacher:

    score = lessons_in_zone * per_zone_lesson
          + full_day_bonus            (if lessons that shift >= full_day_threshold)
          + reuse_penalty             (if already on duty that weekday)

Teachers with no lesson in the zone are disqualified. A zone with no
candidate above ``qualify_threshold`` stays unassigned.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

from ..data.models import Day, DutyRecord, DutyWeights, DutyZone, Shift, Teacher, day_name

if TYPE_CHECKING:
    from ..data.store import TimetableStore

logger = logging.getLogger(__name__)

ALL_SHIFTS: tuple[Shift, ...] = (Shift.FIRST, Shift.SECOND)


@dataclass
class DutyCandidate:
    """A teacher scored for one zone."""
    teacher: Teacher
    score: int
    lessons_in_zone: int
    total_lessons: int
    already_on_duty: bool


@dataclass
class DutyPlan:
    """Result of a solver run."""
    records: list[DutyRecord] = field(default_factory=list)
    unassigned: list[tuple[Day, Shift, str]] = field(default_factory=list)

    @property
    def assigned_count(self) -> int:
        return len(self.records)


@dataclass
class DutyConflict:
    """One teacher holding several zones at the same weekday and shift."""
    teacher_id: str
    day: Day
    shift: Shift
    zone_ids: tuple[str, ...]


# =============================================================================
# Room membership
# =============================================================================

_TRAILING_NUMBER = re.compile(r"(\d+)\D*$")


def _room_number(label: str) -> Optional[str]:
    """Trailing number of a room label without leading zeros ('Room 101' -> '101')."""
    match = _TRAILING_NUMBER.search(label)
    return str(int(match.group(1))) if match else None


def room_in_zone(label: Optional[str], zone: DutyZone, room_id: Optional[str] = None) -> bool:
    """
    Whether a room belongs to a zone.

    Matches the room's label or id exactly, or the label's trailing number
    against the numbers of the zone's entries.
    """
    if not label and not room_id:
        return False
    members = set(zone.rooms)
    if (label and label in members) or (room_id and room_id in members):
        return True
    number = _room_number(label) if label else None
    if number is None:
        return False
    return number in {_room_number(m) for m in members}


def lessons_in_zone(
    store: TimetableStore,
    teacher_id: str,
    day: Day,
    shift: Shift,
    zone: DutyZone,
) -> int:
    """Lessons a teacher gives inside a zone during one weekday and shift."""
    return sum(
        1 for l in store.teacher_lessons(teacher_id, day=day, shift=shift)
        if l.room_id and room_in_zone(store.room_label(l.room_id), zone, l.room_id)
    )


# =============================================================================
# Solver
# =============================================================================

def candidate_pool(store: TimetableStore, day: Day, shift: Shift) -> list[Teacher]:
    """Teachers with at least one lesson in the weekday and shift."""
    present = {l.teacher_id for l in store.lessons if l.day == day and l.shift == shift}
    return [t for t in store.teachers if t.id in present]


def score_zone_candidates(
    store: TimetableStore,
    day: Day,
    shift: Shift,
    zone: DutyZone,
    used: set[str],
    weights: Optional[DutyWeights] = None,
) -> list[DutyCandidate]:
    """Scored candidates for one zone, best first (ties keep teacher order)."""
    weights = weights or store.config.duty
    scored: list[DutyCandidate] = []

    for teacher in candidate_pool(store, day, shift):
        in_zone = lessons_in_zone(store, teacher.id, day, shift, zone)
        total = len(store.teacher_lessons(teacher.id, day=day, shift=shift))
        reused = teacher.id in used

        if in_zone == 0:
            score = weights.disqualified
        else:
            score = in_zone * weights.per_zone_lesson
            if total >= weights.full_day_threshold:
                score += weights.full_day_bonus
            if reused:
                score += weights.reuse_penalty

        scored.append(DutyCandidate(
            teacher=teacher,
            score=score,
            lessons_in_zone=in_zone,
            total_lessons=total,
            already_on_duty=reused,
        ))

    scored.sort(key=lambda c: -c.score)
    return scored


def solve_duty_roster(
    store: TimetableStore,
    shifts: Sequence[Shift] = ALL_SHIFTS,
    weights: Optional[DutyWeights] = None,
) -> DutyPlan:
    """
    Build a complete duty roster for every weekday, shift and zone.

    Args:
        store: Timetable store for the active half-year
        shifts: Shifts to plan
        weights: Heuristic overrides (defaults to the store's configuration)

    Returns:
        DutyPlan with the new records and the zones left uncovered
    """
    weights = weights or store.config.duty
    zones = store.sorted_zones()
    plan = DutyPlan()

    for day in Day:
        used: set[str] = set()
        for shift in shifts:
            for zone in zones:
                scored = score_zone_candidates(store, day, shift, zone, used, weights)
                best = scored[0] if scored else None
                if best is None or best.score <= weights.qualify_threshold:
                    plan.unassigned.append((day, shift, zone.id))
                    logger.warning(
                        "No duty teacher for %s on %s (%s shift)", zone.name, day_name(day), shift.value
                    )
                    continue

                plan.records.append(DutyRecord(zone_id=zone.id, day=day, shift=shift, teacher_id=best.teacher.id))
                used.add(best.teacher.id)
                logger.info(
                    "Duty %s %s %s -> %s (score %d)",
                    day_name(day), shift.value, zone.name, best.teacher.name, best.score,
                )

    return plan


def apply_duty_roster(
    store: TimetableStore,
    shifts: Sequence[Shift] = ALL_SHIFTS,
    weights: Optional[DutyWeights] = None,
) -> TimetableStore:
    """Solve the given shifts and replace their roster; other shifts are kept."""
    plan = solve_duty_roster(store, shifts, weights)
    kept = [r for r in store.duty_records if r.shift not in shifts]
    return store.with_duty_records([*kept, *plan.records])


# =============================================================================
# Manual editing
# =============================================================================

def assign_duty(
    store: TimetableStore,
    zone_id: str,
    day: Day,
    shift: Shift,
    teacher_id: Optional[str],
) -> TimetableStore:
    """Set (or with ``teacher_id=None`` clear) the teacher of one roster cell."""
    store.require_zone(zone_id)
    records = [
        r for r in store.duty_records
        if not (r.zone_id == zone_id and r.day == day and r.shift == shift)
    ]
    if teacher_id is not None:
        store.require_teacher(teacher_id)
        records.append(DutyRecord(zone_id=zone_id, day=day, shift=shift, teacher_id=teacher_id))
    return store.with_duty_records(records)


def unassign_duty(store: TimetableStore, zone_id: str, day: Day, shift: Shift) -> TimetableStore:
    return assign_duty(store, zone_id, day, shift, None)


def clear_duty_roster(
    store: TimetableStore,
    day: Optional[Day] = None,
    shift: Optional[Shift] = None,
) -> TimetableStore:
    """Bulk delete: the whole roster, one weekday, one shift, or both."""
    kept = [
        r for r in store.duty_records
        if not ((day is None or r.day == day) and (shift is None or r.shift == shift))
    ]
    return store.with_duty_records(kept)


def duty_conflicts(store: TimetableStore) -> list[DutyConflict]:
    """Teachers on duty in more than one zone at the same weekday and shift."""
    by_slot: dict[tuple[str, Day, Shift], list[str]] = defaultdict(list)
    for record in store.duty_records:
        by_slot[(record.teacher_id, record.day, record.shift)].append(record.zone_id)

    conflicts = [
        DutyConflict(teacher_id=teacher_id, day=day, shift=shift, zone_ids=tuple(zone_ids))
        for (teacher_id, day, shift), zone_ids in by_slot.items()
        if len(zone_ids) > 1
    ]
    conflicts.sort(key=lambda c: (c.day, c.shift.value, c.teacher_id))
    return conflicts


def duty_recommendations(
    store: TimetableStore,
    zone_id: str,
    day: Day,
    shift: Shift,
) -> tuple[list[DutyCandidate], list[DutyCandidate]]:
    """
    Teachers to offer when filling one roster cell by hand.

    Returns:
        (recommended, others). Recommended teachers have lessons in the zone
        and hold no other zone at that weekday and shift, most lessons in
        zone first. Others are present that shift but not recommended.
    """
    zone = store.require_zone(zone_id)
    elsewhere = {
        r.teacher_id for r in store.duty_records
        if r.day == day and r.shift == shift and r.zone_id != zone_id
    }

    recommended: list[DutyCandidate] = []
    others: list[DutyCandidate] = []
    for teacher in candidate_pool(store, day, shift):
        in_zone = lessons_in_zone(store, teacher.id, day, shift, zone)
        candidate = DutyCandidate(
            teacher=teacher,
            score=in_zone,
            lessons_in_zone=in_zone,
            total_lessons=len(store.teacher_lessons(teacher.id, day=day, shift=shift)),
            already_on_duty=teacher.id in elsewhere,
        )
        if in_zone > 0 and not candidate.already_on_duty:
            recommended.append(candidate)
        else:
            others.append(candidate)

    recommended.sort(key=lambda c: -c.lessons_in_zone)
    return recommended, others
