"""
In-memory school dataset and its per-half-year timetable store.

``SchoolData`` holds everything for one school year: reference entities,
the two half-year timetables, substitutions, the duty roster and bells.
``SchoolData.store(half_year)`` returns a ``TimetableStore``, the view every
engine operation works against. Stores are never mutated in place; each
write returns a new store, which ``SchoolData.commit`` folds back in.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import MissingReferenceError, ReferenceInUseError
from .models import (
    DEFAULT_BELLS,
    BellPreset,
    BellSlot,
    ClassGroup,
    Day,
    DutyRecord,
    DutyZone,
    HalfYear,
    LessonSlot,
    Room,
    SchoolConfig,
    Shift,
    Subject,
    Substitution,
    Teacher,
    half_year_for,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Shared validation
# =============================================================================

def _duplicate_errors(items: Iterable[Any], entity_name: str) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            errors.append(f"Duplicate {entity_name} ID: '{item.id}'")
        seen.add(item.id)
    return errors


def _reference_errors(
    lessons: Iterable[LessonSlot],
    teachers: list[Teacher],
    classes: list[ClassGroup],
    subjects: list[Subject],
    rooms: list[Room],
) -> list[str]:
    errors: list[str] = []
    teacher_ids = {t.id for t in teachers}
    class_ids = {c.id for c in classes}
    subject_ids = {s.id for s in subjects}
    room_ids = {r.id for r in rooms}

    for lesson in lessons:
        if lesson.teacher_id not in teacher_ids:
            errors.append(f"Lesson {lesson.id}: unknown teacher_id '{lesson.teacher_id}'")
        if lesson.class_id not in class_ids:
            errors.append(f"Lesson {lesson.id}: unknown class_id '{lesson.class_id}'")
        if lesson.subject_id not in subject_ids:
            errors.append(f"Lesson {lesson.id}: unknown subject_id '{lesson.subject_id}'")
        if lesson.room_id and lesson.room_id not in room_ids:
            errors.append(f"Lesson {lesson.id}: unknown room_id '{lesson.room_id}'")

    for teacher in teachers:
        for subject_id in teacher.subject_ids:
            if subject_id not in subject_ids:
                errors.append(f"Teacher {teacher.id}: unknown subject '{subject_id}'")

    return errors


def _duty_errors(zones: list[DutyZone], records: list[DutyRecord], teachers: list[Teacher]) -> list[str]:
    errors: list[str] = []
    zone_ids = {z.id for z in zones}
    teacher_ids = {t.id for t in teachers}
    seen: set[tuple[str, Day, Shift]] = set()

    for record in records:
        if record.zone_id not in zone_ids:
            errors.append(f"Duty record {record.id}: unknown zone_id '{record.zone_id}'")
        if record.teacher_id not in teacher_ids:
            errors.append(f"Duty record {record.id}: unknown teacher_id '{record.teacher_id}'")
        key = (record.zone_id, record.day, record.shift)
        if key in seen:
            errors.append(
                f"Duty record {record.id}: zone '{record.zone_id}' already has a teacher "
                f"on day {int(record.day)} ({record.shift.value} shift)"
            )
        seen.add(key)

    return errors


def _substitution_key_errors(substitutions: list[Substitution]) -> list[str]:
    errors: list[str] = []
    seen: set[tuple[date, str]] = set()
    for sub in substitutions:
        if sub.key in seen:
            errors.append(f"More than one substitution for lesson '{sub.lesson_id}' on {sub.date.isoformat()}")
        seen.add(sub.key)
    return errors


def _raise_if(errors: list[str], title: str) -> None:
    if errors:
        raise ValueError(f"{title}:\n" + "\n".join(f"  - {e}" for e in errors))


# =============================================================================
# Timetable Store (one half-year)
# =============================================================================

class TimetableStore(BaseModel):
    """
    Snapshot of one half-year's timetable with everything that overlays it.

    Every write method returns a new store and leaves this one untouched.
    """
    model_config = ConfigDict(extra="forbid")

    half_year: HalfYear
    config: SchoolConfig = Field(default_factory=SchoolConfig)

    teachers: list[Teacher] = Field(default_factory=list)
    classes: list[ClassGroup] = Field(default_factory=list)
    rooms: list[Room] = Field(default_factory=list)
    subjects: list[Subject] = Field(default_factory=list)
    lessons: list[LessonSlot] = Field(default_factory=list)

    substitutions: list[Substitution] = Field(default_factory=list)
    duty_zones: list[DutyZone] = Field(default_factory=list)
    duty_records: list[DutyRecord] = Field(default_factory=list)
    bell_schedule: list[BellSlot] = Field(default_factory=lambda: list(DEFAULT_BELLS))
    bell_presets: list[BellPreset] = Field(default_factory=list)

    # Lookup caches (populated after validation)
    _teacher_map: dict[str, Teacher] = {}
    _class_map: dict[str, ClassGroup] = {}
    _room_map: dict[str, Room] = {}
    _subject_map: dict[str, Subject] = {}
    _lesson_map: dict[str, LessonSlot] = {}
    _zone_map: dict[str, DutyZone] = {}
    _substitution_map: dict[tuple[date, str], Substitution] = {}

    def model_post_init(self, __context: Any) -> None:
        """Build lookup maps after model initialization."""
        self._teacher_map = {t.id: t for t in self.teachers}
        self._class_map = {c.id: c for c in self.classes}
        self._room_map = {r.id: r for r in self.rooms}
        self._subject_map = {s.id: s for s in self.subjects}
        self._lesson_map = {l.id: l for l in self.lessons}
        self._zone_map = {z.id: z for z in self.duty_zones}
        self._substitution_map = {s.key: s for s in self.substitutions}

    @model_validator(mode="after")
    def validate_integrity(self) -> "TimetableStore":
        """Validate ids, cross-entity references and substitution keys."""
        errors: list[str] = []
        errors += _duplicate_errors(self.teachers, "teacher")
        errors += _duplicate_errors(self.classes, "class")
        errors += _duplicate_errors(self.rooms, "room")
        errors += _duplicate_errors(self.subjects, "subject")
        errors += _duplicate_errors(self.lessons, "lesson")
        errors += _duplicate_errors(self.duty_zones, "duty zone")
        errors += _reference_errors(self.lessons, self.teachers, self.classes, self.subjects, self.rooms)
        errors += _duty_errors(self.duty_zones, self.duty_records, self.teachers)
        errors += _substitution_key_errors(self.substitutions)
        _raise_if(errors, "Timetable validation failed")
        return self

    def _replace(self, **changes: Any) -> "TimetableStore":
        data = dict(self)
        data.update(changes)
        return type(self).model_validate(data)

    # -------------------------------------------------------------------------
    # Lookup Methods
    # -------------------------------------------------------------------------

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return self._teacher_map.get(teacher_id)

    def get_class(self, class_id: str) -> Optional[ClassGroup]:
        return self._class_map.get(class_id)

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._room_map.get(room_id)

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return self._subject_map.get(subject_id)

    def get_lesson(self, lesson_id: str) -> Optional[LessonSlot]:
        return self._lesson_map.get(lesson_id)

    def get_zone(self, zone_id: str) -> Optional[DutyZone]:
        return self._zone_map.get(zone_id)

    def get_substitution(self, on: date, lesson_id: str) -> Optional[Substitution]:
        return self._substitution_map.get((on, lesson_id))

    def require_teacher(self, teacher_id: str) -> Teacher:
        teacher = self.get_teacher(teacher_id)
        if teacher is None:
            raise MissingReferenceError("teacher", teacher_id)
        return teacher

    def require_room(self, room_id: str) -> Room:
        room = self.get_room(room_id)
        if room is None:
            raise MissingReferenceError("room", room_id)
        return room

    def require_class(self, class_id: str) -> ClassGroup:
        cls = self.get_class(class_id)
        if cls is None:
            raise MissingReferenceError("class", class_id)
        return cls

    def require_lesson(self, lesson_id: str) -> LessonSlot:
        """Lesson by id; a miss usually means the wrong half-year was selected."""
        lesson = self.get_lesson(lesson_id)
        if lesson is None:
            raise MissingReferenceError(
                "lesson", lesson_id, f"not in the half-year {int(self.half_year)} timetable"
            )
        return lesson

    def require_zone(self, zone_id: str) -> DutyZone:
        zone = self.get_zone(zone_id)
        if zone is None:
            raise MissingReferenceError("duty zone", zone_id)
        return zone

    def room_label(self, room_id: Optional[str]) -> Optional[str]:
        """Display name of a room, falling back to the raw id."""
        if not room_id:
            return None
        room = self.get_room(room_id)
        return room.name if room else room_id

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    def lessons_in_slot(self, day: Day, period: int, shift: Shift) -> list[LessonSlot]:
        return [l for l in self.lessons if l.day == day and l.period == period and l.shift == shift]

    def teacher_lessons(
        self,
        teacher_id: str,
        day: Optional[Day] = None,
        shift: Optional[Shift] = None,
    ) -> list[LessonSlot]:
        """Lessons of a teacher, optionally narrowed to a weekday and shift."""
        return [
            l for l in self.lessons
            if l.teacher_id == teacher_id
            and (day is None or l.day == day)
            and (shift is None or l.shift == shift)
        ]

    def substitutions_on(self, on: date) -> list[Substitution]:
        return [s for s in self.substitutions if s.date == on]

    def sorted_zones(self) -> list[DutyZone]:
        """Duty zones in display order (unordered zones keep their list position)."""
        indexed = list(enumerate(self.duty_zones))
        indexed.sort(key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]))
        return [zone for _, zone in indexed]

    # -------------------------------------------------------------------------
    # Write Methods (each returns a new store)
    # -------------------------------------------------------------------------

    def upsert_lesson(self, lesson: LessonSlot) -> "TimetableStore":
        """Add a lesson or replace the one with the same id."""
        if self.get_lesson(lesson.id) is None:
            return self._replace(lessons=[*self.lessons, lesson])
        return self._replace(lessons=[lesson if l.id == lesson.id else l for l in self.lessons])

    def delete_lesson(self, lesson_id: str) -> "TimetableStore":
        self.require_lesson(lesson_id)
        return self._replace(lessons=[l for l in self.lessons if l.id != lesson_id])

    def clear_lessons(self, day: Optional[Day] = None, class_id: Optional[str] = None) -> "TimetableStore":
        """Bulk delete: everything, one weekday, or one class."""
        if class_id is not None:
            self.require_class(class_id)
        kept = [
            l for l in self.lessons
            if not ((day is None or l.day == day) and (class_id is None or l.class_id == class_id))
        ]
        logger.info("Cleared %d lessons", len(self.lessons) - len(kept))
        return self._replace(lessons=kept)

    def upsert_teacher(self, teacher: Teacher) -> "TimetableStore":
        if self.get_teacher(teacher.id) is None:
            return self._replace(teachers=[*self.teachers, teacher])
        return self._replace(teachers=[teacher if t.id == teacher.id else t for t in self.teachers])

    def delete_teacher(self, teacher_id: str) -> "TimetableStore":
        """Remove a teacher; refused while any lesson still names them."""
        teacher = self.require_teacher(teacher_id)
        used = self.teacher_lessons(teacher_id)
        if used:
            raise ReferenceInUseError(
                f"{teacher.name} still teaches {len(used)} lesson(s) and cannot be deleted"
            )
        return self._replace(
            teachers=[t for t in self.teachers if t.id != teacher_id],
            duty_records=[d for d in self.duty_records if d.teacher_id != teacher_id],
        )

    def _refuse_if_used(self, entity: str, name: str, field: str, entity_id: str) -> None:
        used = [l for l in self.lessons if getattr(l, field) == entity_id]
        if used:
            raise ReferenceInUseError(
                f"{entity} {name} is used by {len(used)} lesson(s) and cannot be deleted"
            )

    def delete_class(self, class_id: str) -> "TimetableStore":
        cls = self.require_class(class_id)
        self._refuse_if_used("Class", cls.name, "class_id", class_id)
        return self._replace(classes=[c for c in self.classes if c.id != class_id])

    def delete_room(self, room_id: str) -> "TimetableStore":
        room = self.require_room(room_id)
        self._refuse_if_used("Room", room.name, "room_id", room_id)
        return self._replace(rooms=[r for r in self.rooms if r.id != room_id])

    def delete_subject(self, subject_id: str) -> "TimetableStore":
        subject = self.get_subject(subject_id)
        if subject is None:
            raise MissingReferenceError("subject", subject_id)
        self._refuse_if_used("Subject", subject.name, "subject_id", subject_id)
        return self._replace(subjects=[s for s in self.subjects if s.id != subject_id])

    def upsert_substitution(self, substitution: Substitution) -> "TimetableStore":
        """Write a substitution; an existing one for the same (date, lesson) is replaced."""
        self.require_lesson(substitution.lesson_id)
        return self.replace_substitutions([substitution])

    def replace_substitutions(self, substitutions: list[Substitution]) -> "TimetableStore":
        """Write several substitutions at once, each replacing its (date, lesson) key."""
        keys = {s.key for s in substitutions}
        kept = [s for s in self.substitutions if s.key not in keys]
        return self._replace(substitutions=[*kept, *substitutions])

    def remove_substitution(self, on: date, lesson_id: str) -> "TimetableStore":
        return self._replace(substitutions=[s for s in self.substitutions if s.key != (on, lesson_id)])

    def with_duty_records(self, records: list[DutyRecord]) -> "TimetableStore":
        return self._replace(duty_records=records)

    def save_bell_preset(self, preset: BellPreset) -> "TimetableStore":
        presets = [p for p in self.bell_presets if p.id != preset.id]
        return self._replace(bell_presets=[*presets, preset])

    def activate_bell_preset(self, preset_id: str) -> "TimetableStore":
        """Copy a preset's bells into the live bell schedule."""
        preset = next((p for p in self.bell_presets if p.id == preset_id), None)
        if preset is None:
            raise MissingReferenceError("bell preset", preset_id)
        logger.info("Activated bell preset '%s'", preset.name)
        return self._replace(bell_schedule=[b.model_copy() for b in preset.bells])


# =============================================================================
# School Data (both half-years)
# =============================================================================

class SchoolData(BaseModel):
    """Complete dataset for one school year."""
    model_config = ConfigDict(extra="forbid")

    config: SchoolConfig = Field(default_factory=SchoolConfig)

    teachers: list[Teacher] = Field(default_factory=list)
    classes: list[ClassGroup] = Field(default_factory=list)
    rooms: list[Room] = Field(default_factory=list)
    subjects: list[Subject] = Field(default_factory=list)

    first_half: list[LessonSlot] = Field(default_factory=list, description="Half-year 1 timetable")
    second_half: list[LessonSlot] = Field(default_factory=list, description="Half-year 2 timetable")

    substitutions: list[Substitution] = Field(default_factory=list)
    duty_zones: list[DutyZone] = Field(default_factory=list)
    duty_records: list[DutyRecord] = Field(default_factory=list)
    bell_schedule: list[BellSlot] = Field(default_factory=lambda: list(DEFAULT_BELLS))
    bell_presets: list[BellPreset] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_integrity(self) -> "SchoolData":
        errors: list[str] = []
        errors += _duplicate_errors(self.teachers, "teacher")
        errors += _duplicate_errors(self.classes, "class")
        errors += _duplicate_errors(self.rooms, "room")
        errors += _duplicate_errors(self.subjects, "subject")
        errors += _duplicate_errors(self.first_half, "first half-year lesson")
        errors += _duplicate_errors(self.second_half, "second half-year lesson")
        errors += _duplicate_errors(self.duty_zones, "duty zone")
        errors += _reference_errors(
            [*self.first_half, *self.second_half], self.teachers, self.classes, self.subjects, self.rooms
        )
        errors += _duty_errors(self.duty_zones, self.duty_records, self.teachers)
        errors += _substitution_key_errors(self.substitutions)
        _raise_if(errors, "School data validation failed")
        return self

    def lessons_for(self, half_year: HalfYear) -> list[LessonSlot]:
        return self.first_half if half_year == HalfYear.FIRST else self.second_half

    def store(self, half_year: HalfYear) -> TimetableStore:
        """Timetable store for an explicitly chosen half-year."""
        return TimetableStore(
            half_year=half_year,
            config=self.config,
            teachers=self.teachers,
            classes=self.classes,
            rooms=self.rooms,
            subjects=self.subjects,
            lessons=self.lessons_for(half_year),
            substitutions=self.substitutions,
            duty_zones=self.duty_zones,
            duty_records=self.duty_records,
            bell_schedule=self.bell_schedule,
            bell_presets=self.bell_presets,
        )

    def store_for_date(self, on: date) -> TimetableStore:
        return self.store(half_year_for(on, self.config))

    def commit(self, store: TimetableStore) -> "SchoolData":
        """New dataset with the store's half-year lessons and shared collections."""
        lesson_field = "first_half" if store.half_year == HalfYear.FIRST else "second_half"
        data = dict(self)
        data.update(
            {
                lesson_field: store.lessons,
                "config": store.config,
                "teachers": store.teachers,
                "classes": store.classes,
                "rooms": store.rooms,
                "subjects": store.subjects,
                "substitutions": store.substitutions,
                "duty_zones": store.duty_zones,
                "duty_records": store.duty_records,
                "bell_schedule": store.bell_schedule,
                "bell_presets": store.bell_presets,
            }
        )
        return type(self).model_validate(data)

    def summary(self) -> dict[str, Any]:
        """Get a summary of the dataset."""
        return {
            "school_name": self.config.school_name,
            "academic_year": self.config.academic_year,
            "teachers": len(self.teachers),
            "classes": len(self.classes),
            "rooms": len(self.rooms),
            "subjects": len(self.subjects),
            "first_half_lessons": len(self.first_half),
            "second_half_lessons": len(self.second_half),
            "substitutions": len(self.substitutions),
            "duty_zones": len(self.duty_zones),
            "duty_records": len(self.duty_records),
            "bell_slots": len(self.bell_schedule),
        }
