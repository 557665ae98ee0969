"""Tests for the school dataset and timetable store."""

from __future__ import annotations

from datetime import date

import pytest

from rota.data.models import (
    BellPreset,
    BellSlot,
    ClassGroup,
    Day,
    DutyRecord,
    DutyZone,
    HalfYear,
    LessonSlot,
    Room,
    Shift,
    Subject,
    Substitution,
    Teacher,
    TeacherReplacement,
)
from rota.data.store import SchoolData, TimetableStore
from rota.errors import MissingReferenceError, ReferenceInUseError

MONDAY = date(2024, 10, 7)


def lesson(lesson_id: str, class_id: str, teacher_id: str, period: int, day: Day = Day.MONDAY, **kwargs) -> LessonSlot:
    return LessonSlot(
        id=lesson_id,
        class_id=class_id,
        subject_id=kwargs.pop("subject_id", "math"),
        teacher_id=teacher_id,
        room_id=kwargs.pop("room_id", "r1"),
        day=day,
        period=period,
        shift=kwargs.pop("shift", Shift.FIRST),
        **kwargs,
    )


@pytest.fixture
def school() -> SchoolData:
    return SchoolData(
        teachers=[
            Teacher(id="t1", name="Alice", subject_ids=["math"]),
            Teacher(id="t2", name="Bob", subject_ids=["math"]),
            Teacher(id="t3", name="Carol"),
        ],
        classes=[ClassGroup(id="c1", name="5A"), ClassGroup(id="c2", name="5B")],
        rooms=[Room(id="r1", name="101"), Room(id="r2", name="102")],
        subjects=[Subject(id="math", name="Math")],
        first_half=[
            lesson("l1", "c1", "t1", 1),
            lesson("l2", "c2", "t2", 1, room_id="r2"),
            lesson("l3", "c1", "t1", 2, day=Day.TUESDAY),
        ],
        second_half=[
            lesson("s1", "c1", "t2", 1),
        ],
        duty_zones=[DutyZone(id="z1", name="Floor 1", rooms=["101"])],
    )


@pytest.fixture
def store(school) -> TimetableStore:
    return school.store(HalfYear.FIRST)


def sub(lesson_id: str, teacher_id: str, on: date = MONDAY, **kwargs) -> Substitution:
    return Substitution(
        date=on,
        lesson_id=lesson_id,
        original_teacher_id=kwargs.pop("original", "t1"),
        replacement=TeacherReplacement(teacher_id=teacher_id),
        **kwargs,
    )


class TestValidation:
    """Tests for structural invariants."""

    def test_duplicate_teacher(self):
        """Duplicate teacher ids are rejected."""
        with pytest.raises(ValueError, match="Duplicate teacher ID: 't1'"):
            SchoolData(teachers=[Teacher(id="t1", name="A"), Teacher(id="t1", name="B")])

    def test_unknown_teacher_reference(self, school):
        """Unknown teacher reference."""
        data = school.model_dump()
        data["first_half"].append(lesson("l9", "c1", "ghost", 3).model_dump())
        with pytest.raises(ValueError, match="unknown teacher_id 'ghost'"):
            SchoolData.model_validate(data)

    def test_unknown_room_reference(self, store):
        """Unknown room reference."""
        with pytest.raises(ValueError, match="unknown room_id 'r9'"):
            store.upsert_lesson(lesson("l9", "c1", "t3", 3, room_id="r9"))

    def test_one_duty_teacher_per_zone_slot(self, store):
        """One duty teacher per zone slot."""
        records = [
            DutyRecord(zone_id="z1", day=Day.MONDAY, shift=Shift.FIRST, teacher_id="t1"),
            DutyRecord(zone_id="z1", day=Day.MONDAY, shift=Shift.FIRST, teacher_id="t2"),
        ]
        with pytest.raises(ValueError, match="already has a teacher"):
            store.with_duty_records(records)

    def test_same_teacher_in_two_zones_is_allowed(self, store):
        """Same teacher in two zones is allowed."""
        zones = [*store.duty_zones, DutyZone(id="z2", name="Floor 2")]
        store = store._replace(duty_zones=zones)
        records = [
            DutyRecord(zone_id="z1", day=Day.MONDAY, shift=Shift.FIRST, teacher_id="t1"),
            DutyRecord(zone_id="z2", day=Day.MONDAY, shift=Shift.FIRST, teacher_id="t1"),
        ]
        assert len(store.with_duty_records(records).duty_records) == 2

    def test_duplicate_substitution_key(self):
        """Duplicate substitution key."""
        with pytest.raises(ValueError, match="More than one substitution"):
            TimetableStore(
                half_year=HalfYear.FIRST,
                substitutions=[sub("l1", "t2"), sub("l1", "t3")],
            )


class TestLookups:
    """Tests for lookup helpers."""

    def test_get_and_require(self, store):
        """Get and require."""
        assert store.get_teacher("t1").name == "Alice"
        assert store.get_teacher("zz") is None
        assert store.require_room("r2").name == "102"
        with pytest.raises(MissingReferenceError, match="Room 'r9' was not found"):
            store.require_room("r9")

    def test_missing_lesson_names_half_year(self, store):
        """Missing lesson names half year."""
        with pytest.raises(MissingReferenceError, match="half-year 1") as exc:
            store.require_lesson("s1")
        assert exc.value.entity == "lesson"
        assert exc.value.entity_id == "s1"

    def test_lessons_in_slot(self, store):
        """Lessons in slot."""
        ids = {l.id for l in store.lessons_in_slot(Day.MONDAY, 1, Shift.FIRST)}
        assert ids == {"l1", "l2"}

    def test_teacher_lessons(self, store):
        """Teacher lessons filter by day and shift."""
        assert {l.id for l in store.teacher_lessons("t1")} == {"l1", "l3"}
        assert [l.id for l in store.teacher_lessons("t1", day=Day.TUESDAY)] == ["l3"]
        assert store.teacher_lessons("t1", day=Day.MONDAY, shift=Shift.SECOND) == []

    def test_room_label(self, store):
        """Room label falls back to the id."""
        assert store.room_label("r1") == "101"
        assert store.room_label("unknown") == "unknown"
        assert store.room_label(None) is None

    def test_sorted_zones(self, store):
        """Zones sort by order with unordered last."""
        zones = [
            DutyZone(id="a", name="A", order=2),
            DutyZone(id="b", name="B", order=0),
            DutyZone(id="c", name="C"),
        ]
        store = store._replace(duty_zones=zones)
        assert [z.id for z in store.sorted_zones()] == ["b", "a", "c"]


class TestWrites:
    """Tests for write methods."""

    def test_writes_return_new_store(self, store):
        """Writes return new store."""
        updated = store.upsert_substitution(sub("l1", "t3"))
        assert store.substitutions == []
        assert len(updated.substitutions) == 1

    def test_later_substitution_wins(self, store):
        """Later substitution wins."""
        store = store.upsert_substitution(sub("l1", "t2"))
        store = store.upsert_substitution(sub("l1", "t3"))
        matching = [s for s in store.substitutions if s.key == (MONDAY, "l1")]
        assert len(matching) == 1
        assert matching[0].replacement_teacher_id == "t3"
        assert store.get_substitution(MONDAY, "l1").replacement_teacher_id == "t3"

    def test_substitution_needs_lesson(self, store):
        """Substitution needs lesson."""
        with pytest.raises(MissingReferenceError):
            store.upsert_substitution(sub("s1", "t2"))

    def test_remove_substitution(self, store):
        """Removing a substitution clears it."""
        store = store.upsert_substitution(sub("l1", "t2"))
        store = store.remove_substitution(MONDAY, "l1")
        assert store.get_substitution(MONDAY, "l1") is None

    def test_upsert_lesson(self, store):
        """Upserting replaces by id or appends."""
        store = store.upsert_lesson(lesson("l1", "c1", "t3", 4))
        assert store.get_lesson("l1").teacher_id == "t3"
        assert len(store.lessons) == 3
        store = store.upsert_lesson(lesson("l4", "c2", "t3", 5))
        assert len(store.lessons) == 4

    def test_delete_lesson(self, store):
        """Deleting a lesson removes it."""
        assert store.delete_lesson("l2").get_lesson("l2") is None
        with pytest.raises(MissingReferenceError):
            store.delete_lesson("zz")

    def test_clear_lessons_by_day(self, store):
        """Clear lessons by day."""
        cleared = store.clear_lessons(day=Day.MONDAY)
        assert [l.id for l in cleared.lessons] == ["l3"]

    def test_clear_lessons_by_class(self, store):
        """Clear lessons by class."""
        cleared = store.clear_lessons(class_id="c1")
        assert [l.id for l in cleared.lessons] == ["l2"]

    def test_clear_all_lessons(self, store):
        """Clear all lessons."""
        assert store.clear_lessons().lessons == []

    def test_delete_teacher_in_use(self, store):
        """Delete teacher in use."""
        with pytest.raises(ReferenceInUseError, match="Alice still teaches 2 lesson"):
            store.delete_teacher("t1")

    def test_delete_unused_teacher_drops_duty(self, store):
        """Delete unused teacher drops duty."""
        store = store.with_duty_records(
            [DutyRecord(zone_id="z1", day=Day.MONDAY, shift=Shift.FIRST, teacher_id="t3")]
        )
        store = store.delete_teacher("t3")
        assert store.get_teacher("t3") is None
        assert store.duty_records == []

    def test_delete_class_room_subject_in_use(self, store):
        """Delete class room subject in use."""
        with pytest.raises(ReferenceInUseError, match="Class 5A"):
            store.delete_class("c1")
        with pytest.raises(ReferenceInUseError, match="Room 102"):
            store.delete_room("r2")
        with pytest.raises(ReferenceInUseError, match="Subject Math"):
            store.delete_subject("math")

    def test_delete_unused_room(self, store):
        """Delete unused room."""
        store = store.upsert_lesson(lesson("l2", "c2", "t2", 1))
        store = store.delete_room("r2")
        assert store.get_room("r2") is None
        with pytest.raises(MissingReferenceError):
            store.delete_subject("art")

    def test_bell_presets(self, store):
        """Activating a preset replaces the bells."""
        preset = BellPreset(
            id="short",
            name="Short day",
            bells=[BellSlot(shift=Shift.FIRST, period=1, start="08:00", end="08:30")],
        )
        store = store.save_bell_preset(preset)
        store = store.activate_bell_preset("short")
        assert len(store.bell_schedule) == 1
        assert store.bell_schedule[0].end == "08:30"

    def test_activate_unknown_preset(self, store):
        """Activate unknown preset."""
        with pytest.raises(MissingReferenceError, match="Bell preset 'nope'"):
            store.activate_bell_preset("nope")


class TestSchoolData:
    """Tests for half-year views and committing."""

    def test_store_per_half_year(self, school):
        """Store per half year."""
        assert {l.id for l in school.store(HalfYear.FIRST).lessons} == {"l1", "l2", "l3"}
        assert [l.id for l in school.store(HalfYear.SECOND).lessons] == ["s1"]

    def test_store_for_date(self, school):
        """Store for date."""
        assert school.store_for_date(MONDAY).half_year == HalfYear.FIRST
        assert school.store_for_date(date(2025, 2, 3)).half_year == HalfYear.SECOND

    def test_commit_keeps_other_half(self, school):
        """Commit keeps other half."""
        store = school.store(HalfYear.SECOND)
        store = store.upsert_lesson(lesson("s2", "c2", "t1", 2))
        store = store.upsert_substitution(sub("s2", "t3", on=date(2025, 2, 3)))
        committed = school.commit(store)
        assert {l.id for l in committed.second_half} == {"s1", "s2"}
        assert {l.id for l in committed.first_half} == {"l1", "l2", "l3"}
        assert len(committed.substitutions) == 1
        assert school.substitutions == []

    def test_summary(self, school):
        """Summary counts every collection."""
        summary = school.summary()
        assert summary["teachers"] == 3
        assert summary["first_half_lessons"] == 3
        assert summary["second_half_lessons"] == 1
        assert summary["duty_zones"] == 1
