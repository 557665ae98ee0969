"""Tests for substitution notification text."""

from __future__ import annotations

from datetime import date

import pytest

from rota.data.models import ClassGroup, Day, HalfYear, LessonSlot, Room, Shift, Subject, Teacher
from rota.data.store import TimetableStore
from rota.engine.candidates import assign_substitute, mark_cancelled, mark_conducted
from rota.engine.swaps import apply_swap
from rota.output.notify import (
    NO_SUBSTITUTIONS,
    format_day_summary,
    format_substitution,
    format_teacher_digest,
)

MONDAY = date(2024, 10, 7)


def lesson(lesson_id, class_id, subject_id, teacher_id, room_id, period) -> LessonSlot:
    return LessonSlot(
        id=lesson_id, class_id=class_id, subject_id=subject_id, teacher_id=teacher_id,
        room_id=room_id, day=Day.MONDAY, period=period, shift=Shift.FIRST,
    )


@pytest.fixture
def store() -> TimetableStore:
    return TimetableStore(
        half_year=HalfYear.FIRST,
        teachers=[
            Teacher(id="t1", name="Alice", unavailable_dates=[MONDAY]),
            Teacher(id="t2", name="Bob"),
            Teacher(id="t3", name="Carol"),
        ],
        classes=[ClassGroup(id="c1", name="5A"), ClassGroup(id="c2", name="5B")],
        rooms=[Room(id="r1", name="101"), Room(id="r2", name="102"), Room(id="r3", name="201")],
        subjects=[Subject(id="math", name="Math"), Subject(id="physics", name="Physics")],
        lessons=[
            lesson("l1", "c1", "math", "t1", "r1", 1),
            lesson("l2", "c2", "physics", "t2", "r2", 1),
            lesson("l3", "c2", "math", "t1", "r2", 2),
            lesson("l4", "c1", "math", "t1", "r1", 3),
            lesson("l5", "c1", "physics", "t2", "r2", 3),
        ],
    )


class TestFormatSubstitution:
    """Tests for format_substitution."""

    def test_cover(self, store):
        """Cover names both teachers."""
        store = assign_substitute(store, "l1", MONDAY, "t3")
        text = format_substitution(store, store.get_substitution(MONDAY, "l1"))
        assert text == "Period 1 | 5A | Math\nReplaced: Alice\nCover: Carol\nRoom 101"

    def test_room_change(self, store):
        """Room change is marked."""
        store = assign_substitute(store, "l3", MONDAY, "t3", room_id="r3")
        text = format_substitution(store, store.get_substitution(MONDAY, "l3"))
        assert text.splitlines()[-1] == "Room 201 (room change)"

    def test_merger(self, store):
        """Merger names the covering teacher."""
        store = assign_substitute(store, "l1", MONDAY, "t2", confirm_merger=True)
        text = format_substitution(store, store.get_substitution(MONDAY, "l1"))
        assert "Merged classes: Bob" in text.splitlines()

    def test_swap(self, store):
        """Swap names the partner class."""
        store = apply_swap(store, "l2", "l5", MONDAY)
        text = format_substitution(store, store.get_substitution(MONDAY, "l2"))
        assert "Lesson swap: 5A" in text.splitlines()

    def test_cancelled(self, store):
        """Cancelled lesson has no cover line."""
        store = mark_cancelled(store, "l4", MONDAY)
        text = format_substitution(store, store.get_substitution(MONDAY, "l4"))
        assert text == "Period 3 | 5A | Math\nReplaced: Alice\nCancelled"

    def test_conducted(self, store):
        """Conducted lesson is marked as planned."""
        store = mark_conducted(store, "l2", MONDAY)
        text = format_substitution(store, store.get_substitution(MONDAY, "l2"))
        assert text.splitlines()[-1] == "Conducted as planned"


class TestDaySummary:
    """Tests for format_day_summary."""

    def test_empty(self, store):
        """Empty day says there are no substitutions."""
        assert format_day_summary(store, MONDAY) == f"SUBSTITUTIONS FOR 07.10.2024\n\n{NO_SUBSTITUTIONS}"

    def test_sorted_by_period(self, store):
        """Sorted by period."""
        store = assign_substitute(store, "l3", MONDAY, "t3")
        store = assign_substitute(store, "l1", MONDAY, "t3")
        store = mark_cancelled(store, "l4", MONDAY)

        text = format_day_summary(store, MONDAY)
        blocks = text.split("\n\n")
        assert blocks[0] == "SUBSTITUTIONS FOR 07.10.2024"
        assert [b.splitlines()[0] for b in blocks[1:]] == ["Period 1 | 5A | Math", "Period 2 | 5B | Math"]

    def test_only_cancellations(self, store):
        """Cancellations alone count as no substitutions."""
        store = mark_cancelled(store, "l4", MONDAY)
        assert NO_SUBSTITUTIONS in format_day_summary(store, MONDAY)


class TestTeacherDigest:
    """Tests for format_teacher_digest."""

    def test_digest(self, store):
        """Digest lists the teacher's cover by period."""
        store = assign_substitute(store, "l3", MONDAY, "t3", room_id="r3")
        store = assign_substitute(store, "l1", MONDAY, "t3")

        assert format_teacher_digest(store, "t3", MONDAY) == (
            "Your substitutions for 07.10.2024, Carol\n\n"
            "Period 1 | 5A\nMath\nRoom 101\n\n"
            "Period 2 | 5B\nMath\nRoom 201 (room change)"
        )

    def test_nothing_to_cover(self, store):
        """Nothing to cover."""
        assert format_teacher_digest(store, "t2", MONDAY) is None

    def test_swap_shows_partner_class(self, store):
        """Swap shows partner class."""
        store = apply_swap(store, "l2", "l5", MONDAY)
        digest = format_teacher_digest(store, "t2", MONDAY)
        assert "Period 1 | 5A\nPhysics" in digest
        assert "Period 3 | 5B\nPhysics" in digest
