"""Tests for the duty roster solver."""

from __future__ import annotations

import pytest

from rota.data.models import (
    ClassGroup,
    Day,
    DutyRecord,
    DutyWeights,
    DutyZone,
    HalfYear,
    LessonSlot,
    Room,
    Shift,
    Subject,
    Teacher,
)
from rota.data.store import TimetableStore
from rota.engine.duty import (
    apply_duty_roster,
    assign_duty,
    clear_duty_roster,
    duty_conflicts,
    duty_recommendations,
    lessons_in_zone,
    room_in_zone,
    score_zone_candidates,
    solve_duty_roster,
    unassign_duty,
)
from rota.errors import MissingReferenceError

_counter = iter(range(10_000))


def lesson(teacher_id, room_id, period, day=Day.MONDAY, shift=Shift.FIRST, class_id="c1") -> LessonSlot:
    return LessonSlot(
        id=f"l{next(_counter)}", class_id=class_id, subject_id="math", teacher_id=teacher_id,
        room_id=room_id, day=day, period=period, shift=shift,
    )


def make_store(lessons, zones=None, teachers=None) -> TimetableStore:
    return TimetableStore(
        half_year=HalfYear.FIRST,
        teachers=teachers or [
            Teacher(id="t1", name="Alice"),
            Teacher(id="t2", name="Bob"),
            Teacher(id="t3", name="Carol"),
            Teacher(id="t4", name="Dan"),
        ],
        classes=[ClassGroup(id="c1", name="5A")],
        rooms=[
            Room(id="r1", name="Room 101"),
            Room(id="r2", name="Room 102"),
            Room(id="r3", name="Lab 201"),
            Room(id="r4", name="Gym"),
        ],
        subjects=[Subject(id="math", name="Math")],
        lessons=lessons,
        duty_zones=zones if zones is not None else [
            DutyZone(id="z1", name="Floor 1", rooms=["101", "102"], order=1),
            DutyZone(id="z2", name="Lab wing", rooms=["Lab 201"], order=2),
        ],
    )


@pytest.fixture
def store() -> TimetableStore:
    return make_store([
        lesson("t1", "r1", 1),
        lesson("t1", "r1", 2),
        lesson("t3", "r3", 1),
        lesson("t3", "r3", 3),
        lesson("t4", "r2", 2),
        lesson("t2", "r2", 3),
    ])


class TestRoomInZone:
    """Tests for room_in_zone."""

    def test_exact_label(self):
        """Room matches its exact label."""
        zone = DutyZone(id="z", name="Z", rooms=["Lab 201"])
        assert room_in_zone("Lab 201", zone)

    def test_trailing_number(self):
        """Room matches on its trailing number."""
        zone = DutyZone(id="z", name="Z", rooms=["101", "102"])
        assert room_in_zone("Room 101", zone)
        assert room_in_zone("101", zone)
        assert room_in_zone("Room 0101", zone)
        assert not room_in_zone("Room 103", zone)

    def test_number_against_labelled_member(self):
        """Number against labelled member."""
        zone = DutyZone(id="z", name="Z", rooms=["Lab 201"])
        assert room_in_zone("201", zone)

    def test_room_id(self):
        """Room matches on its id."""
        zone = DutyZone(id="z", name="Z", rooms=["r4"])
        assert room_in_zone("Gym", zone, room_id="r4")

    def test_no_number(self):
        """Room without a number does not match."""
        zone = DutyZone(id="z", name="Z", rooms=["101"])
        assert not room_in_zone("Gym", zone)
        assert not room_in_zone(None, zone)

    def test_lessons_in_zone(self, store):
        """Lessons in zone."""
        zone = store.get_zone("z1")
        assert lessons_in_zone(store, "t1", Day.MONDAY, Shift.FIRST, zone) == 2
        assert lessons_in_zone(store, "t3", Day.MONDAY, Shift.FIRST, zone) == 0
        assert lessons_in_zone(store, "t1", Day.TUESDAY, Shift.FIRST, zone) == 0


class TestScoring:
    """Tests for zone candidate scoring."""

    def test_scores(self, store):
        """Candidates are scored by lessons in the zone."""
        scored = score_zone_candidates(store, Day.MONDAY, Shift.FIRST, store.get_zone("z1"), used=set())
        by_id = {c.teacher.id: c.score for c in scored}
        assert by_id == {"t1": 20, "t2": 10, "t3": -9999, "t4": 10}
        assert scored[0].teacher.id == "t1"

    def test_pool_is_teachers_present_that_shift(self, store):
        """Pool is teachers present that shift."""
        scored = score_zone_candidates(store, Day.MONDAY, Shift.SECOND, store.get_zone("z1"), used=set())
        assert scored == []

    def test_full_day_bonus(self):
        """Full day bonus."""
        store = make_store([
            lesson("t1", "r1", 1),
            lesson("t1", "r4", 2),
            lesson("t1", "r4", 3),
            lesson("t1", "r4", 4),
            lesson("t2", "r2", 1),
        ])
        scored = score_zone_candidates(store, Day.MONDAY, Shift.FIRST, store.get_zone("z1"), used=set())
        by_id = {c.teacher.id: c for c in scored}
        assert by_id["t1"].score == 15
        assert by_id["t1"].total_lessons == 4
        assert by_id["t2"].score == 10

    def test_reuse_penalty(self, store):
        """Teacher already on duty is penalised."""
        scored = score_zone_candidates(store, Day.MONDAY, Shift.FIRST, store.get_zone("z1"), used={"t1"})
        by_id = {c.teacher.id: c for c in scored}
        assert by_id["t1"].score == 20 - 2000
        assert by_id["t1"].already_on_duty
        assert scored[0].teacher.id == "t2"

    def test_ties_keep_teacher_order(self, store):
        """Ties keep teacher order."""
        scored = score_zone_candidates(store, Day.MONDAY, Shift.FIRST, store.get_zone("z1"), used={"t1"})
        assert [c.teacher.id for c in scored][:2] == ["t2", "t4"]


class TestSolveDutyRoster:
    """Tests for solve_duty_roster."""

    def test_greedy_assignment(self, store):
        """Each zone gets the best free candidate."""
        plan = solve_duty_roster(store)
        cells = {(r.zone_id, r.day, r.shift): r.teacher_id for r in plan.records}

        assert cells == {
            ("z1", Day.MONDAY, Shift.FIRST): "t1",
            ("z2", Day.MONDAY, Shift.FIRST): "t3",
        }
        assert plan.assigned_count == 2
        assert len(plan.unassigned) == 5 * 2 * 2 - 2
        assert (Day.MONDAY, Shift.SECOND, "z1") in plan.unassigned

    def test_selected_shifts_only(self, store):
        """Selected shifts only."""
        plan = solve_duty_roster(store, shifts=(Shift.FIRST,))
        assert len(plan.unassigned) == 5 * 2 - 2

    def test_zone_order_matters(self):
        """Zone order matters."""
        # Alice ties for the lab on teacher order and is then used up for the floor
        lessons = [lesson("t1", "r1", 1), lesson("t1", "r3", 2), lesson("t2", "r3", 3)]
        zones = [
            DutyZone(id="lab", name="Lab wing", rooms=["Lab 201"], order=1),
            DutyZone(id="floor", name="Floor 1", rooms=["101"], order=2),
        ]
        plan = solve_duty_roster(make_store(lessons, zones=zones))
        cells = {r.zone_id: r.teacher_id for r in plan.records}
        assert cells == {"lab": "t1"}
        assert (Day.MONDAY, Shift.FIRST, "floor") in plan.unassigned

    def test_no_unnecessary_reuse(self):
        """No unnecessary reuse."""
        lessons = [
            lesson("t1", "r1", 1),
            lesson("t1", "r1", 2),
            lesson("t1", "r3", 3),
            lesson("t1", "r3", 4),
            lesson("t2", "r3", 5),
        ]
        plan = solve_duty_roster(make_store(lessons))
        cells = {r.zone_id: r.teacher_id for r in plan.records}
        assert cells == {"z1": "t1", "z2": "t2"}

    def test_never_reuses_when_alternative_qualifies(self, store):
        """Never reuses when alternative qualifies."""
        plan = solve_duty_roster(store)
        for day in Day:
            for shift in Shift:
                teachers = [r.teacher_id for r in plan.records if r.day == day and r.shift == shift]
                assert len(teachers) == len(set(teachers))

    def test_used_set_spans_both_shifts(self):
        """Used set spans both shifts."""
        lessons = [
            lesson("t1", "r1", 1, shift=Shift.FIRST),
            lesson("t1", "r1", 1, shift=Shift.SECOND),
            lesson("t2", "r2", 2, shift=Shift.SECOND),
        ]
        zones = [DutyZone(id="z1", name="Floor 1", rooms=["101", "102"])]
        plan = solve_duty_roster(make_store(lessons, zones=zones))
        cells = {(r.day, r.shift): r.teacher_id for r in plan.records}
        assert cells == {
            (Day.MONDAY, Shift.FIRST): "t1",
            (Day.MONDAY, Shift.SECOND): "t2",
        }

    def test_used_set_resets_each_weekday(self):
        """Used set resets each weekday."""
        lessons = [
            lesson("t1", "r1", 1, day=Day.MONDAY),
            lesson("t1", "r1", 1, day=Day.TUESDAY),
        ]
        zones = [DutyZone(id="z1", name="Floor 1", rooms=["101"])]
        plan = solve_duty_roster(make_store(lessons, zones=zones))
        assert [(r.day, r.teacher_id) for r in plan.records] == [(Day.MONDAY, "t1"), (Day.TUESDAY, "t1")]

    def test_custom_weights_allow_reuse(self):
        """Custom weights allow reuse."""
        lessons = [lesson("t1", "r1", 1), lesson("t1", "r3", 2)]
        weights = DutyWeights(reuse_penalty=-1)
        plan = solve_duty_roster(make_store(lessons), weights=weights)
        assert {r.zone_id: r.teacher_id for r in plan.records} == {"z1": "t1", "z2": "t1"}

    def test_apply_replaces_roster(self, store):
        """Solving every shift replaces the whole roster."""
        store = assign_duty(store, "z2", Day.FRIDAY, Shift.SECOND, "t4")
        store = apply_duty_roster(store)
        assert len(store.duty_records) == 2
        assert all(r.day == Day.MONDAY for r in store.duty_records)

    def test_apply_keeps_unplanned_shift(self, store):
        """Solving one shift keeps the roster of the other."""
        store = assign_duty(store, "z2", Day.FRIDAY, Shift.SECOND, "t4")
        store = apply_duty_roster(store, shifts=(Shift.FIRST,))
        assert len(store.duty_records) == 3
        kept = [r for r in store.duty_records if r.shift == Shift.SECOND]
        assert [(r.zone_id, r.day, r.teacher_id) for r in kept] == [("z2", Day.FRIDAY, "t4")]


class TestManualEditing:
    """Tests for manual roster edits."""

    def test_assign_and_replace(self, store):
        """Assign and replace."""
        store = assign_duty(store, "z1", Day.MONDAY, Shift.FIRST, "t2")
        store = assign_duty(store, "z1", Day.MONDAY, Shift.FIRST, "t4")
        assert [r.teacher_id for r in store.duty_records] == ["t4"]

    def test_unassign(self, store):
        """Unassigning removes the record."""
        store = assign_duty(store, "z1", Day.MONDAY, Shift.FIRST, "t2")
        store = unassign_duty(store, "z1", Day.MONDAY, Shift.FIRST)
        assert store.duty_records == []

    def test_unknown_zone(self, store):
        """Unknown zone is rejected."""
        with pytest.raises(MissingReferenceError, match="Duty zone 'zz'"):
            assign_duty(store, "zz", Day.MONDAY, Shift.FIRST, "t2")

    def test_unknown_teacher(self, store):
        """Unknown teacher is rejected."""
        with pytest.raises(MissingReferenceError, match="Teacher 'ghost'"):
            assign_duty(store, "z1", Day.MONDAY, Shift.FIRST, "ghost")

    def test_duty_conflicts(self, store):
        """Teacher in two zones at once is reported."""
        store = assign_duty(store, "z1", Day.MONDAY, Shift.FIRST, "t1")
        store = assign_duty(store, "z2", Day.MONDAY, Shift.FIRST, "t1")
        store = assign_duty(store, "z2", Day.MONDAY, Shift.SECOND, "t1")

        conflicts = duty_conflicts(store)
        assert len(conflicts) == 1
        assert conflicts[0].teacher_id == "t1"
        assert conflicts[0].shift == Shift.FIRST
        assert set(conflicts[0].zone_ids) == {"z1", "z2"}

    def test_clear_roster(self, store):
        """Clearing filters by day, shift, or both."""
        store = store.with_duty_records([
            DutyRecord(zone_id="z1", day=Day.MONDAY, shift=Shift.FIRST, teacher_id="t1"),
            DutyRecord(zone_id="z1", day=Day.MONDAY, shift=Shift.SECOND, teacher_id="t1"),
            DutyRecord(zone_id="z1", day=Day.TUESDAY, shift=Shift.FIRST, teacher_id="t2"),
        ])
        assert len(clear_duty_roster(store, day=Day.MONDAY).duty_records) == 1
        assert len(clear_duty_roster(store, shift=Shift.FIRST).duty_records) == 1
        assert len(clear_duty_roster(store, day=Day.MONDAY, shift=Shift.FIRST).duty_records) == 2
        assert clear_duty_roster(store).duty_records == []

    def test_recommendations(self, store):
        """Teachers already on duty drop out of the recommendations."""
        store = assign_duty(store, "z2", Day.MONDAY, Shift.FIRST, "t4")
        recommended, others = duty_recommendations(store, "z1", Day.MONDAY, Shift.FIRST)

        assert [c.teacher.id for c in recommended] == ["t1", "t2"]
        assert recommended[0].lessons_in_zone == 2
        assert {c.teacher.id for c in others} == {"t3", "t4"}
        dan = next(c for c in others if c.teacher.id == "t4")
        assert dan.already_on_duty
