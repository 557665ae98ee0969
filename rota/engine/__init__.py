"""
Scheduling and substitution engine.

Every operation takes a ``TimetableStore`` for an explicitly chosen
half-year. Queries return plain results; writes return a new store.
"""

from .core import school_day, lesson_on

from .conflicts import (
    ConflictTag,
    ConflictReport,
    detect_conflicts,
    check_lesson,
    find_all_conflicts,
)

from .candidates import (
    Candidate,
    busy_teacher_ids,
    monthly_substitution_count,
    rank_candidates,
    recommended_candidates,
    toggle_declined,
    assign_substitute,
    reassign_room,
    mark_conducted,
    mark_cancelled,
    remove_substitution,
)

from .swaps import (
    MergeOption,
    swap_targets,
    plan_swap,
    apply_swap,
    merge_options,
    merge_into,
)

from .duty import (
    DutyCandidate,
    DutyPlan,
    DutyConflict,
    room_in_zone,
    solve_duty_roster,
    apply_duty_roster,
    assign_duty,
    unassign_duty,
    clear_duty_roster,
    duty_conflicts,
    duty_recommendations,
)

from .clock import (
    ClockState,
    PeriodStatus,
    ClockSource,
    SystemClock,
    FixedClock,
    LivePeriodClock,
    bells_for_day,
    period_status,
)

from .absences import (
    AbsenteeEntry,
    mark_absent,
    clear_absence,
    affected_lessons,
    absence_overview,
)

from .whereabouts import (
    Whereabouts,
    TeachingItem,
    TeacherLocation,
    locate_teacher,
)

from .advisories import (
    Advisory,
    room_advisories,
    teacher_advisories,
    day_problems,
)


__all__ = [
    # Shared helpers
    "school_day",
    "lesson_on",
    # Conflicts
    "ConflictTag",
    "ConflictReport",
    "detect_conflicts",
    "check_lesson",
    "find_all_conflicts",
    # Candidates
    "Candidate",
    "busy_teacher_ids",
    "monthly_substitution_count",
    "rank_candidates",
    "recommended_candidates",
    "toggle_declined",
    "assign_substitute",
    "reassign_room",
    "mark_conducted",
    "mark_cancelled",
    "remove_substitution",
    # Swaps and mergers
    "MergeOption",
    "swap_targets",
    "plan_swap",
    "apply_swap",
    "merge_options",
    "merge_into",
    # Duty roster
    "DutyCandidate",
    "DutyPlan",
    "DutyConflict",
    "room_in_zone",
    "solve_duty_roster",
    "apply_duty_roster",
    "assign_duty",
    "unassign_duty",
    "clear_duty_roster",
    "duty_conflicts",
    "duty_recommendations",
    # Clock
    "ClockState",
    "PeriodStatus",
    "ClockSource",
    "SystemClock",
    "FixedClock",
    "LivePeriodClock",
    "bells_for_day",
    "period_status",
    # Absences
    "AbsenteeEntry",
    "mark_absent",
    "clear_absence",
    "affected_lessons",
    "absence_overview",
    # Whereabouts
    "Whereabouts",
    "TeachingItem",
    "TeacherLocation",
    "locate_teacher",
    # Advisories
    "Advisory",
    "room_advisories",
    "teacher_advisories",
    "day_problems",
]
