"""
Pydantic models for the school rota data model.

Conventions:
- Weekdays are 0-4 (Monday-Friday); weekends carry no lessons
- Shifts are "first" (periods 1-7) and "second" (periods 0-6)
- Bell times are "HH:MM" strings; helpers convert to minutes from midnight

Example times:
- 8:00 AM = 480
- 8:45 AM = 525
"""

from __future__ import annotations

import uuid
import datetime
from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# Constants and Enums
# =============================================================================

class Day(int, Enum):
    """Day of week: 0=Monday through 4=Friday."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4


class Shift(str, Enum):
    """Daily school session."""
    FIRST = "first"
    SECOND = "second"


class HalfYear(int, Enum):
    """Half of the school year; each has its own recurring timetable."""
    FIRST = 1
    SECOND = 2


class RoomType(str, Enum):
    """Type of room. Subjects use ANY when they fit in any room."""
    ANY = "any"
    GENERAL = "general"
    GYM = "gym"
    SCIENCE_LAB = "science_lab"
    PHYSICS_LAB = "physics_lab"
    COMPUTER_LAB = "computer_lab"
    MUSIC_ROOM = "music_room"
    WORKSHOP = "workshop"
    ASSEMBLY_HALL = "assembly_hall"
    OTHER = "other"


SHIFT_PERIODS: dict[Shift, tuple[int, ...]] = {
    Shift.FIRST: (1, 2, 3, 4, 5, 6, 7),
    Shift.SECOND: (0, 1, 2, 3, 4, 5, 6),
}

DEFAULT_ABSENCE_REASON = "Sick leave"

TimeOfDay = Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$", description="Time as HH:MM")]


# =============================================================================
# Helper Functions
# =============================================================================

def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to HH:MM format."""
    h, m = divmod(minutes, 60)
    return f"{h:02d}:{m:02d}"


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM format to minutes from midnight."""
    h, m = map(int, time_str.split(":"))
    return h * 60 + m


def day_name(day: int) -> str:
    """Get day name from index."""
    names = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    return names[day] if 0 <= day <= 4 else f"Day {day}"


def weekday_of(on: date) -> Optional[Day]:
    """School weekday for a calendar date, or None on weekends."""
    idx = on.weekday()
    return Day(idx) if idx <= 4 else None


def _new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# Configuration Models
# =============================================================================

class RankingWeights(BaseModel):
    """Score contributions used when ranking substitute candidates."""
    model_config = ConfigDict(extra="forbid")

    absent: int = Field(default=-1000, description="Teacher is absent on the date")
    busy: int = Field(default=-100, description="Teacher already occupied in that slot")
    specialist: int = Field(default=50, description="Teacher holds the lesson's subject")
    recommended_limit: int = Field(default=3, ge=0, description="Size of the recommended short-list")


class DutyWeights(BaseModel):
    """Heuristic constants for the duty roster solver."""
    model_config = ConfigDict(extra="forbid")

    per_zone_lesson: int = Field(default=10, description="Per lesson taught inside the zone")
    full_day_bonus: int = Field(default=5, description="Bonus for teachers present most of the shift")
    full_day_threshold: int = Field(default=4, ge=1, description="Lessons needed for the bonus")
    reuse_penalty: int = Field(default=-2000, description="Teacher already on duty that weekday")
    disqualified: int = Field(default=-9999, description="Score for teachers with no lessons in the zone")
    qualify_threshold: int = Field(default=-500, description="Scores at or below this are never picked")


class ClockSettings(BaseModel):
    """Live period clock settings."""
    model_config = ConfigDict(extra="forbid")

    max_break_minutes: int = Field(default=60, ge=1, description="Gaps this long or longer are not breaks")


class SchoolConfig(BaseModel):
    """School-wide configuration settings."""
    model_config = ConfigDict(extra="forbid")

    school_name: Optional[str] = Field(default=None, description="School name")
    academic_year: Optional[str] = Field(default=None, description="Academic year")
    second_half_months: list[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5],
        description="Calendar months (1-12) that belong to the second half-year",
    )
    history_limit: int = Field(default=50, ge=1, description="Undo history depth")
    ranking: RankingWeights = Field(default_factory=RankingWeights)
    duty: DutyWeights = Field(default_factory=DutyWeights)
    clock: ClockSettings = Field(default_factory=ClockSettings)

    @field_validator("second_half_months")
    @classmethod
    def validate_months(cls, months: list[int]) -> list[int]:
        bad = [m for m in months if not 1 <= m <= 12]
        if bad:
            raise ValueError(f"second_half_months contains invalid months: {bad}")
        return months


def half_year_for(on: date, config: Optional[SchoolConfig] = None) -> HalfYear:
    """Half-year a calendar date belongs to (Jan-May is the second half by default)."""
    months = (config or SchoolConfig()).second_half_months
    return HalfYear.SECOND if on.month in months else HalfYear.FIRST


# =============================================================================
# Core Entity Models
# =============================================================================

class Teacher(BaseModel):
    """Teacher entity."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Full name")
    subject_ids: list[str] = Field(default_factory=list, description="Subjects this teacher can teach")
    shifts: list[Shift] = Field(default_factory=list, description="Shifts the teacher works")
    unavailable_dates: list[date] = Field(default_factory=list, description="Dates the teacher is absent")
    absence_reasons: dict[date, str] = Field(default_factory=dict, description="Reason per absent date")
    birth_date: Optional[date] = Field(default=None)
    notify_address: Optional[str] = Field(default=None, description="External messaging address")
    order: Optional[int] = Field(default=None, description="Display order")

    def is_absent(self, on: date) -> bool:
        return on in self.unavailable_dates

    def absence_reason(self, on: date) -> Optional[str]:
        return self.absence_reasons.get(on)

    def __str__(self) -> str:
        return self.name


class ClassGroup(BaseModel):
    """Student class."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Class name (e.g., '5A')")
    shift: Shift = Field(default=Shift.FIRST)
    student_count: int = Field(default=0, ge=0)
    exclude_from_conflicts: bool = Field(default=False, description="Skip class conflict checks")
    order: Optional[int] = Field(default=None)

    def __str__(self) -> str:
        return self.name


class Room(BaseModel):
    """Room/facility."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Room name/number")
    capacity: int = Field(default=30, ge=0, description="Seats")
    type: RoomType = Field(default=RoomType.GENERAL)
    order: Optional[int] = Field(default=None)

    def __str__(self) -> str:
        return f"{self.name} ({self.type.value})"


class Subject(BaseModel):
    """Subject/course."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Subject name")
    difficulty: int = Field(default=0, ge=0, description="Relative difficulty weight")
    required_room_type: RoomType = Field(default=RoomType.ANY)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    order: Optional[int] = Field(default=None)

    def __str__(self) -> str:
        return self.name


class LessonSlot(BaseModel):
    """One recurring weekly timetable entry."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    class_id: str = Field(description="Class ID")
    subject_id: str = Field(description="Subject ID")
    teacher_id: str = Field(description="Teacher ID")
    room_id: Optional[str] = Field(default=None, description="Room ID")
    day: Day = Field(description="Weekday")
    period: int = Field(description="Period number within the shift")
    shift: Shift = Field(description="Shift")
    track: Optional[str] = Field(default=None, description="Group or track label")

    @model_validator(mode="after")
    def validate_period(self) -> "LessonSlot":
        """Period must exist in the lesson's shift."""
        valid = SHIFT_PERIODS[self.shift]
        if self.period not in valid:
            raise ValueError(
                f"period {self.period} is not valid for the {self.shift.value} shift "
                f"(expected {valid[0]}-{valid[-1]})"
            )
        return self

    @property
    def slot(self) -> tuple[Day, int, Shift]:
        """(weekday, period, shift); lessons sharing it can conflict."""
        return (self.day, self.period, self.shift)

    def __str__(self) -> str:
        return f"Lesson {self.id}: {day_name(self.day)} P{self.period} ({self.shift.value})"


# =============================================================================
# Substitutions
# =============================================================================

class TeacherReplacement(BaseModel):
    """The lesson is taken by a teacher."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["teacher"] = "teacher"
    teacher_id: str = Field(min_length=1)


class ConductedReplacement(BaseModel):
    """The lesson happened as planned."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["conducted"] = "conducted"


class CancelledReplacement(BaseModel):
    """The lesson is dropped for the day."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["cancelled"] = "cancelled"


Replacement = Annotated[
    Union[TeacherReplacement, ConductedReplacement, CancelledReplacement],
    Field(discriminator="kind"),
]


class Substitution(BaseModel):
    """A date-scoped overlay on one lesson; at most one per (date, lesson)."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=_new_id)
    date: datetime.date
    lesson_id: str = Field(min_length=1)
    original_teacher_id: str
    replacement: Replacement
    replacement_room_id: Optional[str] = None
    absence_reason: Optional[str] = None
    merger: bool = False
    declined_teacher_ids: list[str] = Field(default_factory=list)
    override_class_id: Optional[str] = None
    override_subject_id: Optional[str] = None

    @field_validator("replacement", mode="before")
    @classmethod
    def parse_legacy_replacement(cls, value: Any) -> Any:
        """Accept a bare teacher id or the 'conducted'/'cancelled' sentinels."""
        if isinstance(value, str):
            if value in ("conducted", "cancelled"):
                return {"kind": value}
            return {"kind": "teacher", "teacher_id": value}
        return value

    @property
    def key(self) -> tuple[date, str]:
        return (self.date, self.lesson_id)

    @property
    def replacement_teacher_id(self) -> Optional[str]:
        """Teacher taking the lesson, or None for conducted/cancelled."""
        if isinstance(self.replacement, TeacherReplacement):
            return self.replacement.teacher_id
        return None

    @property
    def is_cancelled(self) -> bool:
        return isinstance(self.replacement, CancelledReplacement)

    @property
    def is_conducted(self) -> bool:
        return isinstance(self.replacement, ConductedReplacement)

    @property
    def is_swap(self) -> bool:
        return self.override_class_id is not None and not self.merger


# =============================================================================
# Duty and Bells
# =============================================================================

class DutyZone(BaseModel):
    """A physical area that needs a supervising teacher."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    floor: Optional[str] = None
    rooms: list[str] = Field(default_factory=list, description="Room names/numbers covered")
    order: Optional[int] = None


class DutyRecord(BaseModel):
    """Teacher on duty in one zone for a weekday and shift."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=_new_id)
    zone_id: str
    day: Day
    shift: Shift
    teacher_id: str


class BellSlot(BaseModel):
    """Start and end of one period. A day of None is the default for all weekdays."""
    model_config = ConfigDict(extra="forbid")

    shift: Shift
    period: int
    day: Optional[Day] = None
    start: TimeOfDay
    end: TimeOfDay
    cancelled: bool = False

    @field_validator("day", mode="before")
    @classmethod
    def parse_default_day(cls, value: Any) -> Any:
        if value == "default":
            return None
        return value

    @model_validator(mode="after")
    def validate_time_range(self) -> "BellSlot":
        """Ensure start time is before end time."""
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"start ({self.start}) must be before end ({self.end})")
        return self

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def __str__(self) -> str:
        return f"P{self.period} ({self.shift.value}) {self.start}-{self.end}"


class BellPreset(BaseModel):
    """A named, complete set of bell slots."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1)
    bells: list[BellSlot] = Field(default_factory=list)


DEFAULT_BELLS: list[BellSlot] = [
    BellSlot(shift=Shift.FIRST, period=1, start="08:00", end="08:45"),
    BellSlot(shift=Shift.FIRST, period=2, start="08:55", end="09:40"),
    BellSlot(shift=Shift.FIRST, period=3, start="09:50", end="10:35"),
    BellSlot(shift=Shift.FIRST, period=4, start="10:55", end="11:40"),
    BellSlot(shift=Shift.FIRST, period=5, start="11:50", end="12:35"),
    BellSlot(shift=Shift.FIRST, period=6, start="12:40", end="13:25"),
    BellSlot(shift=Shift.FIRST, period=7, start="13:30", end="14:15"),
    BellSlot(shift=Shift.SECOND, period=0, start="13:30", end="14:15"),
    BellSlot(shift=Shift.SECOND, period=1, start="14:20", end="15:05"),
    BellSlot(shift=Shift.SECOND, period=2, start="15:15", end="16:00"),
    BellSlot(shift=Shift.SECOND, period=3, start="16:10", end="16:55"),
    BellSlot(shift=Shift.SECOND, period=4, start="17:05", end="17:50"),
    BellSlot(shift=Shift.SECOND, period=5, start="18:00", end="18:45"),
    BellSlot(shift=Shift.SECOND, period=6, start="18:50", end="19:35"),
]
