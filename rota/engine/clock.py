"""
Live period clock.

Derives what is happening right now from the bell schedule:

- NO_SCHOOL: weekend
- IN_LESSON: start <= now < end of a bell slot
- BREAK: between two consecutive slots of the same shift, when the gap is
  shorter than ``ClockSettings.max_break_minutes``
- IDLE: anything else (before the first bell, after the last, long gaps)

Times are compared at minute resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Protocol

from ..data.models import BellSlot, ClockSettings, Day, Shift, weekday_of


class ClockState(str, Enum):
    NO_SCHOOL = "no_school"
    IN_LESSON = "in_lesson"
    BREAK = "break"
    IDLE = "idle"


@dataclass
class PeriodStatus:
    """Snapshot of the clock at one moment."""
    state: ClockState
    day: Optional[Day] = None
    shift: Optional[Shift] = None
    period: Optional[int] = None
    next_period: Optional[int] = None
    elapsed_minutes: int = 0
    remaining_minutes: int = 0
    progress: float = 0.0

    @property
    def is_active(self) -> bool:
        return self.state in (ClockState.IN_LESSON, ClockState.BREAK)

    def describe(self) -> str:
        """One-line text for a status widget."""
        if self.state == ClockState.NO_SCHOOL:
            return "No school today"
        if self.state == ClockState.IN_LESSON:
            return f"Period {self.period} ({self.shift.value} shift), {self.remaining_minutes} min left"
        if self.state == ClockState.BREAK:
            return f"Break, period {self.next_period} in {self.remaining_minutes} min"
        return "No lessons right now"


def bells_for_day(bells: Iterable[BellSlot], day: Day) -> list[BellSlot]:
    """
    Bell slots in effect on a weekday.

    Weekday-specific slots replace the ``default`` ones entirely. Cancelled
    slots are dropped; the rest are sorted by start time.
    """
    bells = list(bells)
    daily = [b for b in bells if b.day == day]
    if not daily:
        daily = [b for b in bells if b.day is None]
    return sorted((b for b in daily if not b.cancelled), key=lambda b: (b.start_minutes, b.shift.value))


def _progress(passed: int, duration: int) -> float:
    if duration <= 0:
        return 0.0
    return min(100.0, max(0.0, passed / duration * 100))


def _shift_status(
    minutes: int,
    slots: list[BellSlot],
    day: Day,
    max_break: int,
) -> Optional[PeriodStatus]:
    """In-lesson or break status within one shift's ordered slots."""
    for i, slot in enumerate(slots):
        start, end = slot.start_minutes, slot.end_minutes
        if start <= minutes < end:
            passed = minutes - start
            return PeriodStatus(
                state=ClockState.IN_LESSON,
                day=day,
                shift=slot.shift,
                period=slot.period,
                elapsed_minutes=passed,
                remaining_minutes=end - minutes,
                progress=_progress(passed, slot.duration_minutes),
            )

        if i + 1 < len(slots):
            following = slots[i + 1]
            gap = following.start_minutes - end
            if end <= minutes < following.start_minutes and 0 < gap < max_break:
                passed = minutes - end
                return PeriodStatus(
                    state=ClockState.BREAK,
                    day=day,
                    shift=slot.shift,
                    period=slot.period,
                    next_period=following.period,
                    elapsed_minutes=passed,
                    remaining_minutes=following.start_minutes - minutes,
                    progress=_progress(passed, gap),
                )
    return None


def period_status(
    now: datetime,
    bells: Iterable[BellSlot],
    shift: Optional[Shift] = None,
    settings: Optional[ClockSettings] = None,
) -> PeriodStatus:
    """
    Clock state at ``now``.

    Args:
        now: Wall-clock time
        bells: The live bell schedule
        shift: Restrict to one shift; by default both are checked and a
            lesson in either shift wins over a break
        settings: Break cutoff override

    Returns:
        PeriodStatus for the moment
    """
    settings = settings or ClockSettings()
    day = weekday_of(now.date())
    if day is None:
        return PeriodStatus(state=ClockState.NO_SCHOOL)

    minutes = now.hour * 60 + now.minute
    daily = bells_for_day(bells, day)
    shifts = [shift] if shift else list(Shift)

    found = [
        status for status in (
            _shift_status(minutes, [b for b in daily if b.shift == s], day, settings.max_break_minutes)
            for s in shifts
        )
        if status is not None
    ]
    for state in (ClockState.IN_LESSON, ClockState.BREAK):
        for status in found:
            if status.state == state:
                return status

    return PeriodStatus(state=ClockState.IDLE, day=day)


# =============================================================================
# Clock sources
# =============================================================================

class ClockSource(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Local wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """A clock stopped at one moment; ``set`` moves it."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment


class LivePeriodClock:
    """Period status against a bell schedule and a replaceable time source."""

    def __init__(
        self,
        bells: Iterable[BellSlot],
        source: Optional[ClockSource] = None,
        settings: Optional[ClockSettings] = None,
    ):
        self.bells = list(bells)
        self.source = source or SystemClock()
        self.settings = settings or ClockSettings()

    def status(self, shift: Optional[Shift] = None) -> PeriodStatus:
        return period_status(self.source.now(), self.bells, shift=shift, settings=self.settings)
