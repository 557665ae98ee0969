"""
Command-line interface for the school rota engine.

Usage:
    python -m rota validate school.json
    python -m rota conflicts school.json --half 1
    python -m rota candidates school.json L001 --date 2024-10-07
    python -m rota duty school.json -o school.rostered.json
    python -m rota status school.json --at 2024-10-07T08:50
    python -m rota summary school.json --date 2024-10-07
    python -m rota whereis school.json T001 --at 2024-10-07T10:00
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .data.loader import load_school_data, save_school_data
from .data.models import Day, HalfYear, Shift, day_name
from .data.store import SchoolData, TimetableStore
from .engine.absences import absence_overview, affected_lessons
from .engine.advisories import day_problems, teacher_advisories
from .engine.candidates import rank_candidates, recommended_candidates
from .engine.core import school_day
from .engine.clock import ClockState, FixedClock, LivePeriodClock, SystemClock
from .engine.conflicts import find_all_conflicts
from .engine.duty import duty_conflicts, solve_duty_roster
from .engine.whereabouts import Whereabouts, locate_teacher
from .errors import RotaError
from .output.notify import format_day_summary

# Create Typer app
app = typer.Typer(
    name="rota",
    help="School timetable, substitution and duty roster tools.",
    add_completion=False,
)

# Rich console for pretty output
console = Console()

DATE_FORMATS = ["%Y-%m-%d"]
MOMENT_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]


@app.callback()
def setup(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log engine decisions",
    ),
) -> None:
    """School timetable, substitution and duty roster tools."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


# =============================================================================
# Helper Functions
# =============================================================================

def load_data(input_path: Path) -> SchoolData:
    """Load and validate a school data file."""
    if not input_path.exists():
        console.print(f"[red]Error:[/red] Input file not found: {input_path}")
        raise typer.Exit(code=1)

    try:
        return load_school_data(input_path)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON:[/red] {e}")
        raise typer.Exit(code=1)
    except RotaError as e:
        console.print(f"[red]Error loading input:[/red] {e}")
        raise typer.Exit(code=1)
    except OSError as e:
        console.print(f"[red]Error reading input:[/red] {e}")
        raise typer.Exit(code=1)


def select_store(school: SchoolData, half: Optional[int], on: date) -> TimetableStore:
    """Store for an explicit half-year, else the half-year of ``on``."""
    if half is not None:
        if half not in (1, 2):
            console.print(f"[red]Error:[/red] Half-year must be 1 or 2, got {half}")
            raise typer.Exit(code=1)
        return school.store(HalfYear(half))
    return school.store_for_date(on)


def fail(error: RotaError) -> None:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================

@app.command()
def validate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to school data JSON file",
    ),
) -> None:
    """
    Validate a school data file.

    Checks structure, references and duty roster uniqueness, then lists
    advisory warnings (teachers without a shift, duplicate duty).

    Example:
        python -m rota validate school.json
    """
    console.print(f"\n[bold]Validating:[/bold] {input_file}\n")
    school = load_data(input_file)
    console.print("[green]Structure and references are valid[/green]")

    warnings: list[str] = []
    for teacher in school.teachers:
        warnings.extend(str(a) for a in teacher_advisories(teacher))
    # Duty records are shared by both half-years
    store = school.store(HalfYear.FIRST)
    for conflict in duty_conflicts(store):
        teacher = store.get_teacher(conflict.teacher_id)
        warnings.append(
            f"{teacher.name if teacher else conflict.teacher_id} is on duty in "
            f"{len(conflict.zone_ids)} zones on {day_name(conflict.day)} ({conflict.shift.value} shift)"
        )

    if warnings:
        console.print("[yellow]Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")

    table = Table(show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")
    for key, value in school.summary().items():
        table.add_row(key.replace("_", " ").capitalize(), str(value if value is not None else "-"))
    console.print(table)
    console.print("\n[green]Validation complete.[/green]\n")


@app.command()
def conflicts(
    input_file: Path = typer.Argument(..., help="Path to school data JSON file"),
    half: Optional[int] = typer.Option(None, "--half", help="Half-year (1 or 2); defaults to today's"),
    day: Optional[int] = typer.Option(None, "--day", "-d", min=0, max=4, help="Weekday 0-4"),
) -> None:
    """List timetable conflicts (teacher, class, room)."""
    school = load_data(input_file)
    store = select_store(school, half, date.today())
    reports = find_all_conflicts(store, day=Day(day) if day is not None else None)

    if not reports:
        console.print(f"[green]No conflicts in half-year {int(store.half_year)}[/green]")
        return

    table = Table(title=f"Conflicts, half-year {int(store.half_year)}")
    table.add_column("Day")
    table.add_column("Shift")
    table.add_column("Period", justify="right")
    table.add_column("Lesson", style="cyan")
    table.add_column("Class")
    table.add_column("Teacher")
    table.add_column("Clashes", style="red")
    for report in reports:
        lesson = report.lesson
        cls = store.get_class(lesson.class_id)
        teacher = store.get_teacher(lesson.teacher_id)
        table.add_row(
            day_name(lesson.day),
            lesson.shift.value,
            str(lesson.period),
            lesson.id,
            cls.name if cls else lesson.class_id,
            teacher.name if teacher else lesson.teacher_id,
            ", ".join(sorted(t.value for t in report.tags)),
        )
    console.print(table)


@app.command()
def candidates(
    input_file: Path = typer.Argument(..., help="Path to school data JSON file"),
    lesson_id: str = typer.Argument(..., help="Lesson needing cover"),
    on: datetime = typer.Option(..., "--date", formats=DATE_FORMATS, help="Date of the lesson"),
    search: str = typer.Option("", "--search", "-s", help="Filter teachers by name"),
    half: Optional[int] = typer.Option(None, "--half", help="Half-year (1 or 2); defaults to the date's"),
) -> None:
    """Rank substitute teachers for a lesson."""
    school = load_data(input_file)
    store = select_store(school, half, on.date())
    try:
        ranked = rank_candidates(store, lesson_id, on.date(), search=search)
    except RotaError as e:
        fail(e)

    recommended = {c.teacher.id for c in recommended_candidates(ranked, store.config.ranking.recommended_limit)}

    table = Table(title=f"Candidates for {lesson_id} on {on.date().isoformat()}")
    table.add_column("#", justify="right")
    table.add_column("Teacher", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    table.add_column("This month", justify="right")
    for rank, c in enumerate(ranked, 1):
        flags = []
        if c.teacher.id in recommended:
            flags.append("[green]recommended[/green]")
        if c.is_specialist:
            flags.append("specialist")
        if c.is_busy:
            flags.append("[yellow]busy[/yellow]")
        if c.is_absent:
            flags.append("[red]absent[/red]")
        table.add_row(str(rank), c.teacher.name, str(c.score), ", ".join(flags), str(c.monthly_substitution_count))
    console.print(table)


@app.command()
def duty(
    input_file: Path = typer.Argument(..., help="Path to school data JSON file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the dataset with the new roster here"),
    half: Optional[int] = typer.Option(None, "--half", help="Half-year (1 or 2); defaults to today's"),
) -> None:
    """Generate the duty roster for every weekday, shift and zone."""
    school = load_data(input_file)
    store = select_store(school, half, date.today())
    plan = solve_duty_roster(store)

    zone_names = {z.id: z.name for z in store.duty_zones}
    for shift in Shift:
        table = Table(title=f"Duty roster, {shift.value} shift")
        table.add_column("Zone", style="cyan")
        for d in Day:
            table.add_column(day_name(d))
        for zone in store.sorted_zones():
            cells = []
            for d in Day:
                record = next(
                    (r for r in plan.records if r.zone_id == zone.id and r.day == d and r.shift == shift),
                    None,
                )
                teacher = store.get_teacher(record.teacher_id) if record else None
                cells.append(teacher.name if teacher else "[dim]-[/dim]")
            table.add_row(zone_names[zone.id], *cells)
        console.print(table)

    console.print(f"\nAssigned {plan.assigned_count}, unassigned {len(plan.unassigned)}")

    if output:
        school = school.commit(store.with_duty_records(plan.records))
        save_school_data(school, output)
        console.print(f"[green]Roster written to:[/green] {output}")


@app.command()
def status(
    input_file: Path = typer.Argument(..., help="Path to school data JSON file"),
    at: Optional[datetime] = typer.Option(None, "--at", formats=MOMENT_FORMATS, help="Moment to evaluate instead of now"),
) -> None:
    """Show the current period or break."""
    school = load_data(input_file)
    source = FixedClock(at) if at else SystemClock()
    clock = LivePeriodClock(school.bell_schedule, source=source, settings=school.config.clock)
    current = clock.status()

    style = {
        ClockState.IN_LESSON: "blue",
        ClockState.BREAK: "yellow",
    }.get(current.state, "white")
    body = current.describe()
    if current.is_active:
        body += f"\nProgress: {current.progress:.0f}%"
    console.print(Panel(body, title=source.now().strftime("%A %H:%M"), border_style=style))


@app.command()
def summary(
    input_file: Path = typer.Argument(..., help="Path to school data JSON file"),
    on: datetime = typer.Option(..., "--date", formats=DATE_FORMATS, help="Date to summarize"),
) -> None:
    """Show absences, uncovered lessons and the substitution summary for a date."""
    school = load_data(input_file)
    store = school.store_for_date(on.date())
    try:
        pending, resolved = affected_lessons(store, on.date())
    except RotaError as e:
        fail(e)

    absentees = absence_overview(store, on.date())
    if absentees:
        console.print("[bold]Absent:[/bold]")
        for entry in absentees:
            console.print(f"  - {entry.describe()}")
    console.print(f"Lessons needing cover: {len(pending)} (resolved {len(resolved)})\n")

    console.print(format_day_summary(store, on.date()), markup=False)

    problems = day_problems(store, school_day(on.date()), limit=10)
    if problems:
        console.print("\n[yellow]Timetable problems:[/yellow]")
        for problem in problems:
            console.print(f"  - {problem}")


@app.command()
def whereis(
    input_file: Path = typer.Argument(..., help="Path to school data JSON file"),
    teacher: str = typer.Argument(..., help="Teacher id or part of the name"),
    at: Optional[datetime] = typer.Option(None, "--at", formats=MOMENT_FORMATS, help="Moment to evaluate instead of now"),
) -> None:
    """Find where a teacher is at a moment."""
    school = load_data(input_file)
    moment = at or datetime.now()
    store = school.store_for_date(moment.date())

    match = store.get_teacher(teacher) or next(
        (t for t in store.teachers if teacher.lower() in t.name.lower()), None
    )
    if match is None:
        console.print(f"[red]Error:[/red] No teacher matches '{teacher}'")
        raise typer.Exit(code=1)

    location = locate_teacher(store, match.id, moment)
    labels = {
        Whereabouts.NO_SCHOOL: "No school today",
        Whereabouts.ABSENT: f"Absent ({location.reason or 'no reason given'})",
        Whereabouts.BETWEEN_LESSONS: "Between lessons",
        Whereabouts.FREE_PERIOD: "Free period",
        Whereabouts.TEACHING: "Teaching",
    }
    console.print(f"[bold]{match.name}[/bold]: {labels[location.status]}")
    for item in location.items:
        line = f"  - {item.class_name}, {item.subject_name}, room {item.room or '-'}"
        if item.covering_for:
            line += f" (covering for {item.covering_for})"
        elif item.is_substitution:
            line += " (room change)"
        console.print(line)


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
