"""
Command-line interface for the timetable engine.

Usage:
    python -m timetable_engine solve problem.json -o solution.json --timeout 60
    python -m timetable_engine validate problem.json
    python -m timetable_engine generate problem.json --size small --seed 42
    python -m timetable_engine view solution.json --class 5a
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from .assembler import ProblemAssembler, ProblemAssemblyError
from .config import ConstructionStrategy, SolverConfig, load_config
from .data.generator import generate_large_problem, generate_medium_problem, generate_small_problem
from .data.models import ProblemInput, day_name, load_problem_from_json
from .output import TimetableSolution, UnresolvedAssignmentError, build_solution
from .output.schema import EntitySchedule
from .search import SolverOrchestrator

# Create Typer app
app = typer.Typer(
    name="timetable-engine",
    help="School timetable engine: construction heuristics plus local search.",
    add_completion=False,
)

# Rich console for pretty output
console = Console()

DAY_MAP = {day_name(i).lower(): i for i in range(5)}


class ProblemSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


# =============================================================================
# Helper Functions
# =============================================================================

def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_input(input_path: Path) -> ProblemInput:
    """Load and validate input data."""
    if not input_path.exists():
        console.print(f"[red]Error:[/red] Input file not found: {input_path}")
        raise typer.Exit(code=1)

    try:
        return load_problem_from_json(input_path)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error loading input:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def load_solver_config(config_path: Optional[Path]) -> SolverConfig:
    """Load the solver configuration, or the defaults."""
    if config_path is None:
        return SolverConfig()

    try:
        return load_config(config_path)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error loading config:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def load_output(output_path: Path) -> TimetableSolution:
    """Load a solution JSON file."""
    if not output_path.exists():
        console.print(f"[red]Error:[/red] Solution file not found: {output_path}")
        raise typer.Exit(code=1)

    try:
        with open(output_path) as f:
            data = json.load(f)
        return TimetableSolution.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error loading solution:[/red] {e}")
        raise typer.Exit(code=1)


def print_summary(solution: TimetableSolution) -> None:
    """Print solution summary to console."""
    # Status panel
    status_color = "green" if solution.is_feasible else "red"
    status_text = Text(solution.status.value.upper(), style=f"bold {status_color}")

    console.print(Panel(
        status_text,
        title=f"Term {solution.term_id}",
        subtitle=f"Solved in {solution.solve_time_seconds:.2f}s ({solution.termination_reason or 'still solving'})"
    ))

    # Summary table
    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Score", str(solution.score))
    table.add_row("Lessons", str(len(solution.lessons)))
    table.add_row("Classes", str(len(solution.views.by_class)))
    table.add_row("Teachers", str(len(solution.views.by_teacher)))
    table.add_row("Rooms Used", str(len(solution.views.by_room)))
    table.add_row("Moves Evaluated", str(solution.moves_evaluated))

    console.print(table)

    if solution.score.constraint_scores:
        breakdown = Table(title="Constraint Scores", show_header=True, header_style="bold cyan")
        breakdown.add_column("Constraint")
        breakdown.add_column("Score", justify="right")
        for name, score in solution.score.constraint_scores.items():
            breakdown.add_row(name, str(score))
        console.print(breakdown)


def print_violations(solution: TimetableSolution, limit: int = 20) -> None:
    """Print the first hard violations and soft penalties."""
    if not solution.violations:
        console.print("[green]No violations.[/green]")
        return

    table = Table(title="Violations", show_header=True, header_style="bold cyan")
    table.add_column("Constraint")
    table.add_column("Score")
    table.add_column("Lessons")

    for violation in solution.violations[:limit]:
        style = "red" if violation.hard else "yellow"
        table.add_row(
            f"[{style}]{violation.constraint_name}[/{style}]",
            violation.score,
            ", ".join(violation.affected_lesson_ids),
        )

    console.print(table)
    if len(solution.violations) > limit:
        console.print(f"[dim]... and {len(solution.violations) - limit} more[/dim]")


# =============================================================================
# Commands
# =============================================================================

@app.command()
def solve(
    input_file: Path = typer.Argument(
        ...,
        help="Path to problem JSON file",
        exists=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Path to write solution JSON file",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout", "-t",
        help="Local search time limit in seconds (overrides config)",
        min=0.1,
        max=3600,
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to solver config JSON file",
    ),
    construction: Optional[ConstructionStrategy] = typer.Option(
        None,
        "--construction",
        help="Construction strategy (overrides config)",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible runs",
    ),
    explain: bool = typer.Option(
        False,
        "--explain", "-e",
        help="List constraint violations",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """
    Solve a timetabling problem.

    Loads the problem, builds the planning model, runs construction and local
    search, and outputs the solution.

    Example:
        python -m timetable_engine solve problem.json -o solution.json --timeout 60
    """
    configure_logging(verbose)
    console.print(f"\n[bold]Loading problem from:[/bold] {input_file}")

    problem = load_input(input_file)
    config = load_solver_config(config_file)

    overrides = {}
    if timeout is not None:
        overrides["termination"] = config.termination.model_copy(
            update={"time_limit_seconds": timeout}
        )
    if construction is not None:
        overrides["construction"] = construction
    if seed is not None:
        overrides["random_seed"] = seed
    if overrides:
        config = config.model_copy(update=overrides)

    summary = problem.summary()
    console.print(f"[green]Loaded:[/green] {summary['requirements']} requirements "
                  f"({summary['total_required_hours']} hours), {summary['teachers']} teachers, "
                  f"{summary['rooms']} rooms, {summary['assignable_slots']} slots")

    # Build planning model
    console.print("\n[bold]Assembling problem...[/bold]")
    assembler = ProblemAssembler(problem, config)
    try:
        timetable = assembler.assemble()
    except ProblemAssemblyError as e:
        console.print("[red]Problem cannot be solved:[/red]")
        for error in e.errors:
            console.print(f"  - {error}")
        raise typer.Exit(code=1)

    for warning in assembler.warnings:
        console.print(f"  [yellow]Warning:[/yellow] {warning}")
    console.print(f"  Created {len(timetable.lessons)} lessons")

    # Solve with progress
    limit = config.termination.time_limit_seconds
    limit_text = f"timeout: {limit:g}s" if limit is not None else "no time limit"
    console.print(f"\n[bold]Solving ({config.construction.value}, {limit_text})...[/bold]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Searching for a better timetable...", total=None)
        orchestrator = SolverOrchestrator(
            timetable,
            config,
            on_best_solution=lambda score: progress.update(task, description=f"Best score {score}"),
        )
        result = orchestrator.solve()

    try:
        solution = build_solution(result, config)
    except UnresolvedAssignmentError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    # Print summary
    console.print()
    print_summary(solution)
    if explain:
        console.print()
        print_violations(solution)

    # Save output if requested
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            f.write(solution.to_json())
        console.print(f"\n[green]Solution saved to:[/green] {output}")

    if not solution.is_feasible:
        console.print(f"\n[red]No feasible timetable found ({solution.score}).[/red]")
        raise typer.Exit(code=1)

    console.print()


@app.command()
def validate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to problem JSON file to validate",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to solver config JSON file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show detailed validation results",
    ),
) -> None:
    """
    Validate a problem file.

    Checks for:
    - Valid JSON structure
    - Schema compliance
    - Reference integrity (teacher IDs, subject IDs, etc.)
    - Structural feasibility (qualified teachers, suitable rooms, slot counts)

    Example:
        python -m timetable_engine validate problem.json
    """
    console.print(f"\n[bold]Validating:[/bold] {input_file}\n")

    if not input_file.exists():
        console.print(f"[red]Error:[/red] File not found: {input_file}")
        raise typer.Exit(code=1)

    # Step 1: JSON parsing
    console.print("[cyan]1. Checking JSON syntax...[/cyan]")
    try:
        with open(input_file) as f:
            json.load(f)
        console.print("   [green]JSON syntax is valid[/green]")
    except json.JSONDecodeError as e:
        console.print(f"   [red]Invalid JSON:[/red] {e}")
        raise typer.Exit(code=1)

    # Step 2: Schema validation
    console.print("[cyan]2. Validating against schema...[/cyan]")
    try:
        problem = load_problem_from_json(input_file)
        console.print("   [green]Schema validation passed[/green]")
    except ValidationError as e:
        console.print("   [red]Schema validation failed:[/red]")
        for line in str(e).split("\n"):
            console.print(f"   {escape(line)}")
        raise typer.Exit(code=1)

    # Step 3: Assembly
    console.print("[cyan]3. Checking feasibility before solving...[/cyan]")
    assembler = ProblemAssembler(problem, load_solver_config(config_file))
    try:
        timetable = assembler.assemble()
    except ProblemAssemblyError as e:
        console.print("   [red]Problem cannot be solved:[/red]")
        for error in e.errors:
            console.print(f"   - {error}")
        raise typer.Exit(code=1)

    if assembler.warnings:
        console.print("   [yellow]Warnings found:[/yellow]")
        for w in assembler.warnings:
            console.print(f"   - {w}")
    else:
        console.print("   [green]No feasibility issues[/green]")

    # Summary
    console.print("\n[bold]Summary:[/bold]")
    table = Table(show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")

    summary = problem.summary()
    table.add_row("Term", summary["term_id"])
    table.add_row("Teachers", str(summary["teachers"]))
    table.add_row("Classes", str(summary["classes"]))
    table.add_row("Subjects", str(summary["subjects"]))
    table.add_row("Rooms", str(summary["rooms"]))
    table.add_row("Time slots", f"{summary['time_slots']} ({summary['assignable_slots']} assignable)")
    table.add_row("Requirements", str(summary["requirements"]))
    table.add_row("Lessons", str(len(timetable.lessons)))

    console.print(table)

    if verbose:
        console.print("\n[bold]Candidates per lesson:[/bold]")
        detail = Table(show_header=True, header_style="bold cyan")
        detail.add_column("Lesson")
        detail.add_column("Teachers", justify="right")
        detail.add_column("Rooms", justify="right")
        for lesson in timetable.lessons:
            detail.add_row(
                lesson.id,
                str(len(lesson.candidate_teachers)),
                str(len(lesson.candidate_rooms)),
            )
        console.print(detail)

    console.print("\n[green]Validation complete.[/green]\n")


@app.command()
def generate(
    output_file: Path = typer.Argument(
        ...,
        help="Path to write the generated problem JSON file",
    ),
    size: ProblemSize = typer.Option(
        ProblemSize.SMALL,
        "--size", "-s",
        help="Size of the generated school",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible data",
    ),
) -> None:
    """
    Generate a sample problem file.

    Example:
        python -m timetable_engine generate problem.json --size medium --seed 42
    """
    generators = {
        ProblemSize.SMALL: generate_small_problem,
        ProblemSize.MEDIUM: generate_medium_problem,
        ProblemSize.LARGE: generate_large_problem,
    }
    problem = generators[size](seed=seed)

    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w") as f:
        f.write(problem.model_dump_json(indent=2))

    summary = problem.summary()
    console.print(
        f"[green]Generated {size.value} problem:[/green] {summary['classes']} classes, "
        f"{summary['teachers']} teachers, {summary['total_required_hours']} lesson-hours"
    )
    console.print(f"[green]Saved to:[/green] {output_file}")


@app.command()
def view(
    output_file: Path = typer.Argument(
        ...,
        help="Path to solution JSON file",
        exists=True,
    ),
    teacher: Optional[str] = typer.Option(
        None,
        "--teacher", "-T",
        help="Show schedule for specific teacher ID",
    ),
    class_id: Optional[str] = typer.Option(
        None,
        "--class", "-C",
        help="Show schedule for specific class ID",
    ),
    room: Optional[str] = typer.Option(
        None,
        "--room", "-R",
        help="Show schedule for specific room ID",
    ),
    day: Optional[str] = typer.Option(
        None,
        "--day", "-D",
        help="Show schedule for specific day (monday, tuesday, etc.)",
    ),
    violations: bool = typer.Option(
        False,
        "--violations",
        help="List constraint violations",
    ),
) -> None:
    """
    Display specific views of a timetable solution.

    Examples:
        python -m timetable_engine view solution.json --teacher t1
        python -m timetable_engine view solution.json --class 5a
        python -m timetable_engine view solution.json --day monday
    """
    solution = load_output(output_file)

    # Determine what to show
    if teacher:
        _show_entity_view(solution.views.by_teacher, teacher, "Teacher")
    elif class_id:
        _show_entity_view(solution.views.by_class, class_id, "Class")
    elif room:
        _show_entity_view(solution.views.by_room, room, "Room")
    elif day:
        _show_day_view(solution, day)
    elif violations:
        print_violations(solution, limit=len(solution.violations))
    else:
        # Default: show overview
        _show_overview(solution)


def _show_entity_view(
    schedules: dict[str, EntitySchedule],
    entity_id: str,
    kind: str,
) -> None:
    """Show schedule for a specific class, teacher or room."""
    schedule = schedules.get(entity_id)
    if not schedule:
        console.print(f"[red]Error:[/red] {kind} '{entity_id}' not found")
        console.print(f"Available: {', '.join(schedules.keys())}")
        raise typer.Exit(code=1)

    console.print(Panel(
        f"[bold]{schedule.name}[/bold] ({schedule.id})",
        title=f"{kind} Schedule"
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Day", style="cyan")
    table.add_column("Period", justify="right")
    table.add_column("Subject")
    table.add_column("Class")
    table.add_column("Teacher")
    table.add_column("Room")
    table.add_column("Week")

    for day_index in sorted(schedule.by_day.keys()):
        for lesson in schedule.by_day[day_index]:
            table.add_row(
                day_name(day_index),
                str(lesson.period),
                lesson.subject_name or lesson.subject_id,
                lesson.school_class_name or lesson.school_class_id,
                lesson.teacher_name or lesson.teacher_id or "-",
                lesson.room_name or lesson.room_id or "-",
                lesson.week_pattern.value,
            )

    console.print(table)


def _show_day_view(solution: TimetableSolution, day: str) -> None:
    """Show schedule for a specific day."""
    day_lower = day.lower()
    if day_lower not in DAY_MAP:
        console.print(f"[red]Error:[/red] Invalid day '{day}'")
        console.print(f"Valid days: {', '.join(DAY_MAP.keys())}")
        raise typer.Exit(code=1)

    day_idx = DAY_MAP[day_lower]
    day_schedule = solution.views.by_day.get(day_idx)

    if not day_schedule:
        console.print(f"[yellow]No lessons scheduled for {day_name(day_idx)}[/yellow]")
        return

    console.print(Panel(
        f"[bold]{day_schedule.day_name}[/bold]",
        title="Daily Schedule"
    ))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Period", justify="right")
    table.add_column("Class")
    table.add_column("Subject")
    table.add_column("Teacher")
    table.add_column("Room")

    for lesson in day_schedule.lessons:
        table.add_row(
            str(lesson.period),
            lesson.school_class_name or lesson.school_class_id,
            lesson.subject_name or lesson.subject_id,
            lesson.teacher_name or lesson.teacher_id or "-",
            lesson.room_name or lesson.room_id or "-",
        )

    console.print(table)


def _show_overview(solution: TimetableSolution) -> None:
    """Show overview of the timetable: lessons per slot across the week."""
    print_summary(solution)

    console.print("\n[bold]Weekly Overview:[/bold]")

    periods = sorted({l.period for l in solution.lessons})
    days = sorted(solution.views.by_day.keys())

    if not periods or not days:
        console.print("[yellow]No lessons scheduled[/yellow]")
        return

    table = Table(title="Week Grid", show_header=True, header_style="bold cyan")
    table.add_column("Period", style="dim")

    for day_index in days:
        table.add_column(day_name(day_index)[:3], justify="center")

    for period in periods:
        row = [str(period)]
        for day_index in days:
            count = sum(1 for l in solution.views.by_day[day_index].lessons if l.period == period)
            row.append(str(count) if count else "-")
        table.add_row(*row)

    console.print(table)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
