"""Timetable Engine - school timetabling by construction and local search."""

from .assembler import ProblemAssembler, ProblemAssemblyError, assemble_timetable
from .config import SolverConfig, load_config
from .constraints import calculate_score, explain_score
from .data.models import ProblemInput, load_problem_from_json
from .domain import HardSoftScore, Timetable
from .jobs import (
    JobNotFoundError,
    JobState,
    JobStatus,
    SolveAlreadyRunningError,
    SolveJobManager,
)
from .output import LessonRecord, TimetableSolution, UnresolvedAssignmentError, build_solution
from .search import SolverOrchestrator, SolverResult, SolveOutcome, solve_timetable

__all__ = [
    # Input
    "ProblemInput",
    "load_problem_from_json",
    "SolverConfig",
    "load_config",
    # Planning
    "ProblemAssembler",
    "ProblemAssemblyError",
    "assemble_timetable",
    "HardSoftScore",
    "Timetable",
    "calculate_score",
    "explain_score",
    # Solving
    "SolverOrchestrator",
    "SolverResult",
    "SolveOutcome",
    "solve_timetable",
    # Output
    "LessonRecord",
    "TimetableSolution",
    "UnresolvedAssignmentError",
    "build_solution",
    # Jobs
    "SolveJobManager",
    "SolveAlreadyRunningError",
    "JobNotFoundError",
    "JobState",
    "JobStatus",
]
