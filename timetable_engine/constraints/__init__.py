"""
Constraint evaluation for the timetable engine.

This package holds the constraint definitions, the pure full-score
evaluator with its per-constraint explanation, and the incremental score
director used by the search.
"""

from .definitions import (
    HARD_CONSTRAINTS,
    SOFT_CONSTRAINTS,
    TEACHER_CONFLICT,
    ROOM_CONFLICT,
    CLASS_CONFLICT,
    TEACHER_AVAILABILITY,
    ROOM_CAPACITY,
    TEACHER_QUALIFICATION,
    TEACHER_PREFERRED_SLOTS,
    TEACHER_GAP,
    SUBJECT_DISTRIBUTION,
    CLASS_TEACHER_FIRST_PERIOD,
    lesson_matches,
    pair_matches,
)
from .evaluator import (
    ConstraintMatch,
    ConstraintSummary,
    calculate_score,
    explain_score,
    iter_constraint_matches,
)
from .director import ScoreDirector, ScoreCorruptionError

__all__ = [
    # Names
    "HARD_CONSTRAINTS",
    "SOFT_CONSTRAINTS",
    "TEACHER_CONFLICT",
    "ROOM_CONFLICT",
    "CLASS_CONFLICT",
    "TEACHER_AVAILABILITY",
    "ROOM_CAPACITY",
    "TEACHER_QUALIFICATION",
    "TEACHER_PREFERRED_SLOTS",
    "TEACHER_GAP",
    "SUBJECT_DISTRIBUTION",
    "CLASS_TEACHER_FIRST_PERIOD",
    # Definitions
    "lesson_matches",
    "pair_matches",
    # Evaluation
    "ConstraintMatch",
    "ConstraintSummary",
    "calculate_score",
    "explain_score",
    "iter_constraint_matches",
    "ScoreDirector",
    "ScoreCorruptionError",
]
