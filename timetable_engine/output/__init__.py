"""
Output module for solved timetables.

This module provides:
- schema: Pydantic models for lesson records and the solution document
- extractor: Conversion of solved Timetables into those models
"""

from .schema import (
    SolutionStatus,
    LessonRecord,
    ConstraintViolation,
    ScoreSummary,
    DaySchedule,
    EntitySchedule,
    TimetableViews,
    TimetableSolution,
)
from .extractor import (
    SolutionExtractor,
    UnresolvedAssignmentError,
    build_solution,
    extract_lesson_records,
    solution_to_json,
    sort_lessons,
    group_by_class,
    group_by_teacher,
    group_by_room,
    group_by_day,
)

__all__ = [
    # Schema
    "SolutionStatus",
    "LessonRecord",
    "ConstraintViolation",
    "ScoreSummary",
    "DaySchedule",
    "EntitySchedule",
    "TimetableViews",
    "TimetableSolution",
    # Extractor
    "SolutionExtractor",
    "UnresolvedAssignmentError",
    "build_solution",
    "extract_lesson_records",
    "solution_to_json",
    "sort_lessons",
    "group_by_class",
    "group_by_teacher",
    "group_by_room",
    "group_by_day",
]
