"""
Data module for the timetable engine.

This module provides:
- models: Pydantic input records and the ProblemInput snapshot
- generator: Sample data generation for testing
"""

from .models import (
    WeekPattern,
    AvailabilityType,
    QualificationLevel,
    TimeSlotRecord,
    RoomRecord,
    SubjectRecord,
    SchoolClassRecord,
    TeacherRecord,
    TeacherQualification,
    TeacherAvailability,
    CurriculumRequirement,
    ProblemInput,
    load_problem_from_json,
)

__all__ = [
    "WeekPattern",
    "AvailabilityType",
    "QualificationLevel",
    "TimeSlotRecord",
    "RoomRecord",
    "SubjectRecord",
    "SchoolClassRecord",
    "TeacherRecord",
    "TeacherQualification",
    "TeacherAvailability",
    "CurriculumRequirement",
    "ProblemInput",
    "load_problem_from_json",
]
