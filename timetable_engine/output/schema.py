"""
Output schema for solved timetables.

This module defines the lesson records handed to the persistence layer and
the JSON-serializable solution document, including pre-computed views for
convenient access by class, teacher, room and day.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..data.models import WeekPattern


# =============================================================================
# Enums
# =============================================================================

class SolutionStatus(str, Enum):
    """Solution status for output."""
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    TIMEOUT = "timeout"
    SOLVING = "solving"


# =============================================================================
# Lesson Records
# =============================================================================

class LessonRecord(BaseModel):
    """One placed lesson, as persisted by the caller."""
    term_id: str = Field(alias="termId")
    lesson_id: str = Field(alias="lessonId")
    school_class_id: str = Field(alias="schoolClassId")
    subject_id: str = Field(alias="subjectId")
    teacher_id: Optional[str] = Field(alias="teacherId")
    time_slot_id: str = Field(alias="timeSlotId")
    day_of_week: int = Field(alias="dayOfWeek")
    period: int
    room_id: Optional[str] = Field(alias="roomId")
    week_pattern: WeekPattern = Field(alias="weekPattern")

    # Optional enriched data
    school_class_name: Optional[str] = Field(default=None, alias="schoolClassName")
    subject_name: Optional[str] = Field(default=None, alias="subjectName")
    teacher_name: Optional[str] = Field(default=None, alias="teacherName")
    room_name: Optional[str] = Field(default=None, alias="roomName")

    model_config = {"populate_by_name": True}


# =============================================================================
# Score and Violations
# =============================================================================

class ConstraintViolation(BaseModel):
    """A single constraint match in the final timetable."""
    constraint_name: str = Field(alias="constraintName")
    hard: bool
    score: str  # e.g. '-1hard/0soft'
    affected_lesson_ids: list[str] = Field(alias="affectedLessonIds")

    model_config = {"populate_by_name": True}


class ScoreSummary(BaseModel):
    """Final score of the solution."""
    hard_score: int = Field(alias="hardScore")
    soft_score: int = Field(alias="softScore")
    hard_constraints_satisfied: bool = Field(alias="hardConstraintsSatisfied")
    constraint_scores: dict[str, int] = Field(
        default_factory=dict,
        alias="constraintScores"
    )

    model_config = {"populate_by_name": True}

    def __str__(self) -> str:
        return f"{self.hard_score}hard/{self.soft_score}soft"


# =============================================================================
# Views
# =============================================================================

class DaySchedule(BaseModel):
    """Schedule for a single day."""
    day: int
    day_name: str = Field(alias="dayName")
    lessons: list[LessonRecord]

    model_config = {"populate_by_name": True}


class EntitySchedule(BaseModel):
    """Schedule for an entity (class, teacher, or room)."""
    id: str
    name: str
    lessons: list[LessonRecord]
    by_day: dict[int, list[LessonRecord]] = Field(
        default_factory=dict,
        alias="byDay"
    )

    model_config = {"populate_by_name": True}


class TimetableViews(BaseModel):
    """Pre-computed views of the timetable for convenience."""
    by_class: dict[str, EntitySchedule] = Field(
        default_factory=dict,
        alias="byClass"
    )
    by_teacher: dict[str, EntitySchedule] = Field(
        default_factory=dict,
        alias="byTeacher"
    )
    by_room: dict[str, EntitySchedule] = Field(
        default_factory=dict,
        alias="byRoom"
    )
    by_day: dict[int, DaySchedule] = Field(
        default_factory=dict,
        alias="byDay"
    )

    model_config = {"populate_by_name": True}


# =============================================================================
# Complete Output
# =============================================================================

class TimetableSolution(BaseModel):
    """Complete output for a solved term."""
    term_id: str = Field(alias="termId")
    status: SolutionStatus
    termination_reason: Optional[str] = Field(default=None, alias="terminationReason")
    solve_time_seconds: float = Field(alias="solveTimeSeconds")
    moves_evaluated: int = Field(default=0, alias="movesEvaluated")
    score: ScoreSummary
    lessons: list[LessonRecord]
    violations: list[ConstraintViolation] = Field(default_factory=list)
    views: TimetableViews = Field(default_factory=TimetableViews)

    model_config = {"populate_by_name": True}

    @property
    def is_feasible(self) -> bool:
        return self.score.hard_constraints_satisfied

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(by_alias=True, mode="json")
