"""
Pydantic models for the timetable engine's input records.

These are the in-process data-transfer contracts exchanged with the
surrounding CRUD layer: catalogs of teachers, classes, subjects, rooms and
time slots, plus curriculum requirements, qualifications and availability.

Conventions:
- Days are 0-4 (Monday-Friday)
- Periods are numbered from 1 within a day
- A slot key is "day-period", e.g. "0-1" for Monday period 1
"""

from __future__ import annotations

import json
import re
from datetime import time
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Constants and Enums
# =============================================================================

class WeekPattern(str, Enum):
    """Whether a lesson runs every week or only in A/B weeks."""
    EVERY = "EVERY"
    A = "A"
    B = "B"


class AvailabilityType(str, Enum):
    """Availability status of a teacher for one slot."""
    AVAILABLE = "AVAILABLE"
    PREFERRED = "PREFERRED"
    BLOCKED = "BLOCKED"


class QualificationLevel(str, Enum):
    """How well a teacher covers a subject."""
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    SUBSTITUTE = "SUBSTITUTE"


# Lower rank is preferred when several teachers are qualified
QUALIFICATION_RANK = {
    QualificationLevel.PRIMARY: 0,
    QualificationLevel.SECONDARY: 1,
    QualificationLevel.SUBSTITUTE: 2,
}

DayIndex = Annotated[int, Field(ge=0, le=4, description="Day of week (0=Monday, 4=Friday)")]
PeriodNumber = Annotated[int, Field(ge=1, le=16, description="Period within the day (1-based)")]


# =============================================================================
# Helper Functions
# =============================================================================

def slot_key(day: int, period: int) -> str:
    """Build the 'day-period' key used for availability lookups."""
    return f"{day}-{period}"


def day_name(day: int) -> str:
    """Get day name from index."""
    names = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    return names[day] if 0 <= day <= 4 else f"Day {day}"


def week_patterns_overlap(first: WeekPattern, second: WeekPattern) -> bool:
    """EVERY overlaps everything; A and B only overlap themselves."""
    if first == WeekPattern.EVERY or second == WeekPattern.EVERY:
        return True
    return first == second


# =============================================================================
# Catalog Records
# =============================================================================

class TimeSlotRecord(BaseModel):
    """A slot in the weekly grid of a term."""
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(default=None, description="Unique identifier (defaults to the slot key)")
    day_of_week: DayIndex
    period: PeriodNumber
    start_time: Optional[time] = Field(default=None, description="Start time")
    end_time: Optional[time] = Field(default=None, description="End time")
    is_break: bool = Field(default=False, description="Break slots are never assigned")

    @model_validator(mode="after")
    def validate_slot(self) -> "TimeSlotRecord":
        """Fill a default id and ensure start time is before end time."""
        if self.id is None:
            self.id = slot_key(self.day_of_week, self.period)
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValueError(
                f"start_time ({self.start_time}) must be before end_time ({self.end_time})"
            )
        return self

    @property
    def key(self) -> str:
        return slot_key(self.day_of_week, self.period)


class RoomRecord(BaseModel):
    """Room with optional capacity and subject suitability."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: Optional[str] = Field(default=None, description="Room name/number")
    capacity: Optional[int] = Field(default=None, ge=1, description="Max capacity, None = unconstrained")
    suitable_subject_ids: list[str] = Field(
        default_factory=list,
        description="Subjects this room is suited for (empty = general purpose)",
    )
    active: bool = Field(default=True, description="Inactive rooms are ignored")


class SubjectRecord(BaseModel):
    """Subject/course."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Subject name")
    abbreviation: Optional[str] = Field(default=None, max_length=10, description="Short code")


class SchoolClassRecord(BaseModel):
    """Student class/group."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Class name (e.g., '5a')")
    grade_level: int = Field(ge=1, le=13, description="Grade level")
    student_count: Optional[int] = Field(default=None, ge=1, description="Number of students")
    class_teacher_id: Optional[str] = Field(default=None, description="Designated class teacher")
    active: bool = Field(default=True, description="Inactive classes are ignored")


class TeacherRecord(BaseModel):
    """Teacher entity."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Full name")
    abbreviation: Optional[str] = Field(default=None, max_length=5, description="Short code")
    max_hours_per_week: int = Field(default=28, ge=1, le=60, description="Max weekly teaching hours")
    active: bool = Field(default=True, description="Inactive teachers are ignored")


# =============================================================================
# Relationship Records
# =============================================================================

class TeacherQualification(BaseModel):
    """A teacher's qualification to teach a subject at given grades."""
    model_config = ConfigDict(extra="forbid")

    teacher_id: str
    subject_id: str
    qualification_level: QualificationLevel = QualificationLevel.PRIMARY
    can_teach_grades: Optional[list[int]] = Field(default=None, description="Grades (None = none)")
    max_hours_per_week: Optional[int] = Field(default=None, ge=1, description="Cap for this subject")


class TeacherAvailability(BaseModel):
    """Availability of a teacher for one slot, global or for a single term."""
    model_config = ConfigDict(extra="forbid")

    teacher_id: str
    term_id: Optional[str] = Field(default=None, description="None applies to every term")
    day_of_week: DayIndex
    period: PeriodNumber
    availability_type: AvailabilityType

    @property
    def key(self) -> str:
        return slot_key(self.day_of_week, self.period)


class CurriculumRequirement(BaseModel):
    """Weekly hours of a subject a class must receive."""
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(default=None, description="Identifier used as lesson id prefix")
    school_class_id: str
    subject_id: str
    weekly_hours: int = Field(ge=1, le=20, description="Lesson-hours per week")
    week_pattern: WeekPattern = WeekPattern.EVERY
    candidate_teacher_ids: list[str] = Field(
        default_factory=list,
        description="Teachers allowed for this requirement (empty = any qualified teacher)",
    )

    @property
    def key(self) -> str:
        return self.id or f"{self.school_class_id}-{self.subject_id}-{self.week_pattern.value}"


# =============================================================================
# Main Input Model
# =============================================================================

class ProblemInput(BaseModel):
    """
    Read-only snapshot of everything needed to plan one term.
    This is the main model for loading and validating problem data.
    """
    model_config = ConfigDict(extra="forbid")

    term_id: str = Field(min_length=1, description="Term being planned")

    time_slots: list[TimeSlotRecord] = Field(min_length=1)
    rooms: list[RoomRecord] = Field(default_factory=list)
    subjects: list[SubjectRecord] = Field(min_length=1)
    school_classes: list[SchoolClassRecord] = Field(min_length=1)
    teachers: list[TeacherRecord] = Field(min_length=1)
    qualifications: list[TeacherQualification] = Field(default_factory=list)
    availabilities: list[TeacherAvailability] = Field(default_factory=list)
    requirements: list[CurriculumRequirement] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_no_duplicate_ids(self) -> "ProblemInput":
        """Ensure no duplicate IDs within each catalog."""
        errors: list[str] = []

        def check_duplicates(items: list, entity_name: str) -> None:
            seen: set[str] = set()
            for item in items:
                if item.id in seen:
                    errors.append(f"Duplicate {entity_name} ID: '{item.id}'")
                seen.add(item.id)

        check_duplicates(self.time_slots, "time slot")
        check_duplicates(self.rooms, "room")
        check_duplicates(self.subjects, "subject")
        check_duplicates(self.school_classes, "class")
        check_duplicates(self.teachers, "teacher")
        check_duplicates([r for r in self.requirements if r.id is not None], "requirement")

        slot_keys: set[str] = set()
        for slot in self.time_slots:
            if slot.key in slot_keys:
                errors.append(f"Duplicate time slot position: '{slot.key}'")
            slot_keys.add(slot.key)

        if errors:
            raise ValueError("Duplicate ID validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        return self

    @model_validator(mode="after")
    def validate_references(self) -> "ProblemInput":
        """Validate all cross-record references."""
        errors: list[str] = []

        teacher_ids = {t.id for t in self.teachers}
        class_ids = {c.id for c in self.school_classes}
        subject_ids = {s.id for s in self.subjects}

        for req in self.requirements:
            if req.school_class_id not in class_ids:
                errors.append(f"Requirement {req.key}: unknown school_class_id '{req.school_class_id}'")
            if req.subject_id not in subject_ids:
                errors.append(f"Requirement {req.key}: unknown subject_id '{req.subject_id}'")
            for teacher_id in req.candidate_teacher_ids:
                if teacher_id not in teacher_ids:
                    errors.append(f"Requirement {req.key}: unknown candidate teacher '{teacher_id}'")

        for qual in self.qualifications:
            if qual.teacher_id not in teacher_ids:
                errors.append(f"Qualification: unknown teacher_id '{qual.teacher_id}'")
            if qual.subject_id not in subject_ids:
                errors.append(f"Qualification: unknown subject_id '{qual.subject_id}'")

        for avail in self.availabilities:
            if avail.teacher_id not in teacher_ids:
                errors.append(f"Availability: unknown teacher_id '{avail.teacher_id}'")

        for room in self.rooms:
            for subject_id in room.suitable_subject_ids:
                if subject_id not in subject_ids:
                    errors.append(f"Room {room.id}: unknown suitable subject '{subject_id}'")

        for cls in self.school_classes:
            if cls.class_teacher_id and cls.class_teacher_id not in teacher_ids:
                errors.append(f"Class {cls.id}: unknown class_teacher_id '{cls.class_teacher_id}'")

        if errors:
            raise ValueError("Reference validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        return self

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    def get_assignable_slots(self) -> list[TimeSlotRecord]:
        """Slots lessons may be placed in, ordered by day then period."""
        return sorted(
            (s for s in self.time_slots if not s.is_break),
            key=lambda s: (s.day_of_week, s.period),
        )

    @property
    def total_required_hours(self) -> int:
        return sum(r.weekly_hours for r in self.requirements)

    def summary(self) -> dict[str, Any]:
        """Get a summary of the problem data."""
        return {
            "term_id": self.term_id,
            "teachers": len(self.teachers),
            "classes": len(self.school_classes),
            "subjects": len(self.subjects),
            "rooms": len(self.rooms),
            "time_slots": len(self.time_slots),
            "assignable_slots": len(self.get_assignable_slots()),
            "requirements": len(self.requirements),
            "total_required_hours": self.total_required_hours,
        }


# =============================================================================
# JSON Loading Helper
# =============================================================================

def load_problem_from_json(path: Union[str, Path]) -> ProblemInput:
    """
    Load and validate a problem snapshot from a JSON file.

    Keys may be camelCase or snake_case; camelCase keys are converted
    before validation.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If invalid JSON
        pydantic.ValidationError: If validation fails
    """
    with open(Path(path)) as f:
        data = json.load(f)

    return ProblemInput.model_validate(convert_keys_to_snake_case(data))


def convert_keys_to_snake_case(obj: Any) -> Any:
    """Recursively convert dictionary keys from camelCase to snake_case."""

    def to_snake_case(name: str) -> str:
        name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
        name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
        return name.lower()

    if isinstance(obj, dict):
        return {to_snake_case(k): convert_keys_to_snake_case(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_keys_to_snake_case(item) for item in obj]
    else:
        return obj
