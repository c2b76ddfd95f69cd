"""Shared fixtures: small planning facts and a small solvable problem."""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Any, Optional

import pytest

from timetable_engine.config import SolverConfig, TerminationConfig
from timetable_engine.data.models import ProblemInput, WeekPattern, slot_key
from timetable_engine.domain import (
    Lesson,
    Room,
    SchoolClass,
    Subject,
    Teacher,
    TimeSlot,
    Timetable,
)


# =============================================================================
# Planning Facts
# =============================================================================

@pytest.fixture
def slots() -> dict[tuple[int, int], TimeSlot]:
    """Monday-Friday, periods 1-6, keyed by (day, period)."""
    return {
        (day, period): TimeSlot(id=slot_key(day, period), day_of_week=day, period=period)
        for day in range(5)
        for period in range(1, 7)
    }


@pytest.fixture
def maths() -> Subject:
    return Subject(id="mat", name="Mathematics", abbreviation="MA")


@pytest.fixture
def english() -> Subject:
    return Subject(id="eng", name="English", abbreviation="EN")


@pytest.fixture
def class_5a() -> SchoolClass:
    return SchoolClass(id="5a", name="5a", grade_level=5, student_count=25)


@pytest.fixture
def class_5b() -> SchoolClass:
    return SchoolClass(id="5b", name="5b", grade_level=5, student_count=20)


@pytest.fixture
def teacher_smith() -> Teacher:
    """Teaches maths and English in grades 5-6."""
    return Teacher(
        id="t1",
        name="Anna Smith",
        abbreviation="SMI",
        qualifications={"mat": frozenset({5, 6}), "eng": frozenset({5, 6})},
    )


@pytest.fixture
def teacher_jones() -> Teacher:
    """Teaches maths in grade 5 only."""
    return Teacher(
        id="t2",
        name="Ben Jones",
        abbreviation="JON",
        qualifications={"mat": frozenset({5})},
    )


@pytest.fixture
def room_101() -> Room:
    return Room(id="r101", name="Room 101", capacity=30)


@pytest.fixture
def room_102() -> Room:
    return Room(id="r102", name="Room 102", capacity=30)


@pytest.fixture
def make_lesson(class_5a, maths, teacher_smith, teacher_jones, room_101, room_102):
    """Factory for lessons; defaults to a 5a maths lesson taught by Smith."""
    counter = itertools.count(1)

    def _make(
        slot: Optional[TimeSlot] = None,
        room: Optional[Room] = None,
        teacher: Optional[Teacher] = teacher_smith,
        school_class: SchoolClass = class_5a,
        subject: Subject = maths,
        week_pattern: WeekPattern = WeekPattern.EVERY,
        candidate_teachers: Optional[tuple[Teacher, ...]] = None,
        candidate_rooms: Optional[tuple[Room, ...]] = None,
        lesson_id: Optional[str] = None,
    ) -> Lesson:
        return Lesson(
            id=lesson_id or f"l{next(counter)}",
            school_class=school_class,
            subject=subject,
            week_pattern=week_pattern,
            candidate_teachers=(
                candidate_teachers if candidate_teachers is not None
                else (teacher_smith, teacher_jones)
            ),
            candidate_rooms=(
                candidate_rooms if candidate_rooms is not None else (room_101, room_102)
            ),
            time_slot=slot,
            room=room,
            teacher=teacher,
        )

    return _make


@pytest.fixture
def make_timetable(
    slots, maths, english, class_5a, class_5b, teacher_smith, teacher_jones, room_101, room_102
):
    """Factory wrapping lessons into a Timetable over the shared facts."""

    def _make(lessons: list[Lesson]) -> Timetable:
        return Timetable(
            term_id="term-1",
            time_slots=list(slots.values()),
            rooms=[room_101, room_102],
            teachers=[teacher_smith, teacher_jones],
            school_classes=[class_5a, class_5b],
            subjects=[maths, english],
            lessons=list(lessons),
        )

    return _make


# =============================================================================
# Problem Input
# =============================================================================

@pytest.fixture
def problem_data() -> dict[str, Any]:
    """
    A small solvable term as snake_case input data.

    - 20 assignable slots (Mon-Fri, periods 1-4) plus one break slot
    - 2 classes, 3 teachers, 3 subjects, 3 rooms (one biology lab)
    - 16 lessons
    """
    time_slots = [
        {"day_of_week": day, "period": period}
        for day in range(5)
        for period in range(1, 5)
    ]
    time_slots.append({"day_of_week": 0, "period": 5, "is_break": True})

    return {
        "term_id": "term-1",
        "time_slots": time_slots,
        "rooms": [
            {"id": "r101", "name": "Room 101", "capacity": 30},
            {"id": "r102", "name": "Room 102", "capacity": 30},
            {"id": "lab", "name": "Biology Lab", "capacity": 24, "suitable_subject_ids": ["bio"]},
        ],
        "subjects": [
            {"id": "mat", "name": "Mathematics"},
            {"id": "eng", "name": "English"},
            {"id": "bio", "name": "Biology"},
        ],
        "school_classes": [
            {"id": "5a", "name": "5a", "grade_level": 5, "student_count": 24, "class_teacher_id": "t1"},
            {"id": "6a", "name": "6a", "grade_level": 6, "student_count": 22},
        ],
        "teachers": [
            {"id": "t1", "name": "Anna Smith", "abbreviation": "SMI"},
            {"id": "t2", "name": "Ben Jones", "abbreviation": "JON"},
            {"id": "t3", "name": "Cara Lee", "abbreviation": "LEE"},
        ],
        "qualifications": [
            {"teacher_id": "t1", "subject_id": "mat", "qualification_level": "PRIMARY",
             "can_teach_grades": [5, 6]},
            {"teacher_id": "t1", "subject_id": "eng", "qualification_level": "SECONDARY",
             "can_teach_grades": [5]},
            {"teacher_id": "t2", "subject_id": "eng", "qualification_level": "PRIMARY",
             "can_teach_grades": [5, 6]},
            {"teacher_id": "t2", "subject_id": "mat", "qualification_level": "SECONDARY",
             "can_teach_grades": [6]},
            {"teacher_id": "t3", "subject_id": "bio", "qualification_level": "PRIMARY",
             "can_teach_grades": [5, 6]},
        ],
        "availabilities": [
            {"teacher_id": "t1", "day_of_week": 4, "period": 4, "availability_type": "BLOCKED"},
            {"teacher_id": "t2", "day_of_week": 0, "period": 1, "availability_type": "PREFERRED"},
            {"teacher_id": "t3", "term_id": "term-2", "day_of_week": 1, "period": 1,
             "availability_type": "BLOCKED"},
        ],
        "requirements": [
            {"school_class_id": "5a", "subject_id": "mat", "weekly_hours": 4},
            {"school_class_id": "5a", "subject_id": "eng", "weekly_hours": 3},
            {"school_class_id": "5a", "subject_id": "bio", "weekly_hours": 2},
            {"school_class_id": "6a", "subject_id": "mat", "weekly_hours": 3},
            {"school_class_id": "6a", "subject_id": "eng", "weekly_hours": 3},
            {"school_class_id": "6a", "subject_id": "bio", "weekly_hours": 1, "week_pattern": "A"},
        ],
    }


@pytest.fixture
def problem(problem_data) -> ProblemInput:
    return ProblemInput.model_validate(problem_data)


@pytest.fixture
def problem_file(problem_data, tmp_path) -> Path:
    filepath = tmp_path / "problem.json"
    with open(filepath, "w") as f:
        json.dump(problem_data, f)
    return filepath


@pytest.fixture
def fast_config() -> SolverConfig:
    """Configuration bounded by move counts so tests stay quick."""
    return SolverConfig(
        termination=TerminationConfig(
            time_limit_seconds=20.0,
            unimproved_move_limit=500,
            move_limit=3000,
        ),
        random_seed=7,
    )
