"""
Sample data generator for testing the timetable engine.

This module generates realistic school problem snapshots for tests, demos
and benchmarks, with configurable size and complexity.

Usage:
    from timetable_engine.data.generator import generate_sample_problem, generate_small_problem

    # Generate with custom config
    problem = generate_sample_problem(GeneratorConfig(num_teachers=30))

    # Quick test data
    small_problem = generate_small_problem()

    # Stress test data
    large_problem = generate_large_problem()
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

from .models import (
    AvailabilityType,
    CurriculumRequirement,
    ProblemInput,
    QualificationLevel,
    RoomRecord,
    SchoolClassRecord,
    SubjectRecord,
    TeacherAvailability,
    TeacherQualification,
    TeacherRecord,
    TimeSlotRecord,
    WeekPattern,
)


# =============================================================================
# Name Data
# =============================================================================

FIRST_NAMES = [
    "James", "John", "Robert", "Michael", "David", "William", "Richard", "Joseph",
    "Thomas", "Christopher", "Sarah", "Jessica", "Emily", "Ashley", "Amanda",
    "Elizabeth", "Jennifer", "Rachel", "Laura", "Nicole", "Emma", "Olivia",
    "Sophia", "Isabella", "Charlotte", "Daniel", "Matthew", "Andrew", "Joshua",
    "Alexander", "Benjamin", "Samuel", "Henry", "Sebastian", "Oliver", "Grace",
    "Hannah", "Abigail", "Natalie", "Victoria", "Lucy", "Sophie", "Mia", "Lily",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson",
    "Thomas", "Taylor", "Moore", "Jackson", "Martin", "Lee", "Perez", "Thompson",
    "White", "Harris", "Sanchez", "Clark", "Ramirez", "Lewis", "Robinson", "Walker",
    "Young", "Allen", "King", "Wright", "Scott", "Torres", "Nguyen", "Hill", "Flores",
    "Green", "Adams", "Nelson", "Baker", "Hall", "Rivera", "Campbell", "Mitchell",
]


# =============================================================================
# Subject Definitions
# =============================================================================

CORE_SUBJECTS = [
    {"id": "eng", "name": "English", "abbreviation": "EN", "lessons_per_week": 4},
    {"id": "mat", "name": "Mathematics", "abbreviation": "MA", "lessons_per_week": 4},
    {"id": "ger", "name": "German", "abbreviation": "DE", "lessons_per_week": 3},
    {"id": "bio", "name": "Biology", "abbreviation": "BIO", "lessons_per_week": 2,
     "specialist_room": "Science Lab"},
    {"id": "his", "name": "History", "abbreviation": "GE", "lessons_per_week": 2},
]

SPECIALIST_SUBJECTS = [
    {"id": "pe", "name": "Physical Education", "abbreviation": "SP", "lessons_per_week": 2,
     "specialist_room": "Gymnasium"},
    {"id": "art", "name": "Art", "abbreviation": "KU", "lessons_per_week": 1,
     "specialist_room": "Art Studio", "week_pattern": WeekPattern.A},
    {"id": "mus", "name": "Music", "abbreviation": "MU", "lessons_per_week": 1,
     "specialist_room": "Music Room", "week_pattern": WeekPattern.B},
    {"id": "cmp", "name": "Computing", "abbreviation": "INF", "lessons_per_week": 1,
     "specialist_room": "Computer Suite"},
    {"id": "fre", "name": "French", "abbreviation": "FR", "lessons_per_week": 2},
    {"id": "geo", "name": "Geography", "abbreviation": "EK", "lessons_per_week": 1},
    {"id": "rel", "name": "Religious Studies", "abbreviation": "RE", "lessons_per_week": 1},
]

SUBJECT_DATA = {data["id"]: data for data in CORE_SUBJECTS + SPECIALIST_SUBJECTS}


# =============================================================================
# Generator Configuration
# =============================================================================

@dataclass
class GeneratorConfig:
    """Configuration for data generation.

    Note: The default configuration is designed to create solvable problems.
    Key constraints for feasibility:
    - A class never needs more lesson-hours than the week has slots
    - Classroom capacities are at least the largest class size
    - Every subject has enough qualified teachers for its total hours
    """
    term_id: str = "term-1"

    # Entity counts
    num_teachers: int = 20
    num_classes: int = 12
    num_classrooms: int = 12
    lessons_per_class_per_week: int = 20

    # Teacher settings
    teacher_min_subjects: int = 2
    teacher_max_subjects: int = 3
    teacher_max_blocked_slots: int = 3
    teacher_max_preferred_slots: int = 3
    # Share of a teacher's week a subject's hours may be planned against
    teacher_utilization: float = 0.6

    # Class settings
    min_students: int = 18
    max_students: int = 28
    grade_levels: list[int] = field(default_factory=lambda: [5, 6, 7, 8, 9, 10])
    assign_class_teachers: bool = True

    # Room settings
    classroom_capacity_min: int = 28
    classroom_capacity_max: int = 34
    specialist_capacity_min: int = 28
    specialist_capacity_max: int = 32

    # Slot settings
    num_days: int = 5
    periods_per_day: int = 6
    day_start: time = time(8, 0)
    period_minutes: int = 45
    break_after_period: Optional[int] = 2  # Adds a break slot after this period
    break_minutes: int = 20

    # Subject selection
    include_specialist_subjects: bool = True
    num_specialist_subjects: int = 4

    # Randomization
    seed: Optional[int] = None


# =============================================================================
# Generator Functions
# =============================================================================

def generate_sample_problem(config: GeneratorConfig | None = None) -> ProblemInput:
    """
    Generate a sample school problem snapshot.

    Args:
        config: Generator configuration (uses defaults if None)

    Returns:
        ProblemInput with generated data
    """
    if config is None:
        config = GeneratorConfig()

    rng = random.Random(config.seed)

    subjects = _generate_subjects(config, rng)
    time_slots = _generate_time_slots(config)
    teachers = _generate_teachers(config, rng)
    classes = _generate_classes(config, rng)
    requirements = _generate_requirements(config, classes, subjects)
    qualifications = _generate_qualifications(config, teachers, subjects, requirements, rng)
    rooms = _generate_rooms(config, subjects, rng)
    availabilities = _generate_availabilities(config, teachers, rng)

    if config.assign_class_teachers:
        _assign_class_teachers(classes, qualifications)

    return ProblemInput(
        term_id=config.term_id,
        time_slots=time_slots,
        rooms=rooms,
        subjects=subjects,
        school_classes=classes,
        teachers=teachers,
        qualifications=qualifications,
        availabilities=availabilities,
        requirements=requirements,
    )


def generate_small_problem(seed: int | None = None) -> ProblemInput:
    """
    Generate a small school for quick testing.

    - 8 teachers
    - 4 classes (grades 5-6)
    - 4 classrooms plus specialist rooms
    - ~70 lesson-hours

    Args:
        seed: Random seed for reproducibility

    Returns:
        ProblemInput with small school data
    """
    config = GeneratorConfig(
        num_teachers=8,
        num_classes=4,
        num_classrooms=4,
        lessons_per_class_per_week=18,
        grade_levels=[5, 6],
        num_specialist_subjects=3,
        seed=seed,
    )
    return generate_sample_problem(config)


def generate_medium_problem(seed: int | None = None) -> ProblemInput:
    """
    Generate a medium-sized school for standard testing.

    - 20 teachers
    - 12 classes (2 per grade)
    - 12 classrooms plus specialist rooms
    - ~240 lesson-hours

    Args:
        seed: Random seed for reproducibility

    Returns:
        ProblemInput with medium school data
    """
    return generate_sample_problem(GeneratorConfig(seed=seed))


def generate_large_problem(seed: int | None = None) -> ProblemInput:
    """
    Generate a large school for stress testing.

    - 60 teachers
    - 36 classes (6 per grade)
    - 36 classrooms plus specialist rooms
    - ~900 lesson-hours

    Args:
        seed: Random seed for reproducibility

    Returns:
        ProblemInput with large school data
    """
    config = GeneratorConfig(
        num_teachers=60,
        num_classes=36,
        num_classrooms=36,
        lessons_per_class_per_week=25,
        periods_per_day=7,
        teacher_max_blocked_slots=2,
        num_specialist_subjects=6,
        seed=seed,
    )
    return generate_sample_problem(config)


# =============================================================================
# Private Generator Helpers
# =============================================================================

def _generate_subjects(config: GeneratorConfig, rng: random.Random) -> list[SubjectRecord]:
    """Core subjects plus a random selection of specialist subjects."""
    selected = list(CORE_SUBJECTS)

    if config.include_specialist_subjects:
        selected += rng.sample(
            SPECIALIST_SUBJECTS,
            min(config.num_specialist_subjects, len(SPECIALIST_SUBJECTS)),
        )

    return [
        SubjectRecord(id=data["id"], name=data["name"], abbreviation=data["abbreviation"])
        for data in selected
    ]


def _generate_time_slots(config: GeneratorConfig) -> list[TimeSlotRecord]:
    """Generate the weekly grid, including one break slot per day."""
    slots = []
    period_length = timedelta(minutes=config.period_minutes)

    for day in range(config.num_days):
        current = datetime.combine(date.min, config.day_start)
        period = 1

        for p in range(config.periods_per_day):
            slots.append(TimeSlotRecord(
                day_of_week=day,
                period=period,
                start_time=current.time(),
                end_time=(current + period_length).time(),
            ))
            current += period_length
            period += 1

            if p + 1 == config.break_after_period:
                slots.append(TimeSlotRecord(
                    day_of_week=day,
                    period=period,
                    start_time=current.time(),
                    end_time=(current + timedelta(minutes=config.break_minutes)).time(),
                    is_break=True,
                ))
                current += timedelta(minutes=config.break_minutes)
                period += 1

    return slots


def _generate_teachers(config: GeneratorConfig, rng: random.Random) -> list[TeacherRecord]:
    """Generate teachers with unique names and short codes."""
    teachers = []
    used_names = set()
    used_codes = set()

    for i in range(config.num_teachers):
        # Generate unique name
        while True:
            first = rng.choice(FIRST_NAMES)
            last = rng.choice(LAST_NAMES)
            full_name = f"{first} {last}"
            if full_name not in used_names:
                used_names.add(full_name)
                break

        # Teacher code (initials, number appended if taken)
        code = f"{first[0]}{last[:2].upper()}"
        if code in used_codes:
            code = f"{code[:3]}{i}"[:5]
        used_codes.add(code)

        teachers.append(TeacherRecord(
            id=f"t{i + 1}",
            name=full_name,
            abbreviation=code,
            max_hours_per_week=rng.choice([20, 24, 26, 28]),
        ))

    return teachers


def _generate_classes(config: GeneratorConfig, rng: random.Random) -> list[SchoolClassRecord]:
    """Generate classes, distributed evenly across grade levels."""
    classes = []

    classes_per_grade = config.num_classes // len(config.grade_levels)
    extra = config.num_classes % len(config.grade_levels)

    for grade in config.grade_levels:
        num_for_grade = classes_per_grade + (1 if extra > 0 else 0)
        extra -= 1

        for set_num in range(num_for_grade):
            letter = chr(ord('a') + set_num)
            classes.append(SchoolClassRecord(
                id=f"{grade}{letter}",
                name=f"{grade}{letter}",
                grade_level=grade,
                student_count=rng.randint(config.min_students, config.max_students),
            ))

    return classes


def _generate_requirements(
    config: GeneratorConfig,
    classes: list[SchoolClassRecord],
    subjects: list[SubjectRecord],
) -> list[CurriculumRequirement]:
    """Give every class its subjects' weekly hours, up to the weekly target.

    A-week and B-week subjects are counted once between them, since they
    share a slot.
    """
    requirements = []
    # B-week subjects last, so their A-week partner is already decided
    ordered = sorted(
        subjects,
        key=lambda s: SUBJECT_DATA[s.id].get("week_pattern") == WeekPattern.B,
    )

    for cls in classes:
        total = 0
        a_week_included = False
        for subject in ordered:
            data = SUBJECT_DATA[subject.id]
            hours = data["lessons_per_week"]
            pattern = data.get("week_pattern", WeekPattern.EVERY)

            if pattern == WeekPattern.B and a_week_included:
                counted = 0
            else:
                counted = hours
            if total + counted > config.lessons_per_class_per_week:
                continue
            total += counted
            if pattern == WeekPattern.A:
                a_week_included = True

            requirements.append(CurriculumRequirement(
                id=f"{cls.id}-{subject.id}",
                school_class_id=cls.id,
                subject_id=subject.id,
                weekly_hours=hours,
                week_pattern=pattern,
            ))

    return requirements


def _generate_qualifications(
    config: GeneratorConfig,
    teachers: list[TeacherRecord],
    subjects: list[SubjectRecord],
    requirements: list[CurriculumRequirement],
    rng: random.Random,
) -> list[TeacherQualification]:
    """Assign subjects to teachers so that every subject is covered.

    The first subject of a teacher is PRIMARY, further ones SECONDARY.
    """
    subject_ids = [s.id for s in subjects]
    teacher_subjects: dict[str, list[str]] = {}

    for teacher in teachers:
        num = rng.randint(config.teacher_min_subjects, config.teacher_max_subjects)
        teacher_subjects[teacher.id] = rng.sample(subject_ids, min(num, len(subject_ids)))

    # Add teachers to subjects whose demand exceeds qualified capacity
    week_slots = config.num_days * config.periods_per_day
    per_teacher = max(1, int(week_slots * config.teacher_utilization))
    demand: dict[str, int] = {s: 0 for s in subject_ids}
    for req in requirements:
        demand[req.subject_id] += req.weekly_hours

    for subject_id in subject_ids:
        needed = math.ceil(demand[subject_id] / per_teacher)
        qualified = [t for t, subs in teacher_subjects.items() if subject_id in subs]
        spare = sorted(
            (t for t in teacher_subjects if subject_id not in teacher_subjects[t]),
            key=lambda t: len(teacher_subjects[t]),
        )
        while len(qualified) < needed and spare:
            teacher_id = spare.pop(0)
            teacher_subjects[teacher_id].append(subject_id)
            qualified.append(teacher_id)

    qualifications = []
    for teacher_id, subs in teacher_subjects.items():
        for index, subject_id in enumerate(subs):
            qualifications.append(TeacherQualification(
                teacher_id=teacher_id,
                subject_id=subject_id,
                qualification_level=(
                    QualificationLevel.PRIMARY if index == 0 else QualificationLevel.SECONDARY
                ),
                can_teach_grades=list(config.grade_levels),
            ))

    return qualifications


def _generate_rooms(
    config: GeneratorConfig,
    subjects: list[SubjectRecord],
    rng: random.Random,
) -> list[RoomRecord]:
    """General-purpose classrooms plus one specialist room per specialist subject."""
    rooms = []

    for i in range(config.num_classrooms):
        floor = (i // 4) + 1
        room_num = floor * 100 + (i % 4) + 1
        rooms.append(RoomRecord(
            id=f"r{room_num}",
            name=f"Room {room_num}",
            capacity=rng.randint(config.classroom_capacity_min, config.classroom_capacity_max),
        ))

    for subject in subjects:
        room_name = SUBJECT_DATA[subject.id].get("specialist_room")
        if room_name is None:
            continue
        rooms.append(RoomRecord(
            id=f"{subject.id}1",
            name=room_name,
            capacity=rng.randint(config.specialist_capacity_min, config.specialist_capacity_max),
            suitable_subject_ids=[subject.id],
        ))

    return rooms


def _generate_availabilities(
    config: GeneratorConfig,
    teachers: list[TeacherRecord],
    rng: random.Random,
) -> list[TeacherAvailability]:
    """Random blocked and preferred slots; blocked slots win on collision."""
    availabilities = []

    for teacher in teachers:
        blocked: set[tuple[int, int]] = set()
        for _ in range(rng.randint(0, config.teacher_max_blocked_slots)):
            blocked.add((rng.randrange(config.num_days), rng.randint(1, config.periods_per_day)))

        preferred: set[tuple[int, int]] = set()
        for _ in range(rng.randint(0, config.teacher_max_preferred_slots)):
            slot = (rng.randrange(config.num_days), rng.randint(1, config.periods_per_day))
            if slot not in blocked:
                preferred.add(slot)

        for kind, slots in (
            (AvailabilityType.BLOCKED, blocked),
            (AvailabilityType.PREFERRED, preferred),
        ):
            for day, period in sorted(slots):
                availabilities.append(TeacherAvailability(
                    teacher_id=teacher.id,
                    day_of_week=day,
                    period=_grid_period(config, period),
                    availability_type=kind,
                ))

    return availabilities


def _grid_period(config: GeneratorConfig, teaching_period: int) -> int:
    """Map the n-th teaching period of a day to its period number in the grid."""
    if config.break_after_period is not None and teaching_period > config.break_after_period:
        return teaching_period + 1
    return teaching_period


def _assign_class_teachers(
    classes: list[SchoolClassRecord],
    qualifications: list[TeacherQualification],
) -> None:
    """Round-robin class teachers over the teachers of core subjects."""
    core_ids = {data["id"] for data in CORE_SUBJECTS}
    candidates = sorted({
        q.teacher_id for q in qualifications if q.subject_id in core_ids
    }, key=lambda t: int(t[1:]))
    if not candidates:
        return

    for index, cls in enumerate(classes):
        cls.class_teacher_id = candidates[index % len(candidates)]
