"""
Problem assembler: turns a ProblemInput snapshot into a Timetable.

Creates one Lesson planning entity per required lesson-hour, works out each
lesson's candidate teachers and rooms, and rejects problems that are
infeasible before any search starts.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional

from .config import SolverConfig
from .data.models import (
    QUALIFICATION_RANK,
    AvailabilityType,
    CurriculumRequirement,
    ProblemInput,
    QualificationLevel,
    WeekPattern,
)
from .domain import Lesson, Room, SchoolClass, Subject, Teacher, TimeSlot, Timetable

logger = logging.getLogger(__name__)


class ProblemAssemblyError(Exception):
    """Raised when the input is structurally infeasible before solving."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Problem assembly failed:\n" + "\n".join(f"  - {e}" for e in errors))


class ProblemAssembler:
    """
    Builds the planning problem for one term.

    Usage:
        assembler = ProblemAssembler(problem_input, config)
        timetable = assembler.assemble()
        for warning in assembler.warnings:
            ...
    """

    def __init__(self, problem: ProblemInput, config: Optional[SolverConfig] = None):
        self.problem = problem
        self.config = config or SolverConfig()
        self.warnings: list[str] = []

        self._qualification_levels: dict[tuple[str, str], QualificationLevel] = {}
        self._subject_caps: dict[tuple[str, str], int] = {}

    # -------------------------------------------------------------------------
    # Fact Conversion
    # -------------------------------------------------------------------------

    def _build_time_slots(self) -> list[TimeSlot]:
        return [
            TimeSlot(
                id=record.id,
                day_of_week=record.day_of_week,
                period=record.period,
                start_time=record.start_time,
                end_time=record.end_time,
            )
            for record in self.problem.get_assignable_slots()
        ]

    def _build_rooms(self) -> list[Room]:
        return [
            Room(
                id=record.id,
                name=record.name or record.id,
                capacity=record.capacity,
                suitable_subject_ids=frozenset(record.suitable_subject_ids),
            )
            for record in self.problem.rooms
            if record.active
        ]

    def _build_subjects(self) -> list[Subject]:
        return [
            Subject(id=record.id, name=record.name, abbreviation=record.abbreviation)
            for record in self.problem.subjects
        ]

    def _build_school_classes(self) -> list[SchoolClass]:
        return [
            SchoolClass(
                id=record.id,
                name=record.name,
                grade_level=record.grade_level,
                student_count=record.student_count,
                class_teacher_id=record.class_teacher_id,
            )
            for record in self.problem.school_classes
            if record.active
        ]

    def _build_teachers(self) -> list[Teacher]:
        """Denormalize availability and qualifications onto each teacher."""
        term_id = self.problem.term_id
        blocked: dict[str, set[str]] = defaultdict(set)
        preferred: dict[str, set[str]] = defaultdict(set)

        for avail in self.problem.availabilities:
            # Global records (no term) and records for this term both apply
            if avail.term_id is not None and avail.term_id != term_id:
                continue
            if avail.availability_type == AvailabilityType.BLOCKED:
                blocked[avail.teacher_id].add(avail.key)
            elif avail.availability_type == AvailabilityType.PREFERRED:
                preferred[avail.teacher_id].add(avail.key)

        qualified: dict[str, dict[str, frozenset[int]]] = defaultdict(dict)
        for qual in self.problem.qualifications:
            qualified[qual.teacher_id][qual.subject_id] = frozenset(qual.can_teach_grades or ())
            self._qualification_levels[(qual.teacher_id, qual.subject_id)] = qual.qualification_level
            if qual.max_hours_per_week is not None:
                self._subject_caps[(qual.teacher_id, qual.subject_id)] = qual.max_hours_per_week

        return [
            Teacher(
                id=record.id,
                name=record.name,
                abbreviation=record.abbreviation,
                max_hours_per_week=record.max_hours_per_week,
                blocked_slots=frozenset(blocked[record.id]),
                preferred_slots=frozenset(preferred[record.id] - blocked[record.id]),
                qualifications=dict(qualified[record.id]),
            )
            for record in self.problem.teachers
            if record.active
        ]

    # -------------------------------------------------------------------------
    # Candidate Selection
    # -------------------------------------------------------------------------

    def _candidate_teachers(
        self,
        requirement: CurriculumRequirement,
        school_class: SchoolClass,
        teachers: dict[str, Teacher],
    ) -> list[Teacher]:
        """Qualified teachers for a requirement, best qualification level first."""
        if requirement.candidate_teacher_ids:
            pool = [teachers[t] for t in requirement.candidate_teacher_ids if t in teachers]
        else:
            pool = list(teachers.values())

        qualified = [
            t for t in pool
            if t.is_qualified_for(requirement.subject_id, school_class.grade_level)
        ]

        def rank(teacher: Teacher) -> int:
            level = self._qualification_levels.get((teacher.id, requirement.subject_id))
            return QUALIFICATION_RANK.get(level, len(QUALIFICATION_RANK))

        # sorted() is stable, so input order breaks ties
        return sorted(qualified, key=rank)

    def _lesson_id_prefixes(self) -> list[str]:
        """
        One lesson id prefix per requirement.

        Requirements sharing a key (e.g. a class's maths split between two
        teachers) get "-r2", "-r3", ... appended so lesson ids stay unique.
        """
        used: set[str] = set()
        prefixes: list[str] = []
        for req in self.problem.requirements:
            prefix = req.key
            occurrence = 1
            while prefix in used:
                occurrence += 1
                prefix = f"{req.key}-r{occurrence}"
            used.add(prefix)
            prefixes.append(prefix)
        return prefixes

    # -------------------------------------------------------------------------
    # Feasibility Checks
    # -------------------------------------------------------------------------

    def _check_class_slot_capacity(
        self, num_slots: int, active_class_ids: set[str], errors: list[str]
    ) -> None:
        """A class cannot need more slots than the term offers."""
        hours: dict[str, dict[WeekPattern, int]] = defaultdict(lambda: defaultdict(int))
        for req in self.problem.requirements:
            if req.school_class_id not in active_class_ids:
                continue
            hours[req.school_class_id][req.week_pattern] += req.weekly_hours

        for class_id, by_pattern in hours.items():
            # An A-week and a B-week lesson can share one slot
            needed = by_pattern[WeekPattern.EVERY] + max(by_pattern[WeekPattern.A], by_pattern[WeekPattern.B])
            if needed > num_slots:
                errors.append(
                    f"Class '{class_id}' needs {needed} slots but the term only has "
                    f"{num_slots} non-break slots"
                )

    def _check_workload(self, lessons: list[Lesson]) -> None:
        """Warn about fixed teacher assignments exceeding hour limits."""
        weekly: dict[str, float] = defaultdict(float)
        per_subject: dict[tuple[str, str], float] = defaultdict(float)
        teachers: dict[str, Teacher] = {}

        for lesson in lessons:
            if not lesson.teacher_is_fixed:
                continue
            teacher = lesson.candidate_teachers[0]
            teachers[teacher.id] = teacher
            # A/B lessons take half a weekly hour on average
            hours = 1.0 if lesson.week_pattern == WeekPattern.EVERY else 0.5
            weekly[teacher.id] += hours
            per_subject[(teacher.id, lesson.subject.id)] += hours

        for teacher_id, hours in weekly.items():
            teacher = teachers[teacher_id]
            if hours > teacher.max_hours_per_week:
                self.warnings.append(
                    f"Teacher '{teacher.name}' has {hours:g} fixed hours but max is "
                    f"{teacher.max_hours_per_week}"
                )

        for (teacher_id, subject_id), hours in per_subject.items():
            cap = self._subject_caps.get((teacher_id, subject_id))
            if cap is not None and hours > cap:
                self.warnings.append(
                    f"Teacher '{teachers[teacher_id].name}' has {hours:g} fixed hours of "
                    f"'{subject_id}' but the qualification allows {cap}"
                )

    # -------------------------------------------------------------------------
    # Assembly
    # -------------------------------------------------------------------------

    def assemble(self) -> Timetable:
        """
        Build the Timetable for the problem's term.

        Returns:
            Timetable with one unplaced Lesson per required hour; each lesson's
            teacher is seeded with its best qualified candidate

        Raises:
            ProblemAssemblyError: If the problem is infeasible before solving
        """
        errors: list[str] = []
        self.warnings = []

        time_slots = self._build_time_slots()
        rooms = self._build_rooms()
        subjects = self._build_subjects()
        school_classes = self._build_school_classes()
        teachers = self._build_teachers()

        class_map = {c.id: c for c in school_classes}
        subject_map = {s.id: s for s in subjects}
        teacher_map = {t.id: t for t in teachers}

        if not self.problem.requirements:
            errors.append(f"No lessons to solve for term '{self.problem.term_id}'")

        self._check_class_slot_capacity(len(time_slots), set(class_map), errors)

        lessons: list[Lesson] = []
        prefixes = self._lesson_id_prefixes()
        for req, prefix in zip(self.problem.requirements, prefixes):
            school_class = class_map.get(req.school_class_id)
            if school_class is None:
                logger.info("Skipping requirement %s for inactive class", req.key)
                continue
            subject = subject_map[req.subject_id]

            candidates = self._candidate_teachers(req, school_class, teacher_map)
            if not candidates:
                errors.append(
                    f"Requirement {req.key}: no qualified teacher for '{subject.name}' "
                    f"in grade {school_class.grade_level}"
                )
                continue

            candidate_rooms = [r for r in rooms if r.suits(subject.id)]
            if not candidate_rooms and not self.config.allow_unresourced:
                errors.append(f"Requirement {req.key}: no room suitable for '{subject.name}'")
                continue

            for hour in range(req.weekly_hours):
                lessons.append(Lesson(
                    id=f"{prefix}-{hour + 1}",
                    school_class=school_class,
                    subject=subject,
                    week_pattern=req.week_pattern,
                    candidate_teachers=tuple(candidates),
                    candidate_rooms=tuple(candidate_rooms),
                    teacher=candidates[0],
                ))

        if errors:
            raise ProblemAssemblyError(errors)

        self._check_workload(lessons)
        for warning in self.warnings:
            logger.warning(warning)

        timetable = Timetable(
            term_id=self.problem.term_id,
            time_slots=time_slots,
            rooms=rooms,
            teachers=teachers,
            school_classes=school_classes,
            subjects=subjects,
            lessons=lessons,
        )
        logger.info(
            "Assembled term %s: %d lessons, %d slots, %d rooms, %d teachers",
            timetable.term_id, len(lessons), len(time_slots), len(rooms), len(teachers),
        )
        return timetable


def assemble_timetable(problem: ProblemInput, config: Optional[SolverConfig] = None) -> Timetable:
    """Convenience wrapper around ProblemAssembler.assemble()."""
    return ProblemAssembler(problem, config).assemble()
