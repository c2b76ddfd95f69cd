"""
Planning domain for the timetable engine.

Problem facts (TimeSlot, Room, Subject, SchoolClass, Teacher) never change
during a solve. Lessons are the planning entities: each carries a fixed class,
subject and week pattern plus three planning variables (time slot, room,
teacher) that the search assigns in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import time
from typing import Mapping, Optional

from .data.models import WeekPattern, day_name, slot_key, week_patterns_overlap


# =============================================================================
# Score
# =============================================================================

@dataclass(frozen=True, order=True)
class HardSoftScore:
    """
    Two-level score: hard violations first, soft preferences second.

    Both parts are "higher is better"; a feasible timetable has hard == 0.
    """
    hard: int = 0
    soft: int = 0

    def __add__(self, other: HardSoftScore) -> HardSoftScore:
        return HardSoftScore(self.hard + other.hard, self.soft + other.soft)

    def __sub__(self, other: HardSoftScore) -> HardSoftScore:
        return HardSoftScore(self.hard - other.hard, self.soft - other.soft)

    def __neg__(self) -> HardSoftScore:
        return HardSoftScore(-self.hard, -self.soft)

    @property
    def is_feasible(self) -> bool:
        return self.hard >= 0

    def __str__(self) -> str:
        return f"{self.hard}hard/{self.soft}soft"


ZERO_SCORE = HardSoftScore()


# =============================================================================
# Problem Facts
# =============================================================================

@dataclass(frozen=True, eq=False)
class TimeSlot:
    """A non-break slot in the weekly grid."""
    id: str
    day_of_week: int
    period: int
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @property
    def key(self) -> str:
        return slot_key(self.day_of_week, self.period)

    def __str__(self) -> str:
        return f"{day_name(self.day_of_week)} P{self.period}"


@dataclass(frozen=True, eq=False)
class Room:
    id: str
    name: str
    capacity: Optional[int] = None
    suitable_subject_ids: frozenset[str] = frozenset()

    def suits(self, subject_id: str) -> bool:
        """General-purpose rooms (no suitability list) suit every subject."""
        return not self.suitable_subject_ids or subject_id in self.suitable_subject_ids

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class Subject:
    id: str
    name: str
    abbreviation: Optional[str] = None

    def __str__(self) -> str:
        return self.abbreviation or self.name


@dataclass(frozen=True, eq=False)
class SchoolClass:
    id: str
    name: str
    grade_level: int
    student_count: Optional[int] = None
    class_teacher_id: Optional[str] = None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class Teacher:
    """
    Teacher with denormalized availability and qualifications.

    Slot sets hold "day-period" keys; qualifications map a subject id to the
    grade levels the teacher may teach it at.
    """
    id: str
    name: str
    abbreviation: Optional[str] = None
    max_hours_per_week: int = 28
    blocked_slots: frozenset[str] = frozenset()
    preferred_slots: frozenset[str] = frozenset()
    qualifications: Mapping[str, frozenset[int]] = field(default_factory=dict)

    def is_blocked_at(self, time_slot: Optional[TimeSlot]) -> bool:
        return time_slot is not None and time_slot.key in self.blocked_slots

    def prefers_slot(self, time_slot: Optional[TimeSlot]) -> bool:
        return time_slot is not None and time_slot.key in self.preferred_slots

    def is_qualified_for(self, subject_id: str, grade_level: int) -> bool:
        grades = self.qualifications.get(subject_id)
        return grades is not None and grade_level in grades

    def __str__(self) -> str:
        return self.abbreviation or self.name


# =============================================================================
# Planning Entity
# =============================================================================

@dataclass(eq=False)
class Lesson:
    """
    One required lesson-hour.

    school_class, subject and week_pattern are fixed. time_slot, room and
    teacher are planning variables; candidate_teachers and candidate_rooms
    are their value ranges.
    """
    id: str
    school_class: SchoolClass
    subject: Subject
    week_pattern: WeekPattern = WeekPattern.EVERY
    candidate_teachers: tuple[Teacher, ...] = ()
    candidate_rooms: tuple[Room, ...] = ()

    # Planning variables
    time_slot: Optional[TimeSlot] = None
    room: Optional[Room] = None
    teacher: Optional[Teacher] = None

    @property
    def teacher_is_fixed(self) -> bool:
        return len(self.candidate_teachers) == 1

    def overlaps(self, other: Lesson) -> bool:
        """Whether both lessons can fall in the same week."""
        return week_patterns_overlap(self.week_pattern, other.week_pattern)

    def __str__(self) -> str:
        parts = [f"{self.subject}@{self.school_class}"]
        if self.time_slot is not None:
            parts.append(str(self.time_slot))
        if self.room is not None:
            parts.append(str(self.room))
        return " ".join(parts)


# Variables a move may change
PLANNING_VARIABLES = ("time_slot", "room", "teacher")

# One lesson's planning variable values, in PLANNING_VARIABLES order
Assignment = tuple[Optional[TimeSlot], Optional[Room], Optional[Teacher]]


# =============================================================================
# Planning Solution
# =============================================================================

@dataclass(eq=False)
class Timetable:
    """All lessons of one term plus the facts they reference."""
    term_id: str
    time_slots: list[TimeSlot]
    rooms: list[Room]
    teachers: list[Teacher]
    school_classes: list[SchoolClass]
    subjects: list[Subject]
    lessons: list[Lesson]
    score: Optional[HardSoftScore] = None
    _final: bool = field(default=False, repr=False)

    @property
    def is_final(self) -> bool:
        return self._final

    def freeze(self) -> None:
        """Mark the solution as reported; no further mutation is allowed."""
        self._final = True

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    def snapshot(self) -> list[Assignment]:
        """Capture the current planning variable values in lesson order."""
        return [(lesson.time_slot, lesson.room, lesson.teacher) for lesson in self.lessons]

    def _check_snapshot(self, snapshot: list[Assignment]) -> None:
        if len(snapshot) != len(self.lessons):
            raise ValueError(
                f"Snapshot holds {len(snapshot)} assignments but term {self.term_id} "
                f"has {len(self.lessons)} lessons"
            )

    def restore(self, snapshot: list[Assignment]) -> None:
        """Write planning variable values captured by snapshot() back."""
        if self._final:
            raise RuntimeError(f"Timetable for term {self.term_id} is final")
        self._check_snapshot(snapshot)
        for lesson, values in zip(self.lessons, snapshot):
            lesson.time_slot, lesson.room, lesson.teacher = values

    def copy_with(self, snapshot: list[Assignment], score: Optional[HardSoftScore] = None) -> Timetable:
        """
        A final copy of the timetable holding the snapshot's assignment.

        Facts are shared; every lesson is copied, so the copy can be read
        while the search keeps changing this timetable.
        """
        self._check_snapshot(snapshot)
        lessons = [
            replace(lesson, time_slot=time_slot, room=room, teacher=teacher)
            for lesson, (time_slot, room, teacher) in zip(self.lessons, snapshot)
        ]
        copy = Timetable(
            term_id=self.term_id,
            time_slots=list(self.time_slots),
            rooms=list(self.rooms),
            teachers=list(self.teachers),
            school_classes=list(self.school_classes),
            subjects=list(self.subjects),
            lessons=lessons,
            score=score,
        )
        copy.freeze()
        return copy

    @property
    def unassigned_lessons(self) -> list[Lesson]:
        return [lesson for lesson in self.lessons if lesson.time_slot is None]

    def summary(self) -> dict[str, object]:
        return {
            "term_id": self.term_id,
            "lessons": len(self.lessons),
            "time_slots": len(self.time_slots),
            "rooms": len(self.rooms),
            "teachers": len(self.teachers),
            "classes": len(self.school_classes),
            "subjects": len(self.subjects),
            "unassigned": len(self.unassigned_lessons),
            "score": str(self.score) if self.score is not None else None,
        }
