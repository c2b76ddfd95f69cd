"""
Hard and soft constraint definitions.

Every constraint is either per-lesson (unary) or per unordered pair of
lessons. lesson_matches() and pair_matches() are the single source of truth
for scoring: the full evaluator and the incremental score director both sum
the matches they yield.

Hard constraints (-1 hard each):
- Teacher conflict: same teacher, same slot, overlapping week pattern
- Room conflict: same room, same slot, overlapping week pattern
- Class conflict: same class, same slot, overlapping week pattern
- Teacher availability: teacher blocked at the lesson's slot
- Room capacity: room smaller than the class
- Teacher qualification: teacher may not teach the subject at this grade

Soft constraints (weights from ConstraintWeights):
- Teacher preferred slots: reward per lesson in a preferred slot
- Teacher gap: penalty per idle period between two same-day lessons
- Subject distribution: penalty per same-day repeat of a class's subject
- Class teacher first period: penalty when period 1 is not taught by the
  class teacher
"""

from __future__ import annotations

from typing import Iterator

from ..config import ConstraintWeights
from ..domain import HardSoftScore, Lesson


# =============================================================================
# Constraint Names
# =============================================================================

TEACHER_CONFLICT = "Teacher conflict"
ROOM_CONFLICT = "Room conflict"
CLASS_CONFLICT = "Class conflict"
TEACHER_AVAILABILITY = "Teacher availability"
ROOM_CAPACITY = "Room capacity"
TEACHER_QUALIFICATION = "Teacher qualification"

TEACHER_PREFERRED_SLOTS = "Teacher preferred slots"
TEACHER_GAP = "Teacher gap"
SUBJECT_DISTRIBUTION = "Subject distribution"
CLASS_TEACHER_FIRST_PERIOD = "Class teacher first period"

HARD_CONSTRAINTS = (
    TEACHER_CONFLICT,
    ROOM_CONFLICT,
    CLASS_CONFLICT,
    TEACHER_AVAILABILITY,
    ROOM_CAPACITY,
    TEACHER_QUALIFICATION,
)

SOFT_CONSTRAINTS = (
    TEACHER_PREFERRED_SLOTS,
    TEACHER_GAP,
    SUBJECT_DISTRIBUTION,
    CLASS_TEACHER_FIRST_PERIOD,
)

ONE_HARD = HardSoftScore(hard=-1)


# =============================================================================
# Per-Lesson Constraints
# =============================================================================

def lesson_matches(
    lesson: Lesson,
    weights: ConstraintWeights,
) -> Iterator[tuple[str, HardSoftScore]]:
    """
    Yield (constraint name, score impact) for one lesson on its own.

    Unplaced lessons (no time slot) never match.
    """
    slot = lesson.time_slot
    if slot is None:
        return

    teacher = lesson.teacher
    school_class = lesson.school_class

    if teacher is not None:
        if teacher.is_blocked_at(slot):
            yield TEACHER_AVAILABILITY, ONE_HARD

        if not teacher.is_qualified_for(lesson.subject.id, school_class.grade_level):
            yield TEACHER_QUALIFICATION, ONE_HARD

    room = lesson.room
    if (
        room is not None
        and room.capacity is not None
        and school_class.student_count is not None
        and room.capacity < school_class.student_count
    ):
        yield ROOM_CAPACITY, ONE_HARD

    if teacher is None:
        return

    if weights.teacher_preferred_slot and teacher.prefers_slot(slot):
        yield TEACHER_PREFERRED_SLOTS, HardSoftScore(soft=weights.teacher_preferred_slot)

    if (
        weights.class_teacher_first_period
        and slot.period == 1
        and school_class.class_teacher_id is not None
        and teacher.id != school_class.class_teacher_id
    ):
        yield CLASS_TEACHER_FIRST_PERIOD, HardSoftScore(soft=-weights.class_teacher_first_period)


# =============================================================================
# Pairwise Constraints
# =============================================================================

def pair_matches(
    first: Lesson,
    second: Lesson,
    weights: ConstraintWeights,
) -> Iterator[tuple[str, HardSoftScore]]:
    """
    Yield (constraint name, score impact) for an unordered pair of lessons.

    Only pairs of placed lessons whose week patterns overlap can match.
    """
    slot_a = first.time_slot
    slot_b = second.time_slot
    if slot_a is None or slot_b is None:
        return
    if slot_a.day_of_week != slot_b.day_of_week:
        return
    if not first.overlaps(second):
        return

    same_slot = slot_a.id == slot_b.id
    same_teacher = (
        first.teacher is not None
        and second.teacher is not None
        and first.teacher.id == second.teacher.id
    )
    same_class = first.school_class.id == second.school_class.id

    if same_slot:
        if same_teacher:
            yield TEACHER_CONFLICT, ONE_HARD
        if (
            first.room is not None
            and second.room is not None
            and first.room.id == second.room.id
        ):
            yield ROOM_CONFLICT, ONE_HARD
        if same_class:
            yield CLASS_CONFLICT, ONE_HARD

    if same_teacher and weights.teacher_gap:
        idle = abs(slot_a.period - slot_b.period) - 1
        if idle > 0:
            yield TEACHER_GAP, HardSoftScore(soft=-weights.teacher_gap * idle)

    if same_class and weights.subject_distribution and first.subject.id == second.subject.id:
        yield SUBJECT_DISTRIBUTION, HardSoftScore(soft=-weights.subject_distribution)


def lesson_score(lesson: Lesson, weights: ConstraintWeights) -> HardSoftScore:
    """Sum of a lesson's unary matches."""
    hard = soft = 0
    for _, impact in lesson_matches(lesson, weights):
        hard += impact.hard
        soft += impact.soft
    return HardSoftScore(hard, soft)


def pair_score(first: Lesson, second: Lesson, weights: ConstraintWeights) -> HardSoftScore:
    """Sum of a pair's matches."""
    hard = soft = 0
    for _, impact in pair_matches(first, second, weights):
        hard += impact.hard
        soft += impact.soft
    return HardSoftScore(hard, soft)
