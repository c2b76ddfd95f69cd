"""
Solution extractor for converting solved timetables to output format.

This module reads the planning variables of a solved Timetable and converts
them into ordered LessonRecords and the structured TimetableSolution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..config import SolverConfig
from ..constraints import ConstraintSummary, explain_score
from ..data.models import day_name
from ..domain import Lesson, Timetable
from .schema import (
    ConstraintViolation,
    DaySchedule,
    EntitySchedule,
    LessonRecord,
    ScoreSummary,
    SolutionStatus,
    TimetableSolution,
    TimetableViews,
)

if TYPE_CHECKING:
    from ..search.orchestrator import SolverResult


class UnresolvedAssignmentError(Exception):
    """Raised when a finished timetable still has unassigned variables."""

    def __init__(self, term_id: str, problems: list[str]):
        self.term_id = term_id
        self.problems = problems
        super().__init__(
            f"Timetable for term {term_id} has unresolved lessons:\n"
            + "\n".join(f"  - {p}" for p in problems)
        )


# =============================================================================
# Helper Functions
# =============================================================================

def sort_lessons(lessons: list[LessonRecord]) -> list[LessonRecord]:
    """Sort lessons by day, period, class and subject."""
    return sorted(
        lessons,
        key=lambda r: (r.day_of_week, r.period, r.school_class_id, r.subject_id),
    )


def group_by_class(lessons: list[LessonRecord]) -> dict[str, list[LessonRecord]]:
    """Group lessons by class ID."""
    result: dict[str, list[LessonRecord]] = {}
    for lesson in lessons:
        result.setdefault(lesson.school_class_id, []).append(lesson)
    return result


def group_by_teacher(lessons: list[LessonRecord]) -> dict[str, list[LessonRecord]]:
    """Group lessons by teacher ID; lessons without a teacher are left out."""
    result: dict[str, list[LessonRecord]] = {}
    for lesson in lessons:
        if lesson.teacher_id is not None:
            result.setdefault(lesson.teacher_id, []).append(lesson)
    return result


def group_by_room(lessons: list[LessonRecord]) -> dict[str, list[LessonRecord]]:
    """Group lessons by room ID; lessons without a room are left out."""
    result: dict[str, list[LessonRecord]] = {}
    for lesson in lessons:
        if lesson.room_id is not None:
            result.setdefault(lesson.room_id, []).append(lesson)
    return result


def group_by_day(lessons: list[LessonRecord]) -> dict[int, list[LessonRecord]]:
    """Group lessons by day."""
    result: dict[int, list[LessonRecord]] = {}
    for lesson in lessons:
        result.setdefault(lesson.day_of_week, []).append(lesson)
    return result


# =============================================================================
# Lesson Records
# =============================================================================

def _unresolved_reason(lesson: Lesson, allow_unresourced: bool) -> Optional[str]:
    if lesson.time_slot is None:
        return f"{lesson.id}: no time slot"
    if allow_unresourced:
        return None
    if lesson.room is None:
        return f"{lesson.id}: no room"
    if lesson.teacher is None:
        return f"{lesson.id}: no teacher"
    return None


def extract_lesson_records(
    timetable: Timetable,
    allow_unresourced: bool = False,
) -> list[LessonRecord]:
    """
    Convert every lesson of a solved timetable into a LessonRecord.

    Args:
        timetable: Solved timetable (not modified)
        allow_unresourced: Accept lessons without a room or teacher

    Returns:
        Records ordered by day, period, class and subject

    Raises:
        UnresolvedAssignmentError: If a lesson has no time slot, or no room
            or teacher while unresourced lessons are not allowed
    """
    problems = [
        reason
        for reason in (_unresolved_reason(l, allow_unresourced) for l in timetable.lessons)
        if reason is not None
    ]
    if problems:
        raise UnresolvedAssignmentError(timetable.term_id, problems)

    records = []
    for lesson in timetable.lessons:
        slot = lesson.time_slot
        records.append(LessonRecord(
            termId=timetable.term_id,
            lessonId=lesson.id,
            schoolClassId=lesson.school_class.id,
            subjectId=lesson.subject.id,
            teacherId=lesson.teacher.id if lesson.teacher else None,
            timeSlotId=slot.id,
            dayOfWeek=slot.day_of_week,
            period=slot.period,
            roomId=lesson.room.id if lesson.room else None,
            weekPattern=lesson.week_pattern,
            schoolClassName=lesson.school_class.name,
            subjectName=lesson.subject.name,
            teacherName=lesson.teacher.name if lesson.teacher else None,
            roomName=lesson.room.name if lesson.room else None,
        ))

    return sort_lessons(records)


# =============================================================================
# Solution Extractor
# =============================================================================

class SolutionExtractor:
    """
    Builds the solution document for a finished solve.

    Usage:
        extractor = SolutionExtractor(config)
        solution = extractor.extract(result)
        json_str = solution.to_json()
    """

    def __init__(self, config: Optional[SolverConfig] = None):
        self.config = config or SolverConfig()

    def extract(self, result: SolverResult) -> TimetableSolution:
        """
        Extract lesson records, score breakdown and views from a result.

        Raises:
            UnresolvedAssignmentError: If the timetable has unresolved lessons
        """
        timetable = result.timetable
        lessons = extract_lesson_records(timetable, self.config.allow_unresourced)
        summaries = explain_score(timetable, self.config.weights)

        return TimetableSolution(
            termId=timetable.term_id,
            status=self._get_status(result),
            terminationReason=(
                result.termination_reason.value if result.termination_reason is not None else None
            ),
            solveTimeSeconds=round(result.elapsed_seconds, 3),
            movesEvaluated=result.moves_evaluated,
            score=self._extract_score(result, summaries),
            lessons=lessons,
            violations=self._extract_violations(summaries),
            views=self._create_views(lessons, timetable),
        )

    def _get_status(self, result: SolverResult) -> SolutionStatus:
        """Map the solve outcome to output status."""
        status_map = {
            "FEASIBLE": SolutionStatus.FEASIBLE,
            "INFEASIBLE": SolutionStatus.INFEASIBLE,
            "TIMED_OUT": SolutionStatus.TIMEOUT,
            "SOLVING": SolutionStatus.SOLVING,
        }
        return status_map[result.outcome.value]

    def _extract_score(
        self,
        result: SolverResult,
        summaries: dict[str, ConstraintSummary],
    ) -> ScoreSummary:
        """Score totals plus the non-zero contribution of each constraint."""
        constraint_scores = {
            name: (summary.score.hard if summary.is_hard else summary.score.soft)
            for name, summary in summaries.items()
            if summary.match_count
        }
        return ScoreSummary(
            hardScore=result.score.hard,
            softScore=result.score.soft,
            hardConstraintsSatisfied=result.is_feasible,
            constraintScores=constraint_scores,
        )

    def _extract_violations(
        self,
        summaries: dict[str, ConstraintSummary],
    ) -> list[ConstraintViolation]:
        """Every penalizing match, hard constraints first."""
        violations: list[ConstraintViolation] = []
        for summary in sorted(summaries.values(), key=lambda s: not s.is_hard):
            for match in summary.matches:
                if match.score.hard >= 0 and match.score.soft >= 0:
                    continue
                violations.append(ConstraintViolation(
                    constraintName=match.constraint,
                    hard=summary.is_hard,
                    score=str(match.score),
                    affectedLessonIds=list(match.lesson_ids),
                ))
        return violations

    def _create_views(
        self,
        lessons: list[LessonRecord],
        timetable: Timetable,
    ) -> TimetableViews:
        """Create pre-computed views from lessons."""
        class_names = {c.id: c.name for c in timetable.school_classes}
        teacher_names = {t.id: t.name for t in timetable.teachers}
        room_names = {r.id: r.name for r in timetable.rooms}

        def schedules(
            groups: dict[str, list[LessonRecord]],
            names: dict[str, str],
        ) -> dict[str, EntitySchedule]:
            return {
                entity_id: EntitySchedule(
                    id=entity_id,
                    name=names.get(entity_id, entity_id),
                    lessons=entity_lessons,
                    byDay=group_by_day(entity_lessons),
                )
                for entity_id, entity_lessons in sorted(groups.items())
            }

        by_day = {
            day: DaySchedule(day=day, dayName=day_name(day), lessons=day_lessons)
            for day, day_lessons in sorted(group_by_day(lessons).items())
        }

        # lessons is already sorted, so every group keeps that order
        return TimetableViews(
            byClass=schedules(group_by_class(lessons), class_names),
            byTeacher=schedules(group_by_teacher(lessons), teacher_names),
            byRoom=schedules(group_by_room(lessons), room_names),
            byDay=by_day,
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def build_solution(
    result: SolverResult,
    config: Optional[SolverConfig] = None,
) -> TimetableSolution:
    """Build the solution document for a finished solve."""
    return SolutionExtractor(config).extract(result)


def solution_to_json(
    result: SolverResult,
    config: Optional[SolverConfig] = None,
    indent: int = 2,
) -> str:
    """
    Build the solution document and convert it to a JSON string.

    Args:
        result: Finished solve
        config: Configuration the solve ran with
        indent: JSON indentation

    Returns:
        JSON string representation (camelCase keys)
    """
    return build_solution(result, config).to_json(indent=indent)
