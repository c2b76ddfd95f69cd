"""Tests for solution extraction and the output schema."""

from __future__ import annotations

import json

import pytest

from timetable_engine.assembler import assemble_timetable
from timetable_engine.config import SolverConfig
from timetable_engine.constraints import (
    ROOM_CONFLICT,
    SUBJECT_DISTRIBUTION,
    TEACHER_CONFLICT,
    TEACHER_PREFERRED_SLOTS,
)
from timetable_engine.domain import HardSoftScore, Teacher
from timetable_engine.output import (
    SolutionStatus,
    TimetableSolution,
    UnresolvedAssignmentError,
    build_solution,
    extract_lesson_records,
    solution_to_json,
)
from timetable_engine.search import SolveOutcome, SolverResult, TerminationReason, solve_timetable


def make_result(timetable, score, outcome=SolveOutcome.INFEASIBLE, reason=TerminationReason.UNIMPROVED_LIMIT):
    return SolverResult(
        timetable=timetable,
        score=score,
        outcome=outcome,
        termination_reason=reason,
        construction_score=score,
        moves_evaluated=10,
        elapsed_seconds=0.1234,
    )


@pytest.fixture
def solved(problem, fast_config):
    return solve_timetable(assemble_timetable(problem), fast_config)


class TestLessonRecords:
    def test_one_record_per_lesson(self, solved):
        records = extract_lesson_records(solved.timetable)

        assert len(records) == 16
        assert all(r.term_id == "term-1" for r in records)
        assert all(r.teacher_id is not None and r.room_id is not None for r in records)

    def test_records_ordered(self, solved):
        records = extract_lesson_records(solved.timetable)
        keys = [(r.day_of_week, r.period, r.school_class_id, r.subject_id) for r in records]
        assert keys == sorted(keys)

    def test_records_carry_names(self, solved):
        record = extract_lesson_records(solved.timetable)[0]
        assert record.school_class_name in ("5a", "6a")
        assert record.subject_name in ("Mathematics", "English", "Biology")
        assert record.time_slot_id == f"{record.day_of_week}-{record.period}"

    def test_unplaced_lessons_rejected(self, problem):
        timetable = assemble_timetable(problem)

        with pytest.raises(UnresolvedAssignmentError) as exc_info:
            extract_lesson_records(timetable)

        assert len(exc_info.value.problems) == 16
        assert exc_info.value.problems[0].endswith("no time slot")

    def test_missing_room_rejected(self, make_lesson, make_timetable, slots):
        timetable = make_timetable([make_lesson(slot=slots[(0, 1)], lesson_id="x")])

        with pytest.raises(UnresolvedAssignmentError, match="x: no room"):
            extract_lesson_records(timetable)

    def test_missing_room_allowed(self, make_lesson, make_timetable, slots):
        timetable = make_timetable([make_lesson(slot=slots[(0, 1)])])

        [record] = extract_lesson_records(timetable, allow_unresourced=True)

        assert record.room_id is None
        assert record.room_name is None
        assert record.teacher_id == "t1"

    def test_missing_slot_never_allowed(self, make_lesson, make_timetable):
        timetable = make_timetable([make_lesson()])
        with pytest.raises(UnresolvedAssignmentError, match="no time slot"):
            extract_lesson_records(timetable, allow_unresourced=True)


class TestSolution:
    def test_feasible_solution(self, solved, fast_config):
        solution = build_solution(solved, fast_config)

        assert solution.status == SolutionStatus.FEASIBLE
        assert solution.is_feasible
        assert solution.score.hard_score == 0
        assert solution.moves_evaluated == solved.moves_evaluated
        assert len(solution.lessons) == 16
        assert all(v.hard is False for v in solution.violations)

    def test_views(self, solved):
        views = build_solution(solved).views

        assert list(views.by_class) == ["5a", "6a"]
        assert len(views.by_class["5a"].lessons) == 9
        assert views.by_teacher["t3"].name == "Cara Lee"
        assert len(views.by_teacher["t3"].lessons) == 3
        assert sum(len(s.lessons) for s in views.by_room.values()) == 16
        assert all(day.day_name for day in views.by_day.values())

    def test_timed_out_status(self, make_lesson, make_timetable, slots, room_101):
        timetable = make_timetable([make_lesson(slot=slots[(0, 2)], room=room_101)])
        result = make_result(
            timetable, HardSoftScore(0, 0), SolveOutcome.TIMED_OUT, TerminationReason.TIME_LIMIT
        )

        solution = build_solution(result)

        assert solution.status == SolutionStatus.TIMEOUT
        assert solution.termination_reason == "TIME_LIMIT"
        assert solution.solve_time_seconds == 0.123

    def test_provisional_status(self, make_lesson, make_timetable, slots, room_101):
        timetable = make_timetable([make_lesson(slot=slots[(0, 2)], room=room_101)])
        result = make_result(timetable, HardSoftScore(0, 0), SolveOutcome.SOLVING, None)

        solution = build_solution(result)

        assert solution.status == SolutionStatus.SOLVING
        assert solution.termination_reason is None
        assert json.loads(solution.to_json())["terminationReason"] is None


class TestViolations:
    @pytest.fixture
    def conflicting(self, make_lesson, make_timetable, slots, room_101, class_5b):
        """Two lessons sharing teacher and room, plus a same-day maths repeat."""
        lessons = [
            make_lesson(slot=slots[(0, 1)], room=room_101, lesson_id="a"),
            make_lesson(slot=slots[(0, 1)], room=room_101, school_class=class_5b, lesson_id="b"),
            make_lesson(slot=slots[(0, 2)], room=room_101, lesson_id="c"),
        ]
        return make_timetable(lessons)

    def test_hard_violations_first(self, conflicting):
        solution = build_solution(make_result(conflicting, HardSoftScore(-2, -2)))

        names = [v.constraint_name for v in solution.violations]
        assert names[:2] == [TEACHER_CONFLICT, ROOM_CONFLICT]
        assert names[2:] == [SUBJECT_DISTRIBUTION]
        assert solution.violations[0].affected_lesson_ids == ["a", "b"]
        assert solution.violations[0].score == "-1hard/0soft"

    def test_constraint_scores(self, conflicting):
        solution = build_solution(make_result(conflicting, HardSoftScore(-2, -2)))

        assert solution.status == SolutionStatus.INFEASIBLE
        assert not solution.is_feasible
        assert solution.score.constraint_scores == {
            TEACHER_CONFLICT: -1,
            ROOM_CONFLICT: -1,
            SUBJECT_DISTRIBUTION: -2,
        }

    def test_rewards_are_not_violations(self, make_lesson, make_timetable, slots, room_101):
        teacher = Teacher(
            id="t9",
            name="Early Bird",
            preferred_slots=frozenset({"0-2"}),
            qualifications={"mat": frozenset({5})},
        )
        timetable = make_timetable([make_lesson(slot=slots[(0, 2)], room=room_101, teacher=teacher)])

        solution = build_solution(make_result(timetable, HardSoftScore(0, 1), SolveOutcome.FEASIBLE))

        assert solution.violations == []
        assert solution.score.constraint_scores == {TEACHER_PREFERRED_SLOTS: 1}


class TestSerialization:
    def test_camel_case_json(self, solved, fast_config):
        data = json.loads(solution_to_json(solved, fast_config))

        assert data["termId"] == "term-1"
        assert data["status"] == "feasible"
        assert data["score"]["hardConstraintsSatisfied"] is True
        lesson = data["lessons"][0]
        assert set(lesson) >= {
            "termId", "lessonId", "schoolClassId", "subjectId", "teacherId",
            "timeSlotId", "dayOfWeek", "period", "roomId", "weekPattern",
        }
        assert "byClass" in data["views"]

    def test_json_loads_back(self, solved):
        solution = build_solution(solved)
        loaded = TimetableSolution.model_validate_json(solution.to_json())

        assert loaded.term_id == solution.term_id
        assert loaded.lessons == solution.lessons
        assert loaded.score.hard_score == solution.score.hard_score

    def test_to_dict_is_json_ready(self, solved):
        data = build_solution(solved, SolverConfig()).to_dict()
        assert data["lessons"][0]["weekPattern"] in ("EVERY", "A", "B")
        json.dumps(data)
