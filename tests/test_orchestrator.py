"""Tests for the solver orchestrator."""

from __future__ import annotations

import pytest

from timetable_engine.assembler import assemble_timetable
from timetable_engine.config import (
    AcceptorConfig,
    AcceptorType,
    ConstructionStrategy,
    SolverConfig,
    TerminationConfig,
)
from timetable_engine.constraints import calculate_score
from timetable_engine.data.models import ProblemInput
from timetable_engine.search import (
    SolveOutcome,
    SolverOrchestrator,
    SolverPhase,
    TerminationReason,
    solve_timetable,
)


class TestSolve:
    """End-to-end solving of the sample problem."""

    def test_finds_feasible_timetable(self, problem, fast_config):
        timetable = assemble_timetable(problem)
        result = solve_timetable(timetable, fast_config)

        assert result.is_feasible
        assert result.outcome == SolveOutcome.FEASIBLE
        assert result.timetable is timetable
        assert timetable.unassigned_lessons == []

    def test_result_is_final_and_consistent(self, problem, fast_config):
        timetable = assemble_timetable(problem)
        result = solve_timetable(timetable, fast_config)

        assert timetable.is_final
        assert timetable.score == result.score
        assert calculate_score(timetable, fast_config.weights) == result.score
        assert result.score >= result.construction_score

    def test_move_limit_terminates(self, problem, fast_config):
        result = solve_timetable(assemble_timetable(problem), fast_config)

        assert result.termination_reason in (
            TerminationReason.MOVE_LIMIT,
            TerminationReason.UNIMPROVED_LIMIT,
        )
        assert result.moves_evaluated <= 3000
        assert result.moves_accepted <= result.moves_evaluated

    def test_values_stay_in_ranges(self, problem, fast_config):
        timetable = assemble_timetable(problem)
        solve_timetable(timetable, fast_config)

        for lesson in timetable.lessons:
            assert lesson.teacher in lesson.candidate_teachers
            assert lesson.room in lesson.candidate_rooms

    def test_same_seed_same_result(self, problem, fast_config):
        first = solve_timetable(assemble_timetable(problem), fast_config)
        second = solve_timetable(assemble_timetable(problem), fast_config)

        assert first.score == second.score
        assert [
            (l.time_slot.id, l.room.id, l.teacher.id) for l in first.timetable.lessons
        ] == [
            (l.time_slot.id, l.room.id, l.teacher.id) for l in second.timetable.lessons
        ]

    def test_input_problem_untouched(self, problem, fast_config):
        before = problem.model_dump()
        solve_timetable(assemble_timetable(problem), fast_config)
        assert problem.model_dump() == before

    def test_split_requirement_solves_consistently(self, problem_data, fast_config):
        # Two requirements for 6a maths with the same key, one per teacher
        problem_data["requirements"][3:4] = [
            {"school_class_id": "6a", "subject_id": "mat", "weekly_hours": 2,
             "candidate_teacher_ids": ["t1"]},
            {"school_class_id": "6a", "subject_id": "mat", "weekly_hours": 1,
             "candidate_teacher_ids": ["t2"]},
        ]
        timetable = assemble_timetable(ProblemInput.model_validate(problem_data))

        result = solve_timetable(timetable, fast_config)

        assert result.score == calculate_score(timetable, fast_config.weights)
        assert result.is_feasible
        maths = [l for l in timetable.lessons if l.id.startswith("6a-mat")]
        assert [l.teacher.id for l in maths] == ["t1", "t1", "t2"]
        assert len({l.time_slot.key for l in maths}) == 3
        for lesson in timetable.lessons:
            assert lesson.teacher in lesson.candidate_teachers

    @pytest.mark.parametrize("acceptor_type", list(AcceptorType))
    def test_every_acceptor(self, problem, fast_config, acceptor_type):
        config = fast_config.model_copy(update={"acceptor": AcceptorConfig(type=acceptor_type)})
        result = solve_timetable(assemble_timetable(problem), config)
        assert result.is_feasible

    def test_cp_sat_construction(self, problem, fast_config):
        config = fast_config.model_copy(update={"construction": ConstructionStrategy.CP_SAT})
        result = solve_timetable(assemble_timetable(problem), config)

        assert result.construction_score.hard == 0
        assert result.is_feasible


class TestLifecycle:
    """Tests for phases, cancellation and termination."""

    def test_phases(self, problem, fast_config):
        orchestrator = SolverOrchestrator(assemble_timetable(problem), fast_config)
        assert orchestrator.phase == SolverPhase.IDLE

        orchestrator.solve()
        assert orchestrator.phase == SolverPhase.TERMINATED

    def test_cannot_solve_twice(self, problem, fast_config):
        orchestrator = SolverOrchestrator(assemble_timetable(problem), fast_config)
        orchestrator.solve()

        with pytest.raises(RuntimeError, match="already ran"):
            orchestrator.solve()

    def test_cancel_before_local_search(self, problem, fast_config):
        orchestrator = SolverOrchestrator(assemble_timetable(problem), fast_config)
        orchestrator.cancel()

        result = orchestrator.solve()

        assert result.cancelled
        assert result.termination_reason == TerminationReason.CANCELLED
        assert result.moves_evaluated == 0
        # Construction still ran; the best solution so far is returned
        assert result.timetable.unassigned_lessons == []
        assert result.score == result.construction_score

    def test_time_limit(self, problem):
        config = SolverConfig(
            termination=TerminationConfig(time_limit_seconds=0.2, unimproved_move_limit=None),
            random_seed=1,
        )
        result = solve_timetable(assemble_timetable(problem), config)

        assert result.termination_reason == TerminationReason.TIME_LIMIT
        assert result.time_bounded
        assert result.outcome == SolveOutcome.TIMED_OUT
        assert result.moves_evaluated > 0

    def test_best_solution_listener(self, problem, fast_config):
        seen = []
        result = solve_timetable(assemble_timetable(problem), fast_config, on_best_solution=seen.append)

        assert seen
        assert seen[-1] == result.score
        assert seen == sorted(seen)

    def test_no_provisional_result_before_solving(self, problem, fast_config):
        orchestrator = SolverOrchestrator(assemble_timetable(problem), fast_config)
        assert orchestrator.current_best() is None

    def test_provisional_result_during_search(self, problem, fast_config):
        provisional = []

        def on_best(score):
            provisional.append(orchestrator.current_best())

        timetable = assemble_timetable(problem)
        orchestrator = SolverOrchestrator(timetable, fast_config, on_best_solution=on_best)
        orchestrator.solve()

        first = provisional[0]
        assert first.outcome == SolveOutcome.SOLVING
        assert first.termination_reason is None
        assert first.score == first.construction_score
        assert first.timetable is not timetable
        assert first.timetable.is_final
        assert first.timetable.unassigned_lessons == []
        assert calculate_score(first.timetable, fast_config.weights) == first.score
        assert calculate_score(provisional[-1].timetable, fast_config.weights) == provisional[-1].score


class TestInfeasible:
    def test_overconstrained_problem_reports_best_effort(self, problem_data):
        # Every lesson of 5a now needs t1, who is blocked on Friday afternoon
        problem_data["requirements"] = [
            {"school_class_id": "5a", "subject_id": "mat", "weekly_hours": 20},
        ]
        problem_data["requirements"].append(
            {"school_class_id": "6a", "subject_id": "mat", "weekly_hours": 1,
             "candidate_teacher_ids": ["t1"]}
        )
        config = SolverConfig(
            termination=TerminationConfig(time_limit_seconds=10, unimproved_move_limit=200),
            random_seed=3,
        )
        result = solve_timetable(assemble_timetable(ProblemInput.model_validate(problem_data)), config)

        assert not result.is_feasible
        assert result.outcome == SolveOutcome.INFEASIBLE
        assert result.timetable.unassigned_lessons == []
