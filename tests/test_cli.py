"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from timetable_engine.cli import app
from timetable_engine.data.models import load_problem_from_json

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    filepath = tmp_path / "config.json"
    filepath.write_text(json.dumps({
        "termination": {"timeLimitSeconds": 20, "unimprovedMoveLimit": 300, "moveLimit": 2000},
        "randomSeed": 5,
    }))
    return filepath


@pytest.fixture
def solution_file(problem_file, config_file, tmp_path):
    output = tmp_path / "out" / "solution.json"
    result = runner.invoke(app, ["solve", str(problem_file), "-o", str(output), "-c", str(config_file)])
    assert result.exit_code == 0, result.output
    return output


class TestGenerate:
    def test_generate_small(self, tmp_path):
        output = tmp_path / "problem.json"
        result = runner.invoke(app, ["generate", str(output), "--seed", "1"])

        assert result.exit_code == 0, result.output
        assert "Generated small problem" in result.output
        problem = load_problem_from_json(output)
        assert len(problem.school_classes) == 4


class TestValidate:
    def test_valid_problem(self, problem_file):
        result = runner.invoke(app, ["validate", str(problem_file)])

        assert result.exit_code == 0, result.output
        assert "Schema validation passed" in result.output
        assert "Validation complete" in result.output

    def test_verbose_lists_candidates(self, problem_file):
        result = runner.invoke(app, ["validate", str(problem_file), "-v"])

        assert result.exit_code == 0, result.output
        assert "5a-mat-EVERY-1" in result.output

    def test_invalid_json(self, tmp_path):
        filepath = tmp_path / "broken.json"
        filepath.write_text("{not json")

        result = runner.invoke(app, ["validate", str(filepath)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_schema_error(self, problem_data, tmp_path):
        problem_data["teachers"].append({"id": "t1", "name": "Copy"})
        filepath = tmp_path / "dup.json"
        filepath.write_text(json.dumps(problem_data))

        result = runner.invoke(app, ["validate", str(filepath)])

        assert result.exit_code == 1
        assert "Schema validation failed" in result.output

    def test_infeasible_problem(self, problem_data, tmp_path):
        problem_data["requirements"][4]["candidate_teacher_ids"] = ["t1"]
        filepath = tmp_path / "infeasible.json"
        filepath.write_text(json.dumps(problem_data))

        result = runner.invoke(app, ["validate", str(filepath)])

        assert result.exit_code == 1
        assert "no qualified teacher" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "missing.json")])
        assert result.exit_code == 1


class TestSolve:
    def test_solve_writes_solution(self, solution_file):
        data = json.loads(solution_file.read_text())

        assert data["status"] == "feasible"
        assert len(data["lessons"]) == 16
        assert data["score"]["hardScore"] == 0

    def test_solve_with_overrides(self, problem_file, config_file):
        result = runner.invoke(app, [
            "solve", str(problem_file),
            "-c", str(config_file),
            "--construction", "cp_sat",
            "--seed", "2",
            "--explain",
        ])

        assert result.exit_code == 0, result.output
        assert "FEASIBLE" in result.output

    def test_unsolvable_problem_fails(self, problem_data, tmp_path):
        problem_data["requirements"] = []
        filepath = tmp_path / "empty.json"
        filepath.write_text(json.dumps(problem_data))

        result = runner.invoke(app, ["solve", str(filepath)])

        assert result.exit_code == 1
        assert "No lessons to solve" in result.output

    def test_bad_config_file(self, problem_file, tmp_path):
        config = tmp_path / "bad.json"
        config.write_text(json.dumps({"termination": {"timeLimitSeconds": -1}}))

        result = runner.invoke(app, ["solve", str(problem_file), "-c", str(config)])

        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestView:
    def test_overview(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file)])

        assert result.exit_code == 0, result.output
        assert "Weekly Overview" in result.output

    def test_class_view(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file), "--class", "5a"])

        assert result.exit_code == 0, result.output
        assert "Class Schedule" in result.output

    def test_teacher_view(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file), "-T", "t3"])

        assert result.exit_code == 0, result.output
        assert "Cara Lee" in result.output

    def test_day_view(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file), "--day", "monday"])
        assert result.exit_code == 0, result.output

    def test_unknown_class(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file), "--class", "9z"])

        assert result.exit_code == 1
        assert "Class '9z' not found" in result.output

    def test_invalid_day(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file), "--day", "someday"])

        assert result.exit_code == 1
        assert "Invalid day" in result.output

    def test_violations(self, solution_file):
        result = runner.invoke(app, ["view", str(solution_file), "--violations"])
        assert result.exit_code == 0, result.output
