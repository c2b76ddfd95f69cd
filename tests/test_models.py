"""Tests for Pydantic input records."""

from __future__ import annotations

import json
from datetime import time

import pytest
from pydantic import ValidationError

from timetable_engine.data.models import (
    AvailabilityType,
    CurriculumRequirement,
    ProblemInput,
    QualificationLevel,
    RoomRecord,
    SchoolClassRecord,
    TeacherAvailability,
    TeacherQualification,
    TimeSlotRecord,
    WeekPattern,
    convert_keys_to_snake_case,
    day_name,
    load_problem_from_json,
    slot_key,
    week_patterns_overlap,
)


class TestHelpers:
    """Tests for slot and pattern helpers."""

    def test_slot_key(self):
        assert slot_key(0, 1) == "0-1"
        assert slot_key(4, 8) == "4-8"

    def test_day_name(self):
        assert day_name(0) == "Monday"
        assert day_name(4) == "Friday"
        assert day_name(6) == "Day 6"

    def test_week_patterns_overlap(self):
        assert week_patterns_overlap(WeekPattern.EVERY, WeekPattern.EVERY)
        assert week_patterns_overlap(WeekPattern.EVERY, WeekPattern.A)
        assert week_patterns_overlap(WeekPattern.B, WeekPattern.EVERY)
        assert week_patterns_overlap(WeekPattern.A, WeekPattern.A)
        assert not week_patterns_overlap(WeekPattern.A, WeekPattern.B)

    def test_convert_keys_to_snake_case(self):
        data = {"termId": "t", "timeSlots": [{"dayOfWeek": 0, "isBreak": True}]}
        assert convert_keys_to_snake_case(data) == {
            "term_id": "t",
            "time_slots": [{"day_of_week": 0, "is_break": True}],
        }


class TestTimeSlotRecord:
    """Tests for TimeSlotRecord model."""

    def test_default_id_is_slot_key(self):
        slot = TimeSlotRecord(day_of_week=2, period=3)
        assert slot.id == "2-3"
        assert slot.key == "2-3"
        assert slot.is_break is False

    def test_explicit_id_kept(self):
        slot = TimeSlotRecord(id="wed3", day_of_week=2, period=3)
        assert slot.id == "wed3"
        assert slot.key == "2-3"

    def test_invalid_time_range(self):
        with pytest.raises(ValueError, match="start_time.*must be before end_time"):
            TimeSlotRecord(day_of_week=0, period=1, start_time=time(9, 0), end_time=time(8, 15))

    def test_day_out_of_range(self):
        with pytest.raises(ValidationError):
            TimeSlotRecord(day_of_week=5, period=1)

    def test_period_starts_at_one(self):
        with pytest.raises(ValidationError):
            TimeSlotRecord(day_of_week=0, period=0)


class TestCatalogRecords:
    """Tests for room, class and relationship records."""

    def test_room_defaults(self):
        room = RoomRecord(id="r1")
        assert room.capacity is None
        assert room.suitable_subject_ids == []
        assert room.active is True

    def test_room_capacity_positive(self):
        with pytest.raises(ValidationError):
            RoomRecord(id="r1", capacity=0)

    def test_class_grade_range(self):
        with pytest.raises(ValidationError):
            SchoolClassRecord(id="c1", name="1a", grade_level=14)

    def test_qualification_defaults(self):
        qual = TeacherQualification(teacher_id="t1", subject_id="mat")
        assert qual.qualification_level == QualificationLevel.PRIMARY
        assert qual.can_teach_grades is None

    def test_availability_key(self):
        avail = TeacherAvailability(
            teacher_id="t1",
            day_of_week=1,
            period=2,
            availability_type=AvailabilityType.BLOCKED,
        )
        assert avail.key == "1-2"
        assert avail.term_id is None

    def test_requirement_key(self):
        req = CurriculumRequirement(school_class_id="5a", subject_id="mat", weekly_hours=4)
        assert req.key == "5a-mat-EVERY"
        assert CurriculumRequirement(
            id="req-1", school_class_id="5a", subject_id="mat", weekly_hours=4
        ).key == "req-1"

    def test_requirement_hours_positive(self):
        with pytest.raises(ValidationError):
            CurriculumRequirement(school_class_id="5a", subject_id="mat", weekly_hours=0)

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            RoomRecord(id="r1", colour="blue")


class TestProblemInput:
    """Tests for the ProblemInput snapshot."""

    def test_valid_problem(self, problem):
        assert problem.term_id == "term-1"
        assert len(problem.time_slots) == 21
        assert problem.total_required_hours == 16

    def test_assignable_slots_exclude_breaks(self, problem):
        slots = problem.get_assignable_slots()
        assert len(slots) == 20
        assert all(not s.is_break for s in slots)
        assert [(s.day_of_week, s.period) for s in slots[:2]] == [(0, 1), (0, 2)]

    def test_summary(self, problem):
        summary = problem.summary()
        assert summary["classes"] == 2
        assert summary["assignable_slots"] == 20
        assert summary["requirements"] == 6

    def test_duplicate_ids(self, problem_data):
        problem_data["teachers"].append({"id": "t1", "name": "Copy"})
        with pytest.raises(ValidationError, match="Duplicate teacher ID: 't1'"):
            ProblemInput.model_validate(problem_data)

    def test_duplicate_requirement_ids(self, problem_data):
        problem_data["requirements"][0]["id"] = "core"
        problem_data["requirements"][1]["id"] = "core"
        with pytest.raises(ValidationError, match="Duplicate requirement ID: 'core'"):
            ProblemInput.model_validate(problem_data)

    def test_requirements_without_ids_may_share_keys(self, problem_data):
        problem_data["requirements"].append(
            {"school_class_id": "5a", "subject_id": "mat", "weekly_hours": 1}
        )
        problem = ProblemInput.model_validate(problem_data)
        assert len(problem.requirements) == 7

    def test_duplicate_slot_position(self, problem_data):
        problem_data["time_slots"].append({"id": "extra", "day_of_week": 0, "period": 1})
        with pytest.raises(ValidationError, match="Duplicate time slot position: '0-1'"):
            ProblemInput.model_validate(problem_data)

    def test_unknown_references(self, problem_data):
        problem_data["requirements"].append(
            {"school_class_id": "9z", "subject_id": "mat", "weekly_hours": 1}
        )
        problem_data["qualifications"].append({"teacher_id": "t9", "subject_id": "mat"})
        problem_data["rooms"][2]["suitable_subject_ids"] = ["chem"]

        with pytest.raises(ValidationError) as exc_info:
            ProblemInput.model_validate(problem_data)

        message = str(exc_info.value)
        assert "unknown school_class_id '9z'" in message
        assert "unknown teacher_id 't9'" in message
        assert "unknown suitable subject 'chem'" in message

    def test_unknown_class_teacher(self, problem_data):
        problem_data["school_classes"][1]["class_teacher_id"] = "nobody"
        with pytest.raises(ValidationError, match="unknown class_teacher_id"):
            ProblemInput.model_validate(problem_data)


class TestLoader:
    """Tests for JSON loading."""

    def test_load_snake_case(self, problem_file):
        problem = load_problem_from_json(problem_file)
        assert problem.term_id == "term-1"
        assert len(problem.requirements) == 6

    def test_load_camel_case(self, tmp_path):
        data = {
            "termId": "term-9",
            "timeSlots": [{"dayOfWeek": 0, "period": 1}],
            "subjects": [{"id": "mat", "name": "Maths"}],
            "schoolClasses": [{"id": "5a", "name": "5a", "gradeLevel": 5}],
            "teachers": [{"id": "t1", "name": "Smith", "maxHoursPerWeek": 20}],
            "requirements": [
                {"schoolClassId": "5a", "subjectId": "mat", "weeklyHours": 1, "weekPattern": "B"}
            ],
        }
        filepath = tmp_path / "camel.json"
        filepath.write_text(json.dumps(data))

        problem = load_problem_from_json(filepath)
        assert problem.term_id == "term-9"
        assert problem.teachers[0].max_hours_per_week == 20
        assert problem.requirements[0].week_pattern == WeekPattern.B

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_problem_from_json(tmp_path / "missing.json")
