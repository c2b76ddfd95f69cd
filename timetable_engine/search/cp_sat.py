"""
CP-SAT construction phase.

Builds a feasibility model for time slot and teacher assignment:

    x[lesson, slot, teacher] = 1 if the lesson runs in that slot with that teacher

Hard constraints in the model:
- Each lesson gets exactly one (slot, teacher)
- Teachers are never placed in blocked slots
- Per teacher and slot, and per class and slot: at most one EVERY/A lesson
  and at most one EVERY/B lesson (A and B lessons may share a slot)

Rooms are not modelled; they are placed first-fit afterwards.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional

from ortools.sat.python import cp_model

from ..constraints.director import ScoreDirector
from ..data.models import WeekPattern
from ..domain import Lesson, Teacher, TimeSlot

logger = logging.getLogger(__name__)


class CpSatConstruction:
    """
    Places all lessons' time slots and teachers in one CP-SAT solve.

    Usage:
        construction = CpSatConstruction(director, time_limit_seconds=10)
        if not construction.run():
            ...  # fall back to another construction
    """

    def __init__(
        self,
        director: ScoreDirector,
        time_limit_seconds: float = 10.0,
        random_seed: Optional[int] = None,
    ):
        self.director = director
        self.time_limit_seconds = time_limit_seconds
        self.random_seed = random_seed
        self.model = cp_model.CpModel()
        self.variables: dict[tuple[int, int, int], cp_model.IntVar] = {}
        self.status_name = "UNKNOWN"

    def _teacher_options(self, lesson: Lesson) -> list[Optional[Teacher]]:
        if lesson.candidate_teachers:
            return list(lesson.candidate_teachers)
        return [lesson.teacher]

    def build(self) -> bool:
        """
        Create variables and constraints.

        Returns:
            False if some lesson has no allowed (slot, teacher) at all
        """
        timetable = self.director.timetable
        slots: list[TimeSlot] = timetable.time_slots

        # (entity kind, entity id, slot index) -> week pattern -> variables
        usage: dict[tuple[str, str, int], dict[WeekPattern, list]] = defaultdict(
            lambda: defaultdict(list)
        )

        for li, lesson in enumerate(timetable.lessons):
            lesson_vars = []
            for si, slot in enumerate(slots):
                for ti, teacher in enumerate(self._teacher_options(lesson)):
                    if teacher is not None and teacher.is_blocked_at(slot):
                        continue
                    var = self.model.new_bool_var(f"x_{li}_{si}_{ti}")
                    self.variables[(li, si, ti)] = var
                    lesson_vars.append(var)

                    usage[("class", lesson.school_class.id, si)][lesson.week_pattern].append(var)
                    if teacher is not None:
                        usage[("teacher", teacher.id, si)][lesson.week_pattern].append(var)

            if not lesson_vars:
                logger.warning("Lesson %s has no unblocked slot for any candidate teacher", lesson.id)
                return False
            self.model.add_exactly_one(lesson_vars)

        for by_pattern in usage.values():
            every = by_pattern[WeekPattern.EVERY]
            for alternating in (by_pattern[WeekPattern.A], by_pattern[WeekPattern.B]):
                if len(every) + len(alternating) > 1:
                    self.model.add(sum(every) + sum(alternating) <= 1)

        return True

    def run(self) -> bool:
        """
        Solve the model and write slots and teachers into the timetable.

        Returns:
            True if a feasible assignment was found and applied
        """
        if not self.build():
            return False

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.time_limit_seconds
        solver.parameters.num_workers = 0  # Use all available cores
        solver.parameters.log_search_progress = False
        if self.random_seed is not None:
            solver.parameters.random_seed = self.random_seed

        status = solver.solve(self.model)
        self.status_name = solver.status_name(status)

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.warning(
                "CP-SAT construction found no assignment (%s) in %.1fs",
                self.status_name, solver.wall_time,
            )
            return False

        timetable = self.director.timetable
        slots = timetable.time_slots
        for (li, si, ti), var in self.variables.items():
            if solver.boolean_value(var):
                lesson = timetable.lessons[li]
                teacher = self._teacher_options(lesson)[ti]
                self.director.change_variables(lesson, time_slot=slots[si], teacher=teacher)

        logger.info(
            "CP-SAT construction %s in %.1fs, score %s",
            self.status_name, solver.wall_time, self.director.score,
        )
        return True
