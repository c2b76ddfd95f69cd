"""
Incremental score director.

Keeps a timetable's score up to date while the search changes planning
variables. A change retracts the lesson (its unary matches and every pair it
forms with lessons sharing an index key), updates the variable and inserts
the lesson again, so the cost of a change depends on how many lessons share
its teacher-day, class-day and room-slot, not on the size of the timetable.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Optional

from ..config import ConstraintWeights
from ..domain import PLANNING_VARIABLES, ZERO_SCORE, HardSoftScore, Lesson, Timetable
from .definitions import lesson_score, pair_score
from .evaluator import calculate_score, lesson_index_keys

logger = logging.getLogger(__name__)


class ScoreCorruptionError(Exception):
    """Raised when the incremental score disagrees with a full recalculation."""
    pass


class ScoreDirector:
    """
    Owns all writes to a timetable's planning variables during a solve.

    Usage:
        director = ScoreDirector(timetable, weights)
        new_score = director.change_variable(lesson, "time_slot", slot)
    """

    def __init__(self, timetable: Timetable, weights: Optional[ConstraintWeights] = None):
        self.timetable = timetable
        self.weights = weights or ConstraintWeights()
        self._buckets: dict[tuple, dict[int, Lesson]] = defaultdict(dict)
        self._score = ZERO_SCORE

        for lesson in timetable.lessons:
            self._insert(lesson)

    @property
    def score(self) -> HardSoftScore:
        return self._score

    # -------------------------------------------------------------------------
    # Index Maintenance
    # -------------------------------------------------------------------------

    def _neighbors(self, lesson: Lesson) -> list[Lesson]:
        """Indexed lessons sharing at least one key with the lesson."""
        found: dict[int, Lesson] = {}
        for key in lesson_index_keys(lesson):
            bucket = self._buckets.get(key)
            if bucket:
                found.update(bucket)
        found.pop(id(lesson), None)
        return list(found.values())

    def _contribution(self, lesson: Lesson) -> HardSoftScore:
        total = lesson_score(lesson, self.weights)
        for other in self._neighbors(lesson):
            total = total + pair_score(lesson, other, self.weights)
        return total

    def _insert(self, lesson: Lesson) -> None:
        self._score = self._score + self._contribution(lesson)
        for key in lesson_index_keys(lesson):
            self._buckets[key][id(lesson)] = lesson

    def _retract(self, lesson: Lesson) -> None:
        for key in lesson_index_keys(lesson):
            bucket = self._buckets[key]
            bucket.pop(id(lesson), None)
            if not bucket:
                del self._buckets[key]
        self._score = self._score - self._contribution(lesson)

    # -------------------------------------------------------------------------
    # Variable Changes
    # -------------------------------------------------------------------------

    def change_variables(self, lesson: Lesson, **values: Any) -> HardSoftScore:
        """
        Set one or more planning variables of a lesson.

        Args:
            lesson: Lesson of this director's timetable
            **values: New values keyed by variable name (time_slot, room, teacher)

        Returns:
            The updated score

        Raises:
            RuntimeError: If the timetable is final
            ValueError: If a name is not a planning variable
        """
        if self.timetable.is_final:
            raise RuntimeError(f"Timetable for term {self.timetable.term_id} is final")
        for name in values:
            if name not in PLANNING_VARIABLES:
                raise ValueError(f"'{name}' is not a planning variable")

        if all(getattr(lesson, name) is value for name, value in values.items()):
            return self._score

        self._retract(lesson)
        for name, value in values.items():
            setattr(lesson, name, value)
        self._insert(lesson)
        return self._score

    def change_variable(self, lesson: Lesson, variable: str, value: Any) -> HardSoftScore:
        """Set a single planning variable of a lesson."""
        return self.change_variables(lesson, **{variable: value})

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def recalculate(self) -> HardSoftScore:
        """Full recalculation, ignoring the incremental state."""
        return calculate_score(self.timetable, self.weights)

    def assert_score_consistent(self) -> None:
        """
        Compare the incremental score with a full recalculation.

        Raises:
            ScoreCorruptionError: If they differ
        """
        expected = self.recalculate()
        if expected != self._score:
            raise ScoreCorruptionError(
                f"Incremental score {self._score} differs from recalculated {expected}"
            )
        logger.debug("Score %s verified by full recalculation", expected)
