"""
Local-search moves.

Moves are plain data: which lesson(s), which variable, old and new value.
Doing a move goes through the ScoreDirector, and every move can build its
own undo move before being done, so rejecting a move is as cheap as doing it.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..constraints.director import ScoreDirector
from ..domain import HardSoftScore, Lesson, Timetable


@dataclass(frozen=True)
class ChangeMove:
    """Assign a new value to one planning variable of one lesson."""
    lesson: Lesson
    variable: str
    old_value: Any
    new_value: Any

    @classmethod
    def of(cls, lesson: Lesson, variable: str, new_value: Any) -> ChangeMove:
        return cls(lesson, variable, getattr(lesson, variable), new_value)

    def is_doable(self) -> bool:
        return self.old_value is not self.new_value

    def undo_move(self) -> ChangeMove:
        return ChangeMove(self.lesson, self.variable, self.new_value, self.old_value)

    def do(self, director: ScoreDirector) -> HardSoftScore:
        return director.change_variable(self.lesson, self.variable, self.new_value)

    def __str__(self) -> str:
        return f"{self.lesson.id}.{self.variable}: {self.old_value} -> {self.new_value}"


@dataclass(frozen=True)
class SwapMove:
    """Exchange the (time slot, room) pairs of two lessons."""
    first: Lesson
    second: Lesson

    def is_doable(self) -> bool:
        if self.first is self.second:
            return False
        if self.first.time_slot is self.second.time_slot and self.first.room is self.second.room:
            return False
        return (
            _room_allowed(self.first, self.second.room)
            and _room_allowed(self.second, self.first.room)
        )

    def undo_move(self) -> SwapMove:
        # Swapping the same two lessons again restores both
        return SwapMove(self.first, self.second)

    def do(self, director: ScoreDirector) -> HardSoftScore:
        first_slot, first_room = self.first.time_slot, self.first.room
        director.change_variables(
            self.first, time_slot=self.second.time_slot, room=self.second.room
        )
        return director.change_variables(self.second, time_slot=first_slot, room=first_room)

    def __str__(self) -> str:
        return f"{self.first.id} <-> {self.second.id}"


Move = Union[ChangeMove, SwapMove]


def _room_allowed(lesson: Lesson, room: Any) -> bool:
    if room is None:
        return not lesson.candidate_rooms
    return room in lesson.candidate_rooms


class MoveSelector:
    """
    Picks random moves over a timetable.

    Change moves only pick values from a lesson's value range (assignable
    slots, candidate rooms, candidate teachers); the search never unassigns
    a variable.
    """

    # Relative frequency of each move type
    TIME_SLOT_WEIGHT = 45
    SWAP_WEIGHT = 25
    ROOM_WEIGHT = 15
    TEACHER_WEIGHT = 15

    def __init__(self, timetable: Timetable, rng: random.Random):
        self.timetable = timetable
        self.rng = rng
        self._lessons = list(timetable.lessons)
        self._slots = list(timetable.time_slots)
        self._kinds = ("time_slot", "swap", "room", "teacher")
        self._weights = (
            self.TIME_SLOT_WEIGHT,
            self.SWAP_WEIGHT,
            self.ROOM_WEIGHT,
            self.TEACHER_WEIGHT,
        )

    def select(self) -> Optional[Move]:
        """Return a doable move, or None if the picked move is a no-op."""
        if not self._lessons:
            return None

        lesson = self.rng.choice(self._lessons)
        kind = self.rng.choices(self._kinds, weights=self._weights)[0]

        if kind == "room" and len(lesson.candidate_rooms) > 1:
            move: Move = ChangeMove.of(lesson, "room", self.rng.choice(lesson.candidate_rooms))
        elif kind == "teacher" and len(lesson.candidate_teachers) > 1:
            move = ChangeMove.of(lesson, "teacher", self.rng.choice(lesson.candidate_teachers))
        elif kind == "swap" and len(self._lessons) > 1:
            move = SwapMove(lesson, self.rng.choice(self._lessons))
        else:
            move = ChangeMove.of(lesson, "time_slot", self.rng.choice(self._slots))

        return move if move.is_doable() else None
