"""
First-fit construction heuristic.

Places lessons one at a time, most constrained first. Each lesson goes to
the first (time slot, teacher, room) combination that does not increase the
hard violation count; if every combination does, it goes to the least bad
one.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..constraints.director import ScoreDirector
from ..domain import HardSoftScore, Lesson, Room, Teacher, TimeSlot

logger = logging.getLogger(__name__)


def constrainedness_key(lesson: Lesson) -> tuple:
    """Sort key putting the most restricted lessons first."""
    num_rooms = len(lesson.candidate_rooms) or float("inf")
    student_count = lesson.school_class.student_count or 0
    return (len(lesson.candidate_teachers), num_rooms, -student_count, lesson.id)


class FirstFitConstruction:
    """
    Greedy construction phase.

    Usage:
        construction = FirstFitConstruction(director)
        construction.run()
    """

    def __init__(self, director: ScoreDirector):
        self.director = director
        timetable = director.timetable
        # Period-major order spreads a class's lessons over the week
        self.slot_order: list[TimeSlot] = sorted(
            timetable.time_slots, key=lambda s: (s.period, s.day_of_week)
        )
        self.lessons_placed = 0

    def run(self) -> HardSoftScore:
        """Place every unplaced lesson, then any lesson still missing a room."""
        lessons = sorted(self.director.timetable.lessons, key=constrainedness_key)

        for lesson in lessons:
            if lesson.time_slot is None:
                self.place(lesson)
            elif lesson.room is None and lesson.candidate_rooms:
                self.place_room(lesson)

        logger.info(
            "Construction placed %d lessons, score %s",
            self.lessons_placed, self.director.score,
        )
        return self.director.score

    def _teacher_options(self, lesson: Lesson) -> list[Optional[Teacher]]:
        if lesson.candidate_teachers:
            return list(lesson.candidate_teachers)
        return [lesson.teacher]

    def place(self, lesson: Lesson) -> HardSoftScore:
        """
        Place one lesson; its time slot must be unassigned.

        Raises:
            RuntimeError: If the timetable has no time slots
        """
        director = self.director
        baseline_hard = director.score.hard
        rooms: list[Optional[Room]] = list(lesson.candidate_rooms) or [None]

        best: Optional[tuple[HardSoftScore, TimeSlot, Optional[Teacher], Optional[Room]]] = None

        for slot in self.slot_order:
            for teacher in self._teacher_options(lesson):
                # Rooms only add hard penalties, so this is an upper bound
                bound = director.change_variables(lesson, time_slot=slot, teacher=teacher, room=None)
                if best is not None and bound <= best[0]:
                    continue

                for room in rooms:
                    score = director.change_variables(lesson, room=room)
                    if score.hard >= baseline_hard:
                        self.lessons_placed += 1
                        return score
                    if best is None or score > best[0]:
                        best = (score, slot, teacher, room)

        if best is None:
            raise RuntimeError(
                f"Timetable for term {director.timetable.term_id} has no assignable time slots"
            )
        score, slot, teacher, room = best
        logger.debug("No conflict-free placement for %s, using %s", lesson.id, score)
        self.lessons_placed += 1
        return director.change_variables(lesson, time_slot=slot, teacher=teacher, room=room)

    def place_room(self, lesson: Lesson) -> HardSoftScore:
        """
        Pick a room for an already placed lesson.

        Raises:
            RuntimeError: If the lesson has no candidate rooms
        """
        director = self.director
        baseline_hard = director.change_variables(lesson, room=None).hard
        best: Optional[tuple[HardSoftScore, Room]] = None

        for room in lesson.candidate_rooms:
            score = director.change_variables(lesson, room=room)
            if score.hard >= baseline_hard:
                return score
            if best is None or score > best[0]:
                best = (score, room)

        if best is None:
            raise RuntimeError(f"Lesson {lesson.id} has no candidate rooms")
        return director.change_variables(lesson, room=best[1])
