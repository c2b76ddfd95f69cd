"""
Full score calculation and explanation.

calculate_score() is a pure function of a Timetable: it reads lessons and
facts, keeps no state between calls and never mutates its input, so it can
be called repeatedly or from several threads on the same timetable.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from typing import Iterable, Iterator, Optional

from ..config import ConstraintWeights
from ..domain import ZERO_SCORE, HardSoftScore, Lesson, Timetable
from .definitions import HARD_CONSTRAINTS, SOFT_CONSTRAINTS, lesson_matches, pair_matches


@dataclass(frozen=True)
class ConstraintMatch:
    """One lesson or lesson pair matched by a constraint."""
    constraint: str
    score: HardSoftScore
    lesson_ids: tuple[str, ...]


@dataclass
class ConstraintSummary:
    """Aggregated matches of one constraint."""
    constraint: str
    is_hard: bool
    match_count: int = 0
    score: HardSoftScore = ZERO_SCORE
    matches: list[ConstraintMatch] = field(default_factory=list)


def lesson_index_keys(lesson: Lesson) -> list[tuple]:
    """
    Index keys under which a placed lesson can meet a pair partner.

    Every pairwise constraint needs a shared teacher and day, a shared class
    and day, or a shared room and slot, so two lessons can only match if
    they share at least one key.
    """
    slot = lesson.time_slot
    if slot is None:
        return []
    keys: list[tuple] = [("class", lesson.school_class.id, slot.day_of_week)]
    if lesson.teacher is not None:
        keys.append(("teacher", lesson.teacher.id, slot.day_of_week))
    if lesson.room is not None:
        keys.append(("room", lesson.room.id, slot.id))
    return keys


def _candidate_pairs(lessons: Iterable[Lesson]) -> Iterator[tuple[Lesson, Lesson]]:
    """Yield each unordered pair sharing an index key exactly once."""
    buckets: dict[tuple, list[Lesson]] = defaultdict(list)
    order: dict[int, int] = {}
    for position, lesson in enumerate(lessons):
        order[id(lesson)] = position
        for key in lesson_index_keys(lesson):
            buckets[key].append(lesson)

    seen: set[tuple[int, int]] = set()
    for bucket in buckets.values():
        for first, second in combinations(bucket, 2):
            pair = (order[id(first)], order[id(second)])
            if pair in seen:
                continue
            seen.add(pair)
            yield first, second


def iter_constraint_matches(
    timetable: Timetable,
    weights: Optional[ConstraintWeights] = None,
) -> Iterator[ConstraintMatch]:
    """Yield every constraint match in the timetable."""
    weights = weights or ConstraintWeights()

    for lesson in timetable.lessons:
        for name, impact in lesson_matches(lesson, weights):
            yield ConstraintMatch(name, impact, (lesson.id,))

    for first, second in _candidate_pairs(timetable.lessons):
        for name, impact in pair_matches(first, second, weights):
            yield ConstraintMatch(name, impact, (first.id, second.id))


def calculate_score(
    timetable: Timetable,
    weights: Optional[ConstraintWeights] = None,
) -> HardSoftScore:
    """
    Score a timetable from scratch.

    Args:
        timetable: Timetable to evaluate (not modified)
        weights: Soft constraint weights (defaults if None)

    Returns:
        HardSoftScore with the hard violation count and soft value
    """
    hard = soft = 0
    for match in iter_constraint_matches(timetable, weights):
        hard += match.score.hard
        soft += match.score.soft
    return HardSoftScore(hard, soft)


def explain_score(
    timetable: Timetable,
    weights: Optional[ConstraintWeights] = None,
) -> dict[str, ConstraintSummary]:
    """
    Break the score down per constraint.

    Returns:
        Mapping of constraint name to its summary, for every known
        constraint (including ones without matches)
    """
    summaries = {
        name: ConstraintSummary(constraint=name, is_hard=True) for name in HARD_CONSTRAINTS
    }
    summaries.update(
        {name: ConstraintSummary(constraint=name, is_hard=False) for name in SOFT_CONSTRAINTS}
    )

    for match in iter_constraint_matches(timetable, weights):
        summary = summaries[match.constraint]
        summary.match_count += 1
        summary.score = summary.score + match.score
        summary.matches.append(match)

    return summaries
