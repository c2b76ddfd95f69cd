"""
Move acceptors for local search.

An acceptor decides whether the search keeps a move given the score before
and after it. All acceptors accept non-worsening moves; they differ in how
they let the search take temporary regressions to leave local optima.
"""

from __future__ import annotations

import math
import random
from typing import Optional

from ..config import AcceptorConfig, AcceptorType
from ..domain import HardSoftScore


class Acceptor:
    """Base acceptor: plain hill climbing."""

    def phase_started(self, score: HardSoftScore) -> None:
        pass

    def is_accepted(self, current: HardSoftScore, candidate: HardSoftScore) -> bool:
        return candidate >= current

    def step_ended(self, current: HardSoftScore) -> None:
        pass


class HillClimbingAcceptor(Acceptor):
    """Accept only moves that do not worsen the score."""
    pass


class LateAcceptanceAcceptor(Acceptor):
    """
    Late acceptance hill climbing.

    A move is accepted if it does not worsen the current score, or if it is
    at least as good as the score the search had `size` steps ago.
    """

    def __init__(self, size: int = 400):
        if size < 1:
            raise ValueError("Late acceptance size must be at least 1")
        self.size = size
        self._history: list[HardSoftScore] = []
        self._index = 0

    def phase_started(self, score: HardSoftScore) -> None:
        self._history = [score] * self.size
        self._index = 0

    def is_accepted(self, current: HardSoftScore, candidate: HardSoftScore) -> bool:
        if candidate >= current:
            return True
        return candidate >= self._history[self._index]

    def step_ended(self, current: HardSoftScore) -> None:
        self._history[self._index] = current
        self._index = (self._index + 1) % self.size


class SimulatedAnnealingAcceptor(Acceptor):
    """
    Simulated annealing over a scalarized score.

    The score is flattened to hard * hard_weight + soft; a worsening move of
    size delta is accepted with probability exp(-delta / temperature).
    """

    MIN_TEMPERATURE = 1e-6

    def __init__(
        self,
        starting_temperature: float = 2.0,
        cooling_rate: float = 0.9995,
        hard_weight: int = 1000,
        rng: Optional[random.Random] = None,
    ):
        self.starting_temperature = starting_temperature
        self.cooling_rate = cooling_rate
        self.hard_weight = hard_weight
        self.rng = rng or random.Random()
        self.temperature = starting_temperature

    def _flatten(self, score: HardSoftScore) -> int:
        return score.hard * self.hard_weight + score.soft

    def phase_started(self, score: HardSoftScore) -> None:
        self.temperature = self.starting_temperature

    def is_accepted(self, current: HardSoftScore, candidate: HardSoftScore) -> bool:
        if candidate >= current:
            return True
        delta = self._flatten(current) - self._flatten(candidate)
        if delta <= 0:
            return True
        return self.rng.random() < math.exp(-delta / self.temperature)

    def step_ended(self, current: HardSoftScore) -> None:
        self.temperature = max(self.MIN_TEMPERATURE, self.temperature * self.cooling_rate)


def build_acceptor(config: AcceptorConfig, rng: random.Random) -> Acceptor:
    """Create the acceptor named by the configuration."""
    if config.type == AcceptorType.LATE_ACCEPTANCE:
        return LateAcceptanceAcceptor(config.late_acceptance_size)
    if config.type == AcceptorType.SIMULATED_ANNEALING:
        return SimulatedAnnealingAcceptor(
            starting_temperature=config.starting_temperature,
            cooling_rate=config.cooling_rate,
            hard_weight=config.hard_weight,
            rng=rng,
        )
    return HillClimbingAcceptor()
