"""
Solver orchestrator: construction followed by local search.

One orchestrator drives one Timetable through

    IDLE -> CONSTRUCTING -> LOCAL_SEARCH -> TERMINATED

and is not reusable. The timetable is mutated in place; the best assignment
seen is kept as a snapshot and written back when the search ends, after
which the timetable is frozen.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..config import ConstructionStrategy, SolverConfig
from ..constraints.director import ScoreDirector
from ..domain import Assignment, HardSoftScore, Timetable
from .acceptors import build_acceptor
from .construction import FirstFitConstruction
from .cp_sat import CpSatConstruction
from .moves import MoveSelector

logger = logging.getLogger(__name__)


class SolverPhase(str, Enum):
    IDLE = "IDLE"
    CONSTRUCTING = "CONSTRUCTING"
    LOCAL_SEARCH = "LOCAL_SEARCH"
    TERMINATED = "TERMINATED"


class SolveOutcome(str, Enum):
    """How a solve ended; SOLVING marks a provisional result of a running solve."""
    FEASIBLE = "FEASIBLE"
    INFEASIBLE = "INFEASIBLE"
    TIMED_OUT = "TIMED_OUT"
    SOLVING = "SOLVING"


class TerminationReason(str, Enum):
    TIME_LIMIT = "TIME_LIMIT"
    UNIMPROVED_LIMIT = "UNIMPROVED_LIMIT"
    MOVE_LIMIT = "MOVE_LIMIT"
    CANCELLED = "CANCELLED"


@dataclass
class SolverResult:
    """Solution of one solve, feasible or not; termination_reason is None while it runs."""
    timetable: Timetable
    score: HardSoftScore
    outcome: SolveOutcome
    termination_reason: Optional[TerminationReason]
    construction_score: HardSoftScore
    moves_evaluated: int = 0
    moves_accepted: int = 0
    elapsed_seconds: float = 0.0

    @property
    def is_feasible(self) -> bool:
        return self.score.hard == 0

    @property
    def time_bounded(self) -> bool:
        """Stopped by the wall-clock budget rather than by convergence."""
        return self.termination_reason == TerminationReason.TIME_LIMIT

    @property
    def cancelled(self) -> bool:
        return self.termination_reason == TerminationReason.CANCELLED


BestSolutionListener = Callable[[HardSoftScore], None]


@dataclass(frozen=True)
class BestSolution:
    """Best assignment published during a solve."""
    score: HardSoftScore
    snapshot: list[Assignment]
    moves_evaluated: int


class SolverOrchestrator:
    """
    Runs construction and local search over one timetable.

    Usage:
        orchestrator = SolverOrchestrator(timetable, config)
        result = orchestrator.solve()

    cancel() may be called from any thread; the search stops at the next
    move boundary and returns the best timetable found so far.
    """

    def __init__(
        self,
        timetable: Timetable,
        config: Optional[SolverConfig] = None,
        on_best_solution: Optional[BestSolutionListener] = None,
    ):
        self.timetable = timetable
        self.config = config or SolverConfig()
        self.on_best_solution = on_best_solution
        self.phase = SolverPhase.IDLE
        self.best_score: Optional[HardSoftScore] = None

        self._best: Optional[BestSolution] = None
        self._construction_score: Optional[HardSoftScore] = None
        self._started = 0.0
        self._cancel_event = threading.Event()
        self._rng = random.Random(self.config.random_seed)

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def cancel(self) -> None:
        """Ask the search to stop at the next move boundary."""
        self._cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _construct(self, director: ScoreDirector) -> HardSoftScore:
        self.phase = SolverPhase.CONSTRUCTING

        if self.config.construction == ConstructionStrategy.CP_SAT:
            cp_sat = CpSatConstruction(
                director,
                time_limit_seconds=self.config.cp_sat_time_limit_seconds,
                random_seed=self.config.random_seed,
            )
            if not cp_sat.run():
                logger.info("Falling back to first-fit construction")

        # Places whatever CP-SAT left open (rooms, or everything on failure)
        return FirstFitConstruction(director).run()

    def _termination_reason(
        self,
        started: float,
        moves: int,
        unimproved: int,
    ) -> Optional[TerminationReason]:
        termination = self.config.termination
        if self._cancel_event.is_set():
            return TerminationReason.CANCELLED
        if (
            termination.time_limit_seconds is not None
            and time.monotonic() - started >= termination.time_limit_seconds
        ):
            return TerminationReason.TIME_LIMIT
        if termination.move_limit is not None and moves >= termination.move_limit:
            return TerminationReason.MOVE_LIMIT
        if (
            termination.unimproved_move_limit is not None
            and unimproved >= termination.unimproved_move_limit
        ):
            return TerminationReason.UNIMPROVED_LIMIT
        return None

    def _publish_best(self, score: HardSoftScore, snapshot: list[Assignment], moves: int) -> None:
        # Published as one object for readers on other threads
        self._best = BestSolution(score=score, snapshot=snapshot, moves_evaluated=moves)
        self.best_score = score
        if self.on_best_solution is not None:
            self.on_best_solution(score)

    def current_best(self) -> Optional[SolverResult]:
        """
        Provisional result holding the best assignment published so far.

        Safe to call from any thread while solve() runs: the result's
        timetable is a frozen copy sharing no lessons with the one being
        searched. Returns None until construction has finished.
        """
        best = self._best
        if best is None or self._construction_score is None:
            return None
        return SolverResult(
            timetable=self.timetable.copy_with(best.snapshot, best.score),
            score=best.score,
            outcome=SolveOutcome.SOLVING,
            termination_reason=None,
            construction_score=self._construction_score,
            moves_evaluated=best.moves_evaluated,
            elapsed_seconds=time.monotonic() - self._started,
        )

    def solve(self) -> SolverResult:
        """
        Solve the timetable in place.

        Returns:
            SolverResult holding the (now final) timetable restored to the
            best assignment found, whatever its hard score

        Raises:
            RuntimeError: If this orchestrator already ran
        """
        if self.phase != SolverPhase.IDLE:
            raise RuntimeError(f"Solver for term {self.timetable.term_id} already ran")

        started = self._started = time.monotonic()
        director = ScoreDirector(self.timetable, self.config.weights)

        logger.info("Solving term %s (%d lessons)", self.timetable.term_id, len(self.timetable.lessons))
        construction_score = self._construction_score = self._construct(director)
        best_snapshot = self.timetable.snapshot()
        self._publish_best(construction_score, best_snapshot, 0)

        # Local search
        self.phase = SolverPhase.LOCAL_SEARCH
        selector = MoveSelector(self.timetable, self._rng)
        acceptor = build_acceptor(self.config.acceptor, self._rng)

        current = director.score
        best = current
        acceptor.phase_started(current)

        moves = accepted = unimproved = 0
        while True:
            reason = self._termination_reason(started, moves, unimproved)
            if reason is not None:
                break

            moves += 1
            unimproved += 1
            move = selector.select()
            if move is None:
                acceptor.step_ended(current)
                continue

            undo = move.undo_move()
            candidate = move.do(director)

            if acceptor.is_accepted(current, candidate):
                current = candidate
                accepted += 1
                if current > best:
                    best = current
                    best_snapshot = self.timetable.snapshot()
                    unimproved = 0
                    logger.debug("New best score %s after %d moves", best, moves)
                    self._publish_best(best, best_snapshot, moves)
            else:
                undo.do(director)

            acceptor.step_ended(current)

        self.timetable.restore(best_snapshot)
        self.timetable.score = best
        self.timetable.freeze()
        self.phase = SolverPhase.TERMINATED

        if reason == TerminationReason.TIME_LIMIT:
            outcome = SolveOutcome.TIMED_OUT
        elif best.hard == 0:
            outcome = SolveOutcome.FEASIBLE
        else:
            outcome = SolveOutcome.INFEASIBLE

        elapsed = time.monotonic() - started
        logger.info(
            "Solve of term %s ended (%s) with %s after %d moves in %.1fs",
            self.timetable.term_id, reason.value, best, moves, elapsed,
        )

        return SolverResult(
            timetable=self.timetable,
            score=best,
            outcome=outcome,
            termination_reason=reason,
            construction_score=construction_score,
            moves_evaluated=moves,
            moves_accepted=accepted,
            elapsed_seconds=elapsed,
        )


def solve_timetable(
    timetable: Timetable,
    config: Optional[SolverConfig] = None,
    on_best_solution: Optional[BestSolutionListener] = None,
) -> SolverResult:
    """Solve a timetable with a fresh orchestrator."""
    return SolverOrchestrator(timetable, config, on_best_solution).solve()
