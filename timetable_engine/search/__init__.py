"""Construction heuristics, local search and the solver orchestrator."""

from .acceptors import (
    Acceptor,
    HillClimbingAcceptor,
    LateAcceptanceAcceptor,
    SimulatedAnnealingAcceptor,
    build_acceptor,
)
from .construction import FirstFitConstruction, constrainedness_key
from .cp_sat import CpSatConstruction
from .moves import ChangeMove, SwapMove, MoveSelector
from .orchestrator import (
    SolverOrchestrator,
    SolverPhase,
    SolverResult,
    SolveOutcome,
    TerminationReason,
    solve_timetable,
)

__all__ = [
    "Acceptor",
    "HillClimbingAcceptor",
    "LateAcceptanceAcceptor",
    "SimulatedAnnealingAcceptor",
    "build_acceptor",
    "FirstFitConstruction",
    "constrainedness_key",
    "CpSatConstruction",
    "ChangeMove",
    "SwapMove",
    "MoveSelector",
    "SolverOrchestrator",
    "SolverPhase",
    "SolverResult",
    "SolveOutcome",
    "TerminationReason",
    "solve_timetable",
]
