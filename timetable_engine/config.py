"""
Solver configuration.

All settings have defaults, so SolverConfig() is a working configuration.
A JSON file with the same structure (camelCase or snake_case keys) can be
loaded with load_config().
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .data.models import convert_keys_to_snake_case


class ConstructionStrategy(str, Enum):
    """How initial assignments are built before local search."""
    FIRST_FIT = "first_fit"
    CP_SAT = "cp_sat"


class AcceptorType(str, Enum):
    """Metaheuristic deciding whether a move is kept."""
    LATE_ACCEPTANCE = "late_acceptance"
    SIMULATED_ANNEALING = "simulated_annealing"
    HILL_CLIMBING = "hill_climbing"


class ConstraintWeights(BaseModel):
    """Configurable weights for soft constraints."""
    model_config = ConfigDict(extra="forbid")

    teacher_preferred_slot: int = Field(default=1, ge=0, description="Reward per lesson in a preferred slot")
    teacher_gap: int = Field(default=1, ge=0, description="Penalty per idle period between two lessons")
    subject_distribution: int = Field(default=2, ge=0, description="Penalty per same-day subject repeat")
    class_teacher_first_period: int = Field(default=1, ge=0, description="Penalty per foreign first period")


class TerminationConfig(BaseModel):
    """When local search stops. At least one limit must be set."""
    model_config = ConfigDict(extra="forbid")

    time_limit_seconds: Optional[float] = Field(default=30.0, gt=0, description="Wall-clock budget")
    unimproved_move_limit: Optional[int] = Field(
        default=20_000, ge=1, description="Moves without a new best score"
    )
    move_limit: Optional[int] = Field(default=None, ge=0, description="Total local-search moves")

    @model_validator(mode="after")
    def validate_has_limit(self) -> "TerminationConfig":
        if self.time_limit_seconds is None and self.unimproved_move_limit is None and self.move_limit is None:
            raise ValueError("At least one termination limit must be set")
        return self


class AcceptorConfig(BaseModel):
    """Acceptor settings."""
    model_config = ConfigDict(extra="forbid")

    type: AcceptorType = AcceptorType.LATE_ACCEPTANCE
    late_acceptance_size: int = Field(default=400, ge=1, description="History length for late acceptance")
    starting_temperature: float = Field(default=2.0, gt=0, description="Simulated annealing start temperature")
    cooling_rate: float = Field(default=0.9995, gt=0, lt=1, description="Temperature multiplier per move")
    hard_weight: int = Field(
        default=1000, ge=1, description="Soft points one hard point is worth when annealing"
    )


class SolverConfig(BaseModel):
    """Complete configuration of one solve."""
    model_config = ConfigDict(extra="forbid")

    construction: ConstructionStrategy = ConstructionStrategy.FIRST_FIT
    cp_sat_time_limit_seconds: float = Field(default=10.0, gt=0, description="Budget for CP-SAT construction")
    termination: TerminationConfig = Field(default_factory=TerminationConfig)
    acceptor: AcceptorConfig = Field(default_factory=AcceptorConfig)
    weights: ConstraintWeights = Field(default_factory=ConstraintWeights)
    allow_unresourced: bool = Field(
        default=False, description="Allow lessons to finish without a room or teacher"
    )
    random_seed: Optional[int] = Field(default=None, description="Seed for reproducible runs")


def load_config(path: Union[str, Path]) -> SolverConfig:
    """
    Load a SolverConfig from a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If invalid JSON
        pydantic.ValidationError: If validation fails
    """
    with open(Path(path)) as f:
        data = json.load(f)
    return SolverConfig.model_validate(convert_keys_to_snake_case(data))
