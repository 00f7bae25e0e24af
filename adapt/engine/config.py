"""
Configuration dataclasses for the adaptation engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from adapt.errors import ContractViolation


@dataclass
class PredictorConfig:
    """Configuration for the NaivePredictor."""
    bandwidth: float = 10.0  # seconds; larger forgets more slowly
    initial_baseline: float = 1.0  # m0 before profiling

    def __post_init__(self):
        if self.bandwidth <= 0.0:
            raise ContractViolation(f"bandwidth must be positive, got {self.bandwidth}")
        if self.initial_baseline == 0.0:
            raise ContractViolation("initial baseline must be non-zero")


@dataclass
class ControllerConfig:
    """Configuration for the MultilinearController."""
    window_size: int = 20
    # Submit a background replan once this many slots remain; None plans inline
    prefetch_remaining: Optional[int] = None
    # Seconds to wait on the solver before re-serving the previous schedule
    solver_timeout: Optional[float] = None

    def __post_init__(self):
        if self.window_size < 1:
            raise ContractViolation(f"window size must be at least 1, got {self.window_size}")
        if self.prefetch_remaining is not None and not 0 <= self.prefetch_remaining < self.window_size:
            raise ContractViolation(
                f"prefetch_remaining must lie in [0, {self.window_size}), got {self.prefetch_remaining}"
            )
        if self.solver_timeout is not None and self.solver_timeout <= 0.0:
            raise ContractViolation(f"solver timeout must be positive, got {self.solver_timeout}")


@dataclass
class FunctionConfig:
    """Configuration for a ControllableFunction."""
    save_measure_values: bool = False
    predictor: PredictorConfig = field(default_factory=PredictorConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
