"""
adapt: runtime knob control for frequently-invoked functions.

A controllable function exposes knobs; an intent states which measures to
constrain and which objective to optimize; the engine predicts measures online
and serves a re-planned schedule of knob configurations.
"""

from .errors import (
    ContractViolation,
    PlanningError,
    SolverError,
)
from .intent import (
    Configuration,
    ConstraintType,
    ContinuousRange,
    DiscreteRange,
    Intent,
    KnobValue,
    OptimizationType,
)
from .engine import (
    ControllableFunction,
    ControllerConfig,
    FunctionConfig,
    LinearScheduleSolver,
    MultilinearController,
    NaivePredictor,
    PredictorConfig,
)

__version__ = "0.1.0"

__all__ = [
    'ContractViolation',
    'PlanningError',
    'SolverError',
    'Configuration',
    'ConstraintType',
    'ContinuousRange',
    'DiscreteRange',
    'Intent',
    'KnobValue',
    'OptimizationType',
    'ControllableFunction',
    'ControllerConfig',
    'FunctionConfig',
    'LinearScheduleSolver',
    'MultilinearController',
    'NaivePredictor',
    'PredictorConfig',
]
