"""
Intent model: knobs, measures, constraints and the objective of a
controllable function.
"""

from .types import (
    ConstraintType,
    ContinuousRange,
    DiscreteRange,
    KnobKind,
    KnobRange,
    KnobValue,
    OptimizationType,
)
from .spec import (
    Configuration,
    ConstraintGroups,
    Domain,
    Intent,
    quantize_range,
)

__all__ = [
    'ConstraintType',
    'ContinuousRange',
    'DiscreteRange',
    'KnobKind',
    'KnobRange',
    'KnobValue',
    'OptimizationType',
    'Configuration',
    'ConstraintGroups',
    'Domain',
    'Intent',
    'quantize_range',
]
