"""
Adapt Test Configuration

Fixtures and common test utilities for all test modules.
"""

import pytest
import numpy as np

from adapt.intent import DiscreteRange, Intent, OptimizationType


class FakeClock:
    """Deterministic clock advancing by a fixed step on every read."""

    def __init__(self, start: float = 1000.0, step: float = 0.5):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def identity_intent():
    """One knob {1, 2, 3}, one measure, maximize the measure."""
    return Intent(
        name="identity",
        knobs={"level": DiscreteRange([1, 2, 3], 1)},
        measures=["quality"],
        constraints={},
        cost_or_value=lambda m: m[0],
        optimization_type=OptimizationType.MAXIMIZE,
    )


@pytest.fixture
def two_knob_intent():
    """Two knobs and two measures with a latency bound."""
    return Intent(
        name="two_knobs",
        knobs={
            "size": DiscreteRange([1, 2, 4], 4),
            "mode": DiscreteRange(["fast", "exact"], "exact"),
        },
        measures=["latency", "error"],
        constraints={"latency": (2.0, "<=")},
        cost_or_value=lambda m: m[1],
        optimization_type=OptimizationType.MINIMIZE,
    )
