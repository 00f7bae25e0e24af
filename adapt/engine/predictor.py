"""
Online measure prediction by kernel smoothing.

Let m(x, t) be the measures of configuration x at time t. The naive model
assumes m(x, t) / m0(x) ~ o(t) + noise, where m0(x) is the profiled baseline of
x and o(t) a single drift ("overload") factor per measure shared by all
configurations. The factor is estimated from the observations {(x_i, m_i, t_i)}:

    o(t) = Sum_i (m_i / m0(x_i)) * K_h(t - t_i) / Sum_i K_h(t - t_i)

with the exponential kernel K_h(d) = exp(-d / h). Both sums are kept as decaying
accumulators, so an update costs O(measures) regardless of domain size.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Dict, Mapping, Optional, Protocol, Union, runtime_checkable

import numpy as np

from adapt.errors import ContractViolation, MeasureLookupError
from adapt.intent import Configuration, Intent
from .config import PredictorConfig

ConfigurationRef = Union[Configuration, int]


@runtime_checkable
class Predictor(Protocol):
    """Capabilities a controller needs from a predictor."""

    def update(self, configuration: ConfigurationRef, measured: Mapping[str, float], timestamp: float) -> None:
        ...

    def predict(self, configuration: ConfigurationRef) -> Dict[str, float]:
        ...


class NaivePredictor:
    """
    Decaying ratio estimator over a fixed configuration domain.

    Holds one baseline vector per configuration (seeded with
    ``initial_baseline`` or set by ``initialize``) and, per measure, a
    numerator/denominator pair whose ratio is the current overload factor.
    Predictions are the baseline scaled by the overload factor.

    Args:
        name: Name of the controlled function, used in log messages.
        intent: Intent whose domain and measures are tracked.
        config: Predictor hyperparameters.
        logger: Logger to report to; defaults to this module's logger.
        clock: Source of the initial ``last_sample_time``.
    """

    def __init__(
        self,
        name: str,
        intent: Intent,
        config: Optional[PredictorConfig] = None,
        logger: Optional[logging.Logger] = None,
        clock=time.time,
    ):
        self.name = name
        self.intent = intent
        self.config = config or PredictorConfig()
        self.log = logger or logging.getLogger(__name__)
        self.log.debug(f"Initialize a naive predictor for the function {name}...")

        self.domain = intent.domain()
        self.measures = list(intent.measures)
        n_measures = len(self.measures)

        self.baseline = np.full((len(self.domain), n_measures), self.config.initial_baseline, dtype=float)
        # unit prior pseudo-observation keeps the factor at 1.0 until data arrives
        self.numerator = np.ones(n_measures)
        self.denominator = np.ones(n_measures)
        self.overload = np.ones(n_measures)
        self.last_sample_time = float(clock())

        self.log.debug(f"Domain of {name} has {len(self.domain)} configurations.")

    @property
    def bandwidth(self) -> float:
        return self.config.bandwidth

    @property
    def size(self) -> int:
        return len(self.domain)

    def _index(self, configuration: ConfigurationRef) -> int:
        return self.domain.index_of(configuration)

    def _vector(self, measured: Mapping[str, float]) -> np.ndarray:
        values = np.empty(len(self.measures))
        for i, measure in enumerate(self.measures):
            try:
                values[i] = float(measured[measure])
            except KeyError:
                raise MeasureLookupError(f"measurement lacks declared measure {measure!r}") from None
        return values

    def initialize(self, configuration: ConfigurationRef, measured: Mapping[str, float], timestamp: float) -> None:
        """
        Set the baseline of one configuration directly.

        Used once per configuration during exhaustive profiling, before any
        online update. The decay accumulators are left untouched.
        """
        index = self._index(configuration)
        values = self._vector(measured)
        if not np.all(np.isfinite(values)) or np.any(values == 0.0):
            raise ContractViolation(
                f"baseline of configuration {index} must be finite and non-zero, got {values.tolist()}"
            )
        self.baseline[index] = values
        self.last_sample_time = float(timestamp)
        self.log.debug(f"Initialize baseline of {self.domain[index]!r} with {dict(zip(self.measures, values.tolist()))}")

    def update(self, configuration: ConfigurationRef, measured: Mapping[str, float], timestamp: float) -> None:
        """
        Fold one observation into the overload factors.

        Both accumulators decay by ``exp((last_sample_time - timestamp) / bandwidth)``,
        the denominator gains 1 and the numerator gains the observed-to-baseline
        ratio. A timestamp older than ``last_sample_time`` decays nothing and
        leaves ``last_sample_time`` where it is. New values are computed first
        and committed together.

        Raises:
            ContractViolation: If a measured value or the timestamp is not finite.
        """
        index = self._index(configuration)
        values = self._vector(measured)
        if not np.all(np.isfinite(values)):
            raise ContractViolation(f"measured values must be finite, got {values.tolist()}")
        if not math.isfinite(timestamp):
            raise ContractViolation(f"sample timestamp must be finite, got {timestamp}")
        exponent = min(0.0, (self.last_sample_time - timestamp) / self.config.bandwidth)
        decay = math.exp(exponent)

        denominator = self.denominator * decay + 1.0
        numerator = self.numerator * decay + values / self.baseline[index]
        overload = numerator / denominator

        self.denominator, self.numerator, self.overload = denominator, numerator, overload
        self.last_sample_time = max(self.last_sample_time, float(timestamp))
        self.log.debug(f"Update {self.name} overload factors to {self.overload_factors()}")

    def overload_factors(self) -> Dict[str, float]:
        return dict(zip(self.measures, self.overload.tolist()))

    def predict(self, configuration: ConfigurationRef) -> Dict[str, float]:
        """Predicted measures of a configuration, keyed by measure name."""
        return dict(zip(self.measures, self.predict_vector(self._index(configuration)).tolist()))

    def predict_vector(self, index: int) -> np.ndarray:
        """Predicted measures of a configuration index, in declared order."""
        return self.baseline[self._index(index)] * self.overload

    def predict_coefficient(self, index: int, measure: str) -> float:
        position = self.intent.measure_index(measure)
        return float(self.baseline[self._index(index), position] * self.overload[position])

    def predict_matrix(self) -> np.ndarray:
        """Predictions for the whole domain, shape (configurations, measures)."""
        return self.baseline * self.overload

    def read_statistics(self, path) -> None:
        raise NotImplementedError("persisting learned statistics is not supported")

    def write_statistics(self, path) -> None:
        raise NotImplementedError("persisting learned statistics is not supported")
