"""
Multilinear controller: windowed schedule planning and serving.

The controller turns the predictor's current estimates and the intent into a
linear program over the configuration domain, asks a solver for a window of
configurations and serves that window one configuration per call. A new window
is planned only once the current one is used up, which amortizes the cost of the
solver over ``window_size`` calls at the price of serving slightly stale
predictions.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Mapping, Optional, Protocol, runtime_checkable

import numpy as np

from adapt.errors import (
    EmptyDomainError,
    InfeasibleProblemError,
    InfeasibleScheduleError,
    PlanningError,
    PlanningTimeoutError,
    SolverError,
)
from adapt.intent import Configuration, Intent, OptimizationType
from .config import ControllerConfig
from .predictor import ConfigurationRef, NaivePredictor
from .solver import LinearConstraints, LinearScheduleSolver, ScheduleSolver


@runtime_checkable
class Controller(Protocol):
    """Capabilities an execution wrapper needs from a controller."""

    def update_statistics(self, configuration: ConfigurationRef, measured: Mapping[str, float], timestamp: float) -> None:
        ...

    def get_next_knob_values(self) -> Configuration:
        ...


class ControllerState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    SERVING = "serving"


@dataclass
class PlanningProblem:
    """
    One linear program handed to the solver.

    Attributes:
        objective: Maximize-mode objective over configuration indices.
        domain: Configuration indices.
        leq: One row per <= constraint.
        geq: One row per >= constraint.
        eq: One row per == constraint, then the all-ones selection row.
        predictions: Predicted measures used to build the rows,
            shape (configurations, measures).
    """
    objective: Callable[[int], float]
    domain: List[int]
    leq: LinearConstraints
    geq: LinearConstraints
    eq: LinearConstraints
    predictions: np.ndarray


class MultilinearController:
    """
    Serves configurations from a schedule re-planned once per window.

    State moves IDLE -> PLANNING -> SERVING -> PLANNING -> ... The first request
    plans; afterwards the request following the last slot of a window plans the
    next one from the latest predictions. ``update_statistics`` only feeds the
    predictor and never forces a replan.

    Args:
        name: Name of the controlled function, used in log messages.
        intent: The intent to satisfy.
        predictor: Estimator providing predicted measures.
        config: Window and planning settings.
        solver: Solver used for planning; defaults to ``LinearScheduleSolver``.
        logger: Logger to report to; defaults to this module's logger.
    """

    def __init__(
        self,
        name: str,
        intent: Intent,
        predictor: NaivePredictor,
        config: Optional[ControllerConfig] = None,
        solver: Optional[ScheduleSolver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.name = name
        self.intent = intent
        self.predictor = predictor
        self.config = config or ControllerConfig()
        self.solver = solver or LinearScheduleSolver()
        self.log = logger or logging.getLogger(__name__)
        self.log.debug(f"Initialize multilinear controller for {name}...")

        self.domain = predictor.domain
        self.constraint_groups = intent.partition_constraints()
        self.state = ControllerState.IDLE
        self.schedule: List[Configuration] = []
        self.last_schedule: List[Configuration] = []
        self.cursor = 0

        self._lock = threading.RLock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None

    @property
    def window_size(self) -> int:
        return self.config.window_size

    def build_problem(self, predictions: Optional[np.ndarray] = None) -> PlanningProblem:
        """
        Assemble the linear program from a predictions snapshot.

        Args:
            predictions: Predicted measures, shape (configurations, measures).
                Defaults to the predictor's current estimates.
        """
        if predictions is None:
            predictions = self.predictor.predict_matrix()
        n = len(self.domain)

        def rows(group) -> LinearConstraints:
            if not group:
                return LinearConstraints.empty(n)
            coefficients = np.stack([predictions[:, self.intent.measure_index(m)] for m, _ in group])
            return LinearConstraints(coefficients, np.array([bound for _, bound in group]))

        leq = rows(self.constraint_groups.leq)
        geq = rows(self.constraint_groups.geq)
        eq = rows(self.constraint_groups.eq)
        # exactly one configuration is selected per slot
        eq = LinearConstraints(
            np.vstack([eq.coefficients.reshape(-1, n), np.ones((1, n))]),
            np.append(eq.bounds, 1.0),
        )

        cost_or_value = self.intent.cost_or_value
        sign = -1.0 if self.intent.optimization_type is OptimizationType.MINIMIZE else 1.0

        def objective(index: int) -> float:
            return sign * float(cost_or_value(predictions[index].tolist()))

        return PlanningProblem(
            objective=objective,
            domain=list(self.domain.indices()),
            leq=leq,
            geq=geq,
            eq=eq,
            predictions=predictions,
        )

    def _solve(self, predictions: np.ndarray) -> List[Configuration]:
        if len(self.domain) == 0:
            raise EmptyDomainError(f"intent {self.intent.name!r} has no reachable configuration")
        problem = self.build_problem(predictions)
        try:
            indices = self.solver.solve(
                problem.objective,
                problem.domain,
                problem.leq,
                problem.geq,
                problem.eq,
                self.window_size,
                OptimizationType.MAXIMIZE,
            )
        except InfeasibleProblemError as exc:
            raise InfeasibleScheduleError(f"no schedule satisfies intent {self.intent.name!r}: {exc}") from exc
        except SolverError as exc:
            raise PlanningError(f"solver failed for intent {self.intent.name!r}: {exc}") from exc
        if len(indices) != self.window_size:
            raise PlanningError(
                f"solver returned {len(indices)} indices for a window of {self.window_size}"
            )
        return [self.domain[i] for i in indices]

    def _install(self, schedule: List[Configuration]) -> None:
        self.schedule = schedule
        self.last_schedule = schedule
        self.cursor = 0
        self.state = ControllerState.SERVING
        self.log.debug(f"Compute a schedule. Schedule: {[c.index for c in schedule]}")

    def _submit(self) -> Future:
        if self._pending is None:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"adapt-plan-{self.name}")
            snapshot = self.predictor.predict_matrix().copy()
            self._pending = self._executor.submit(self._solve, snapshot)
        return self._pending

    def _plan(self) -> None:
        self.state = ControllerState.PLANNING
        if self.config.solver_timeout is None and self._pending is None:
            try:
                self._install(self._solve(self.predictor.predict_matrix()))
            except PlanningError:
                self.log.error(f"Planning failed for {self.name}", exc_info=True)
                raise
            return

        future = self._submit()
        try:
            schedule = future.result(timeout=self.config.solver_timeout)
        except FutureTimeoutError:
            if not self.last_schedule:
                raise PlanningTimeoutError(
                    f"solver did not answer within {self.config.solver_timeout}s and no previous schedule exists"
                ) from None
            self.log.warning(
                f"Solver timed out after {self.config.solver_timeout}s for {self.name}; "
                f"re-serving the previous schedule"
            )
            self._install(self.last_schedule)
            return
        except PlanningError:
            self._pending = None
            self.log.error(f"Planning failed for {self.name}", exc_info=True)
            raise
        except Exception:
            self._pending = None
            raise
        self._pending = None
        self._install(schedule)

    def compute_schedule(self) -> List[Configuration]:
        """Plan a new window now and return it."""
        with self._lock:
            self._plan()
            return list(self.schedule)

    def get_next_knob_values(self) -> Configuration:
        """
        Return the next configuration to run.

        Raises:
            PlanningError: When a needed plan cannot be computed.
        """
        with self._lock:
            if self.state is not ControllerState.SERVING or self.cursor >= len(self.schedule):
                self._plan()
            configuration = self.schedule[self.cursor]
            self.cursor += 1

            prefetch = self.config.prefetch_remaining
            if prefetch is not None and len(self.schedule) - self.cursor == prefetch:
                self._submit()
            return configuration

    def update_statistics(self, configuration: ConfigurationRef, measured: Mapping[str, float], timestamp: float) -> None:
        with self._lock:
            self.predictor.update(configuration, measured, timestamp)

    def shutdown(self) -> None:
        """Stop the background planner, if one was started."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
                self._pending = None
