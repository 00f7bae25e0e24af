"""
Controllable functions: the execution wrapper of the adaptation loop.

A controllable function wraps a caller-supplied body ``(input, configuration)
-> (output, measured)``. Each ``execute`` call asks the controller for the next
configuration, runs the body with it, times the call, and feeds the measured
values back to the controller before returning the body's output.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Mapping, Optional, Tuple, TypeVar

from adapt.errors import ContractViolation
from adapt.intent import Configuration, Intent
from .config import FunctionConfig
from .controller import MultilinearController
from .history import HistorySink, MeasureHistory
from .predictor import NaivePredictor
from .solver import ScheduleSolver

Input = TypeVar("Input")
Output = TypeVar("Output")

FunctionBody = Callable[[Input, Configuration], Tuple[Output, Mapping[str, float]]]

LATENCY = "latency"


@dataclass(frozen=True)
class ActiveIntent:
    """The intent with the predictor and controller built for it."""
    intent: Intent
    predictor: NaivePredictor
    controller: MultilinearController
    history: HistorySink


class ControllableFunction(Generic[Input, Output]):
    """
    Runs a function body under a knob controller.

    Args:
        function_body: ``(input, configuration) -> (output, measured)``. The
            measured map needs one value per declared measure; a declared
            ``latency`` measure is always overwritten with the timed duration.
        name: Identifier of the function, used in log messages.
        intent: The intent to control against.
        config: Wrapper, predictor and controller settings.
        solver: Schedule solver passed to every controller built.
        history_factory: Builds the history sink for an intent; defaults to
            ``MeasureHistory``.
        logger: Logger to report to; handed to the predictor and controller.
        clock: Wall clock in seconds, used for latency and update timestamps.

    Usage:
        >>> fn = ControllableFunction(body, "filter", intent)
        >>> fn.exhaustive_profiling_with_fixed_inputs(sample, runs=3)
        >>> output = fn.execute(live_input)
    """

    def __init__(
        self,
        function_body: FunctionBody,
        name: str,
        intent: Intent,
        config: Optional[FunctionConfig] = None,
        solver: Optional[ScheduleSolver] = None,
        history_factory: Optional[Callable[[Intent], HistorySink]] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.function_body = function_body
        self.name = name
        self.config = config or FunctionConfig()
        self.solver = solver
        self.history_factory = history_factory or (lambda i: MeasureHistory(i.measures))
        self.log = logger or logging.getLogger(__name__)
        self.clock = clock
        self._lock = threading.Lock()

        self.log.debug(f"Initialize the controllable function {name}...")
        self._active = self._build(intent)
        self.log.debug(f"Initialize the controllable function {name} successfully.")

    def _build(self, intent: Intent) -> ActiveIntent:
        predictor = NaivePredictor(self.name, intent, self.config.predictor, logger=self.log, clock=self.clock)
        controller = MultilinearController(
            self.name,
            intent,
            predictor,
            config=self.config.controller,
            solver=self.solver,
            logger=self.log,
        )
        return ActiveIntent(intent, predictor, controller, self.history_factory(intent))

    @property
    def intent(self) -> Intent:
        return self._active.intent

    @property
    def predictor(self) -> NaivePredictor:
        return self._active.predictor

    @property
    def controller(self) -> MultilinearController:
        return self._active.controller

    @property
    def history(self) -> HistorySink:
        return self._active.history

    def load_intent(self, intent: Intent) -> None:
        """
        Replace the intent, rebuilding predictor and controller.

        Learned statistics, the current schedule and the history are discarded.
        """
        active = self._build(intent)
        with self._lock:
            previous, self._active = self._active, active
        previous.controller.shutdown()
        self.log.debug(f"Loaded intent {intent.name} into {self.name}")

    def _run(self, intent: Intent, data: Input, configuration: Configuration) -> Tuple[Output, Dict[str, float], float]:
        start = self.clock()
        output, measured = self.function_body(data, configuration)
        end = self.clock()
        measured = dict(measured)
        if LATENCY in intent.measures:
            measured[LATENCY] = end - start
        return output, measured, (start + end) / 2

    def execute(self, data: Input) -> Output:
        """Run one controlled call and return the body's output."""
        active = self._active
        configuration = active.controller.get_next_knob_values()
        output, measured, midpoint = self._run(active.intent, data, configuration)
        active.controller.update_statistics(configuration, measured, midpoint)
        if self.config.save_measure_values:
            active.history.append(measured)
        return output

    def exhaustive_profiling_with_fixed_inputs(self, sample_input: Input, runs: int = 1) -> None:
        """
        Establish the baseline of every configuration.

        Runs the body ``runs`` times per configuration of the domain with the
        same input, averages each measure and seeds the predictor with it. Must
        complete before live ``execute`` calls; unprofiled configurations keep
        the default baseline.
        """
        if runs < 1:
            raise ContractViolation(f"profiling needs at least one run, got {runs}")
        active = self._active
        self.log.debug(f"Exhaustively profile the controllable function {self.name}...")
        for configuration in active.predictor.domain:
            self.log.debug(f"Profile the controllable function {self.name} with knob {configuration!r}...")
            totals: Dict[str, float] = {}
            for _ in range(runs):
                _, measured, _ = self._run(active.intent, sample_input, configuration)
                for measure, value in measured.items():
                    totals[measure] = totals.get(measure, 0.0) + value
            averages = {measure: total / runs for measure, total in totals.items()}
            active.predictor.initialize(configuration, averages, self.clock())
        self.log.debug(f"Exhaustively profile the controllable function {self.name} successfully.")
