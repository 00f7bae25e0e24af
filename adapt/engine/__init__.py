"""
Adapt Engine: the closed adaptation loop.

Predictor, schedule solver, controller and the execution wrapper that ties
them together.
"""

from .config import ControllerConfig, FunctionConfig, PredictorConfig
from .predictor import NaivePredictor, Predictor
from .solver import LinearConstraints, LinearScheduleSolver, ScheduleSolver
from .controller import Controller, ControllerState, MultilinearController, PlanningProblem
from .history import HistorySink, MeasureHistory
from .function import ControllableFunction

__all__ = [
    'ControllerConfig',
    'FunctionConfig',
    'PredictorConfig',
    'NaivePredictor',
    'Predictor',
    'LinearConstraints',
    'LinearScheduleSolver',
    'ScheduleSolver',
    'Controller',
    'ControllerState',
    'MultilinearController',
    'PlanningProblem',
    'HistorySink',
    'MeasureHistory',
    'ControllableFunction',
]
