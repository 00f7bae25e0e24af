"""
Schedule solvers.

A solver receives an objective over configuration indices and three groups of
linear constraints (<=, >=, ==) whose coefficients are predicted measure values,
and returns a window of configuration indices to serve. Solvers always maximize;
controllers negate the objective to minimize.

``LinearScheduleSolver`` solves the linear relaxation over selection weights
x_i >= 0 with scipy's HiGHS backend and turns the optimal weights into a
window of indices. Controllers add an all-ones equality row with bound 1, which
makes the weights a distribution over configurations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Protocol, Sequence, runtime_checkable

import numpy as np
from scipy import optimize

from adapt.errors import ContractViolation, InfeasibleProblemError, SolverError
from adapt.intent import OptimizationType

logger = logging.getLogger(__name__)

# linprog status codes
_STATUS_INFEASIBLE = 2
_STATUS_UNBOUNDED = 3


@dataclass
class LinearConstraints:
    """
    A block of linear constraint rows over the configuration domain.

    Attributes:
        coefficients: Array of shape (rows, configurations).
        bounds: Array of shape (rows,).
    """
    coefficients: np.ndarray
    bounds: np.ndarray

    def __post_init__(self):
        self.coefficients = np.asarray(self.coefficients, dtype=float)
        self.bounds = np.asarray(self.bounds, dtype=float).reshape(-1)
        if self.coefficients.ndim == 1 and self.coefficients.size == 0:
            self.coefficients = self.coefficients.reshape(0, 0)
        if self.coefficients.ndim != 2 or self.coefficients.shape[0] != self.bounds.shape[0]:
            raise ContractViolation(
                f"constraint rows {self.coefficients.shape} do not match bounds {self.bounds.shape}"
            )

    @classmethod
    def empty(cls, n_columns: int) -> "LinearConstraints":
        return cls(np.zeros((0, n_columns)), np.zeros(0))

    @property
    def rows(self) -> int:
        return self.coefficients.shape[0]


@runtime_checkable
class ScheduleSolver(Protocol):
    """Capability to turn an optimization problem into a window of indices."""

    def solve(
        self,
        objective: Callable[[int], float],
        domain: Sequence[int],
        leq: LinearConstraints,
        geq: LinearConstraints,
        eq: LinearConstraints,
        window_size: int,
        direction: OptimizationType = OptimizationType.MAXIMIZE,
    ) -> List[int]:
        ...


def apportion(weights: np.ndarray, window_size: int) -> np.ndarray:
    """
    Split ``window_size`` slots across weights by largest remainder.

    Returns integer slot counts summing to ``window_size``. Ties are broken
    towards the lower index.
    """
    total = weights.sum()
    if total <= 0.0:
        raise SolverError("selection weights sum to zero")
    quotas = weights / total * window_size
    counts = np.floor(quotas).astype(int)
    remaining = window_size - int(counts.sum())
    if remaining > 0:
        remainders = quotas - counts
        order = np.lexsort((np.arange(len(weights)), -remainders))
        counts[order[:remaining]] += 1
    return counts


def interleave(counts: np.ndarray) -> List[int]:
    """
    Order slot counts into a sequence by smooth weighted round-robin.

    Each step credits every position with its count and picks the position with
    the largest credit, which spreads mixed plans across the window.
    """
    total = int(counts.sum())
    credit = np.zeros(len(counts))
    sequence = []
    for _ in range(total):
        credit += counts
        chosen = int(np.argmax(credit))
        credit[chosen] -= total
        sequence.append(chosen)
    return sequence


class LinearScheduleSolver:
    """
    Linear-programming schedule solver.

    Args:
        tolerance: Weights at or below this value are treated as zero.
        method: ``scipy.optimize.linprog`` method.
    """

    def __init__(self, tolerance: float = 1e-9, method: str = "highs"):
        self.tolerance = tolerance
        self.method = method

    def solve(
        self,
        objective: Callable[[int], float],
        domain: Sequence[int],
        leq: LinearConstraints,
        geq: LinearConstraints,
        eq: LinearConstraints,
        window_size: int,
        direction: OptimizationType = OptimizationType.MAXIMIZE,
    ) -> List[int]:
        if OptimizationType(direction) is not OptimizationType.MAXIMIZE:
            raise ContractViolation("schedule solvers only maximize; negate the objective to minimize")
        if window_size < 1:
            raise ContractViolation(f"window size must be at least 1, got {window_size}")
        domain = [int(i) for i in domain]
        n = len(domain)
        if n == 0:
            raise InfeasibleProblemError("cannot schedule over an empty domain")
        for name, block in (("<=", leq), (">=", geq), ("==", eq)):
            if block.rows and block.coefficients.shape[1] != n:
                raise ContractViolation(
                    f"{name} rows have {block.coefficients.shape[1]} columns for a domain of {n}"
                )

        values = np.array([objective(i) for i in domain], dtype=float)
        if not np.all(np.isfinite(values)):
            raise SolverError("objective is not finite over the whole domain")

        # linprog minimizes and only takes <= rows, so flip the objective and >= rows
        a_ub = np.vstack([leq.coefficients.reshape(-1, n), -geq.coefficients.reshape(-1, n)])
        b_ub = np.concatenate([leq.bounds, -geq.bounds])
        result = optimize.linprog(
            c=-values,
            A_ub=a_ub if a_ub.shape[0] else None,
            b_ub=b_ub if a_ub.shape[0] else None,
            A_eq=eq.coefficients if eq.rows else None,
            b_eq=eq.bounds if eq.rows else None,
            bounds=(0, None),
            method=self.method,
        )
        if result.status == _STATUS_INFEASIBLE:
            raise InfeasibleProblemError(f"constraints cannot be satisfied: {result.message}")
        if result.status == _STATUS_UNBOUNDED:
            raise InfeasibleProblemError(f"problem is unbounded: {result.message}")
        if not result.success:
            raise SolverError(f"linprog failed with status {result.status}: {result.message}")

        weights = np.where(result.x > self.tolerance, result.x, 0.0)
        counts = apportion(weights, window_size)
        schedule = [domain[i] for i in interleave(counts)]
        logger.debug(f"LP objective {-result.fun:.6g}, weights on {int(np.count_nonzero(weights))} configurations")
        return schedule
