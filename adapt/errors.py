"""
Error taxonomy for the adaptation loop.

Two families are kept apart:
- ContractViolation: the caller passed something the library cannot accept
  (unknown configuration, missing measure, wrong knob variant). Fail fast.
- PlanningError: the controller could not produce a schedule (empty domain,
  infeasible constraints, solver timeout). The embedding application decides
  whether to abort, relax the intent or keep serving a previous schedule.
"""


class ContractViolation(Exception):
    """Raised when a caller breaks the contract of a component."""


class KnobTypeError(ContractViolation, TypeError):
    """Raised when a knob value is read as the wrong variant."""


class MeasureLookupError(ContractViolation, KeyError):
    """Raised when a measure is not declared or missing from a measurement."""


class UnknownConfigurationError(ContractViolation, KeyError):
    """Raised when a configuration does not belong to the active domain."""


class DomainTooLargeError(ContractViolation, ValueError):
    """Raised when the configuration space exceeds the enumeration bound."""


class InvalidRangeError(ContractViolation, ValueError):
    """Raised for empty, inverted or otherwise unusable knob ranges."""


class IntentValidationError(ContractViolation, ValueError):
    """Raised when an intent references undeclared measures or is malformed."""


class SolverError(RuntimeError):
    """Raised by a schedule solver when it cannot return a plan."""


class InfeasibleProblemError(SolverError):
    """Raised by a schedule solver when the constraint set has no solution."""


class PlanningError(RuntimeError):
    """Raised by a controller when no schedule could be computed."""


class EmptyDomainError(PlanningError):
    """Raised when the intent declares no reachable configuration."""


class InfeasibleScheduleError(PlanningError):
    """Raised when the solver reports that the constraints cannot be met."""


class PlanningTimeoutError(PlanningError):
    """Raised when planning timed out and no previous schedule exists."""
