"""
Value types shared by intents, predictors and controllers.

A knob value is a closed sum over {integer, real, string}. Equality is exact per
variant, so ``KnobValue.integer(1)`` and ``KnobValue.real(1.0)`` are different
values, and typed extraction refuses to cross variants.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Union

import numpy as np

from adapt.errors import InvalidRangeError, KnobTypeError


class KnobKind(str, Enum):
    """Variants of a knob value."""
    INTEGER = "integer"
    REAL = "real"
    STRING = "string"


_PYTHON_TYPES = {
    KnobKind.INTEGER: int,
    KnobKind.REAL: float,
    KnobKind.STRING: str,
}


@dataclass(frozen=True)
class KnobValue:
    """
    A single value a knob can take.

    Attributes:
        kind: The variant tag.
        value: The payload; always an instance of the Python type of ``kind``.
    """
    kind: KnobKind
    value: Union[int, float, str]

    def __post_init__(self):
        expected = _PYTHON_TYPES[self.kind]
        if isinstance(self.value, bool) or not isinstance(self.value, expected):
            raise KnobTypeError(
                f"{self.kind.value} knob value needs {expected.__name__}, got {self.value!r}"
            )

    @classmethod
    def integer(cls, value: int) -> "KnobValue":
        return cls(KnobKind.INTEGER, value)

    @classmethod
    def real(cls, value: float) -> "KnobValue":
        if isinstance(value, (int, np.integer, np.floating)) and not isinstance(value, bool):
            value = float(value)
        return cls(KnobKind.REAL, value)

    @classmethod
    def string(cls, value: str) -> "KnobValue":
        return cls(KnobKind.STRING, value)

    @classmethod
    def of(cls, value: Union[int, float, str, "KnobValue"]) -> "KnobValue":
        """Wrap a plain Python value, inferring the variant from its type."""
        if isinstance(value, KnobValue):
            return value
        if isinstance(value, bool):
            raise KnobTypeError(f"booleans are not knob values: {value!r}")
        if isinstance(value, (int, np.integer)):
            return cls.integer(int(value))
        if isinstance(value, (float, np.floating)):
            return cls.real(float(value))
        if isinstance(value, str):
            return cls.string(value)
        raise KnobTypeError(f"unsupported knob value {value!r} of type {type(value).__name__}")

    def as_int(self) -> int:
        if self.kind is not KnobKind.INTEGER:
            raise KnobTypeError(f"expected an integer knob value, got {self.kind.value} {self.value!r}")
        return self.value  # type: ignore[return-value]

    def as_float(self) -> float:
        if self.kind is not KnobKind.REAL:
            raise KnobTypeError(f"expected a real knob value, got {self.kind.value} {self.value!r}")
        return self.value  # type: ignore[return-value]

    def as_str(self) -> str:
        if self.kind is not KnobKind.STRING:
            raise KnobTypeError(f"expected a string knob value, got {self.kind.value} {self.value!r}")
        return self.value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"KnobValue.{self.kind.value}({self.value!r})"


class ConstraintType(str, Enum):
    """Comparison used by a measure constraint."""
    LESS_OR_EQUAL = "<="
    GREATER_OR_EQUAL = ">="
    EQUAL = "=="


class OptimizationType(str, Enum):
    """Direction of the intent's objective."""
    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"


@dataclass(frozen=True)
class DiscreteRange:
    """
    An explicit, ordered list of knob values plus a reference value.

    The reference is appended to the resolved list when it is not already one
    of the values. Values must be distinct.
    """
    values: tuple
    reference: KnobValue

    def __init__(self, values: Sequence, reference):
        converted = tuple(KnobValue.of(v) for v in values)
        if not converted:
            raise InvalidRangeError("a discrete knob range needs at least one value")
        if len(set(converted)) != len(converted):
            raise InvalidRangeError(f"discrete knob range repeats a value: {list(converted)}")
        object.__setattr__(self, "values", converted)
        object.__setattr__(self, "reference", KnobValue.of(reference))

    def resolve(self, level: int) -> List[KnobValue]:
        resolved = list(self.values)
        if self.reference not in resolved:
            resolved.append(self.reference)
        return resolved


@dataclass(frozen=True)
class ContinuousRange:
    """
    A real interval ``[low, high]`` plus a reference value.

    Must be quantized to a discrete list before a domain can be enumerated.
    Quantized values are distinct, so ``low == high`` resolves to one value.
    """
    low: float
    high: float
    reference: float

    def __post_init__(self):
        for name in ("low", "high", "reference"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidRangeError(f"continuous range {name} must be finite")
        if self.low > self.high:
            raise InvalidRangeError(f"continuous range is inverted: [{self.low}, {self.high}]")
        if not self.low <= self.reference <= self.high:
            raise InvalidRangeError(
                f"reference {self.reference} lies outside [{self.low}, {self.high}]"
            )

    def resolve(self, level: int) -> List[KnobValue]:
        samples = np.linspace(self.low, self.high, num=level)
        # a degenerate interval collapses to its single point
        resolved = list(dict.fromkeys(KnobValue.real(float(s)) for s in samples))
        reference = KnobValue.real(float(self.reference))
        # linspace steps rarely hit an interior reference exactly
        if reference not in resolved:
            resolved.append(reference)
        return resolved


KnobRange = Union[DiscreteRange, ContinuousRange]
