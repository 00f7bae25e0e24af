"""
Intent model: the declarative description of a controllable function.

An intent names the knobs of a function together with their ranges, the
measures observed on every call, the constraints those measures must satisfy and
the objective to maximize or minimize. Text parsing of intents happens
elsewhere; this module only holds the compiled form and enumerates its
configuration space.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from adapt.errors import (
    DomainTooLargeError,
    IntentValidationError,
    InvalidRangeError,
    MeasureLookupError,
    UnknownConfigurationError,
)
from .types import ConstraintType, KnobRange, KnobValue, OptimizationType

logger = logging.getLogger(__name__)

DEFAULT_QUANTIZATION_LEVEL = 10
DEFAULT_MAX_CONFIGURATIONS = 100_000


def quantize_range(knob_range: KnobRange, level: int) -> List[KnobValue]:
    """
    Resolve a knob range to an explicit list of values.

    Continuous ranges become ``level`` evenly spaced samples between their
    bounds plus the reference value when it is not one of them. Discrete ranges
    pass through unchanged.

    Args:
        knob_range: The raw range.
        level: Number of samples for continuous ranges, at least 2.

    Returns:
        The ordered list of knob values.
    """
    if level < 2:
        raise InvalidRangeError(f"quantization level must be at least 2, got {level}")
    return knob_range.resolve(level)


class Configuration(Mapping[str, KnobValue]):
    """
    One assignment of a value to every knob, tagged with its domain index.

    Behaves as a read-only mapping from knob name to ``KnobValue``. The index is
    the configuration's position in the domain that created it and is the only
    key predictors and controllers use to address it.
    """

    __slots__ = ("_values", "_index")

    def __init__(self, values: Mapping[str, KnobValue], index: int):
        self._values = dict(values)
        self._index = index

    @property
    def index(self) -> int:
        return self._index

    def __getitem__(self, name: str) -> KnobValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if isinstance(other, Configuration):
            return self._index == other._index and self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._index, tuple(sorted(self._values.items(), key=lambda kv: kv[0]))))

    def as_python(self) -> Dict[str, object]:
        """Plain ``{name: value}`` dict with the knob payloads unwrapped."""
        return {name: knob.value for name, knob in self._values.items()}

    def __repr__(self) -> str:
        return f"Configuration(#{self._index}, {self.as_python()})"


class Domain(Sequence[Configuration]):
    """
    The enumerated configuration space of an intent.

    Knob names are sorted lexicographically and the space is grown one knob at a
    time: for every value of the knob being added, each configuration built so
    far is extended with that value. The first knob therefore varies fastest.
    """

    def __init__(self, knob_values: Mapping[str, Sequence[KnobValue]], max_size: int = DEFAULT_MAX_CONFIGURATIONS):
        self.knob_names: Tuple[str, ...] = tuple(sorted(knob_values))
        size = 1 if self.knob_names else 0
        for name in self.knob_names:
            size *= len(knob_values[name])
        if size > max_size:
            raise DomainTooLargeError(
                f"configuration space has {size} elements, bound is {max_size}"
            )

        space: List[Dict[str, KnobValue]] = []
        for name in self.knob_names:
            values = knob_values[name]
            if not space:
                space = [{name: value} for value in values]
                continue
            extended = []
            for value in values:
                for partial in space:
                    candidate = dict(partial)
                    candidate[name] = value
                    extended.append(candidate)
            space = extended

        self._configurations: Tuple[Configuration, ...] = tuple(
            Configuration(values, index) for index, values in enumerate(space)
        )

    def __len__(self) -> int:
        return len(self._configurations)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self._configurations[index]
        if not 0 <= index < len(self._configurations):
            raise UnknownConfigurationError(
                f"configuration index {index} outside domain of size {len(self)}"
            )
        return self._configurations[index]

    def __iter__(self) -> Iterator[Configuration]:
        return iter(self._configurations)

    def indices(self) -> range:
        return range(len(self._configurations))

    def index_of(self, configuration) -> int:
        """
        Return the stored index of a configuration of this domain.

        Accepts a ``Configuration`` or a raw integer index. The index is read
        from the configuration itself and checked against the domain entry; no
        search over knob values takes place.
        """
        if isinstance(configuration, Configuration):
            index = configuration.index
            if not 0 <= index < len(self._configurations) or self._configurations[index] != configuration:
                raise UnknownConfigurationError(f"{configuration!r} is not part of this domain")
            return index
        if isinstance(configuration, numbers.Integral) and not isinstance(configuration, bool):
            configuration = int(configuration)
            if not 0 <= configuration < len(self._configurations):
                raise UnknownConfigurationError(
                    f"configuration index {configuration} outside domain of size {len(self)}"
                )
            return configuration
        raise UnknownConfigurationError(
            f"expected a Configuration or an index, got {type(configuration).__name__}"
        )


@dataclass
class ConstraintGroups:
    """Constraints split by comparison kind, each as ordered (measure, bound) pairs."""
    leq: List[Tuple[str, float]] = field(default_factory=list)
    geq: List[Tuple[str, float]] = field(default_factory=list)
    eq: List[Tuple[str, float]] = field(default_factory=list)


@dataclass
class Intent:
    """
    Compiled intent for one controllable function.

    Attributes:
        name: Identifier of the intent.
        knobs: Raw knob ranges by knob name.
        measures: Measure names in declared order; objective vectors follow it.
        constraints: ``measure -> (bound, comparison)``.
        cost_or_value: Objective over a measure vector in declared order.
        optimization_type: Whether ``cost_or_value`` is maximized or minimized.
        training_set: Opaque training inputs named by the intent source.
        objective_source: Raw objective text, kept for the parser.
        knob_constraints_source: Raw knob constraint text, kept for the parser.
        quantization_level: Samples per continuous range.
        max_configurations: Bound on the enumerated configuration space.
        resolved_knobs: Derived explicit value lists; recomputed by ``quantize``.
    """
    name: str
    knobs: Dict[str, KnobRange]
    measures: List[str]
    constraints: Dict[str, Tuple[float, ConstraintType]]
    cost_or_value: Callable[[Sequence[float]], float]
    optimization_type: OptimizationType = OptimizationType.MAXIMIZE
    training_set: List[str] = field(default_factory=list)
    objective_source: Optional[str] = None
    knob_constraints_source: Optional[str] = None
    quantization_level: int = DEFAULT_QUANTIZATION_LEVEL
    max_configurations: int = DEFAULT_MAX_CONFIGURATIONS
    resolved_knobs: Dict[str, List[KnobValue]] = field(default_factory=dict, init=False)

    def __post_init__(self):
        self.measures = list(self.measures)
        if not self.measures:
            raise IntentValidationError(f"intent {self.name!r} declares no measures")
        if len(set(self.measures)) != len(self.measures):
            raise IntentValidationError(f"intent {self.name!r} declares duplicate measures")
        normalized = {}
        for measure, (bound, comparison) in self.constraints.items():
            if measure not in self.measures:
                raise IntentValidationError(
                    f"constraint on undeclared measure {measure!r} in intent {self.name!r}"
                )
            normalized[measure] = (float(bound), ConstraintType(comparison))
        self.constraints = normalized
        self.optimization_type = OptimizationType(self.optimization_type)
        self._measure_positions = {name: i for i, name in enumerate(self.measures)}
        self._domain: Optional[Domain] = None
        self.quantize(self.quantization_level)

    def quantize(self, level: int) -> None:
        """Recompute every resolved knob list from the raw ranges."""
        self.resolved_knobs = {name: quantize_range(rng, level) for name, rng in self.knobs.items()}
        self.quantization_level = level
        self._domain = None
        sizes = {name: len(values) for name, values in self.resolved_knobs.items()}
        logger.debug(f"Quantized intent {self.name} at level {level}: {sizes}")

    def domain(self) -> Domain:
        """The configuration space at the current quantization level."""
        if self._domain is None:
            self._domain = Domain(self.resolved_knobs, max_size=self.max_configurations)
        return self._domain

    def knob_space(self) -> List[Configuration]:
        return list(self.domain())

    def measure_index(self, measure: str) -> int:
        try:
            return self._measure_positions[measure]
        except KeyError:
            raise MeasureLookupError(f"measure {measure!r} is not declared by intent {self.name!r}") from None

    def partition_constraints(self) -> ConstraintGroups:
        """Split constraints into <=, >= and == groups, keeping declaration order."""
        groups = ConstraintGroups()
        for measure, (bound, comparison) in self.constraints.items():
            if comparison is ConstraintType.LESS_OR_EQUAL:
                groups.leq.append((measure, bound))
            elif comparison is ConstraintType.GREATER_OR_EQUAL:
                groups.geq.append((measure, bound))
            else:
                groups.eq.append((measure, bound))
        return groups
