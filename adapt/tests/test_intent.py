"""
Test: Intent Model

Knob values, quantization, domain enumeration and constraint partitioning.
"""

import math

import pytest

from adapt.errors import (
    DomainTooLargeError,
    IntentValidationError,
    InvalidRangeError,
    KnobTypeError,
    MeasureLookupError,
    UnknownConfigurationError,
)
from adapt.intent import (
    ConstraintType,
    ContinuousRange,
    DiscreteRange,
    Domain,
    Intent,
    KnobKind,
    KnobValue,
    quantize_range,
)


class TestKnobValue:
    def test_equality_is_exact_per_variant(self):
        assert KnobValue.integer(1) == KnobValue.integer(1)
        assert KnobValue.integer(1) != KnobValue.real(1.0)
        assert KnobValue.string("1") != KnobValue.integer(1)

    def test_of_infers_variant(self):
        assert KnobValue.of(3).kind is KnobKind.INTEGER
        assert KnobValue.of(0.25).kind is KnobKind.REAL
        assert KnobValue.of("fast").kind is KnobKind.STRING

    def test_of_rejects_booleans_and_other_types(self):
        with pytest.raises(KnobTypeError):
            KnobValue.of(True)
        with pytest.raises(KnobTypeError):
            KnobValue.of([1, 2])

    def test_typed_extraction_refuses_other_variants(self):
        value = KnobValue.integer(7)
        assert value.as_int() == 7
        with pytest.raises(KnobTypeError):
            value.as_float()
        with pytest.raises(KnobTypeError):
            KnobValue.real(0.5).as_str()

    def test_constructor_checks_payload(self):
        with pytest.raises(KnobTypeError):
            KnobValue(KnobKind.INTEGER, "3")
        with pytest.raises(KnobTypeError):
            KnobValue.real("0.5")


class TestQuantization:
    @pytest.mark.parametrize("level", [2, 3, 7, 10])
    def test_continuous_range_contains_reference(self, level):
        rng = ContinuousRange(0.0, 1.0, reference=0.3)
        values = quantize_range(rng, level)
        assert KnobValue.real(0.3) in values
        assert len(values) in (level, level + 1)
        assert values[0] == KnobValue.real(0.0)
        assert values[level - 1] == KnobValue.real(1.0)

    def test_reference_on_grid_is_not_duplicated(self):
        values = quantize_range(ContinuousRange(0.0, 1.0, reference=0.5), 3)
        assert values == [KnobValue.real(0.0), KnobValue.real(0.5), KnobValue.real(1.0)]

    def test_quantization_is_idempotent(self):
        rng = ContinuousRange(-2.0, 5.0, reference=1.1)
        assert quantize_range(rng, 6) == quantize_range(rng, 6)

    def test_discrete_range_passes_through(self):
        values = quantize_range(DiscreteRange([4, 8, 16], 8), 2)
        assert values == [KnobValue.integer(4), KnobValue.integer(8), KnobValue.integer(16)]

    def test_discrete_reference_is_appended(self):
        values = quantize_range(DiscreteRange([4, 8], 2), 5)
        assert values[-1] == KnobValue.integer(2)

    def test_level_below_two_is_rejected(self):
        with pytest.raises(InvalidRangeError):
            quantize_range(ContinuousRange(0.0, 1.0, 0.5), 1)

    def test_bad_ranges_are_rejected(self):
        with pytest.raises(InvalidRangeError):
            DiscreteRange([], 1)
        with pytest.raises(InvalidRangeError):
            ContinuousRange(1.0, 0.0, 0.5)
        with pytest.raises(InvalidRangeError):
            ContinuousRange(0.0, 1.0, 2.0)
        with pytest.raises(InvalidRangeError):
            ContinuousRange(0.0, math.inf, 0.5)

    def test_discrete_duplicates_are_rejected(self):
        with pytest.raises(InvalidRangeError):
            DiscreteRange([1, 1, 2], 1)
        # different variants are different values
        assert len(quantize_range(DiscreteRange([1, 1.0], 1), 2)) == 2

    def test_degenerate_interval_collapses(self):
        values = quantize_range(ContinuousRange(0.5, 0.5, 0.5), 10)
        assert values == [KnobValue.real(0.5)]

    def test_domain_configurations_are_distinct(self):
        intent = Intent(
            name="distinct",
            knobs={"alpha": ContinuousRange(0.5, 0.5, 0.5), "beta": DiscreteRange([1, 2], 1)},
            measures=["m"],
            constraints={},
            cost_or_value=lambda m: m[0],
        )
        domain = intent.domain()
        assert len(domain) == 2
        assert len({tuple(c.items()) for c in domain}) == len(domain)

    def test_requantizing_recomputes(self):
        intent = Intent(
            name="q",
            knobs={"alpha": ContinuousRange(0.0, 1.0, 0.0)},
            measures=["m"],
            constraints={},
            cost_or_value=lambda m: m[0],
            quantization_level=4,
        )
        assert len(intent.resolved_knobs["alpha"]) == 4
        assert len(intent.domain()) == 4
        intent.quantize(3)
        assert len(intent.resolved_knobs["alpha"]) == 3
        assert len(intent.domain()) == 3
        intent.quantize(3)
        assert len(intent.resolved_knobs["alpha"]) == 3


class TestDomain:
    def test_size_is_product_of_knob_sizes(self, two_knob_intent):
        domain = two_knob_intent.domain()
        assert len(domain) == 3 * 2
        assert len({tuple(sorted(c.as_python().items())) for c in domain}) == 6
        for configuration in domain:
            assert set(configuration) == {"size", "mode"}

    def test_order_sorts_names_and_first_knob_varies_fastest(self):
        domain = Domain({
            "b": [KnobValue.string("x"), KnobValue.string("y")],
            "a": [KnobValue.integer(1), KnobValue.integer(2)],
        })
        assert domain.knob_names == ("a", "b")
        assert [c.as_python() for c in domain] == [
            {"a": 1, "b": "x"},
            {"a": 2, "b": "x"},
            {"a": 1, "b": "y"},
            {"a": 2, "b": "y"},
        ]

    def test_index_mapping_is_stable_bijection(self, two_knob_intent):
        domain = two_knob_intent.domain()
        for i, configuration in enumerate(domain):
            assert configuration.index == i
            assert domain[i] is configuration
            assert domain.index_of(configuration) == i
        assert two_knob_intent.domain() is domain
        assert [c.as_python() for c in two_knob_intent.knob_space()] == [c.as_python() for c in domain]

    def test_foreign_configuration_is_rejected(self, two_knob_intent, identity_intent):
        domain = two_knob_intent.domain()
        with pytest.raises(UnknownConfigurationError):
            domain.index_of(identity_intent.domain()[0])
        with pytest.raises(UnknownConfigurationError):
            domain.index_of(6)
        with pytest.raises(UnknownConfigurationError):
            domain[-1]

    def test_oversized_domain_is_rejected(self):
        with pytest.raises(DomainTooLargeError):
            Intent(
                name="big",
                knobs={"a": DiscreteRange(range(100), 0), "b": DiscreteRange(range(100), 0)},
                measures=["m"],
                constraints={},
                cost_or_value=lambda m: m[0],
                max_configurations=1000,
            ).domain()

    def test_no_knobs_gives_empty_domain(self):
        intent = Intent(name="none", knobs={}, measures=["m"], constraints={}, cost_or_value=lambda m: m[0])
        assert len(intent.domain()) == 0


class TestIntent:
    def test_constraint_on_undeclared_measure_is_rejected(self):
        with pytest.raises(IntentValidationError):
            Intent(
                name="bad",
                knobs={"k": DiscreteRange([1], 1)},
                measures=["latency"],
                constraints={"energy": (1.0, "<=")},
                cost_or_value=lambda m: m[0],
            )

    def test_measures_must_be_unique_and_present(self):
        with pytest.raises(IntentValidationError):
            Intent(name="x", knobs={}, measures=[], constraints={}, cost_or_value=sum)
        with pytest.raises(IntentValidationError):
            Intent(name="x", knobs={}, measures=["a", "a"], constraints={}, cost_or_value=sum)

    def test_partition_keeps_bounds_and_order(self):
        intent = Intent(
            name="p",
            knobs={"k": DiscreteRange([1, 2], 1)},
            measures=["a", "b", "c", "d"],
            constraints={
                "a": (1.0, ConstraintType.LESS_OR_EQUAL),
                "b": (2.0, ">="),
                "c": (3.0, "=="),
                "d": (4.0, "<="),
            },
            cost_or_value=sum,
        )
        groups = intent.partition_constraints()
        assert groups.leq == [("a", 1.0), ("d", 4.0)]
        assert groups.geq == [("b", 2.0)]
        assert groups.eq == [("c", 3.0)]

    def test_measure_index(self, two_knob_intent):
        assert two_knob_intent.measure_index("error") == 1
        with pytest.raises(MeasureLookupError):
            two_knob_intent.measure_index("energy")
