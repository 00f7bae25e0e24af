"""
Test: Controllable Function

Execution wrapper end to end: profiling, controlled calls, latency injection,
history recording and intent reloads.
"""

import pytest

from adapt.engine import ControllableFunction, ControllerConfig, FunctionConfig
from adapt.errors import ContractViolation, MeasureLookupError
from adapt.intent import ContinuousRange, DiscreteRange, Intent, OptimizationType


def knob_as_measure(data, configuration):
    level = configuration["level"].as_int()
    return data * level, {"quality": float(level)}


class TestEndToEnd:
    def test_identity_objective_settles_on_largest_knob(self, identity_intent, clock):
        fn = ControllableFunction(knob_as_measure, "identity", identity_intent, clock=clock)
        fn.exhaustive_profiling_with_fixed_inputs(1)

        assert [c.index for c in fn.controller.compute_schedule()] == [2] * 20
        assert all(c["level"].as_int() == 3 for c in fn.controller.schedule)

    def test_execute_returns_body_output(self, identity_intent, clock):
        fn = ControllableFunction(knob_as_measure, "identity", identity_intent, clock=clock)
        fn.exhaustive_profiling_with_fixed_inputs(1)
        assert [fn.execute(10) for _ in range(25)] == [30] * 25

    def test_profiling_averages_runs(self, identity_intent, clock):
        calls = {}

        def noisy(data, configuration):
            level = configuration["level"].as_int()
            calls[level] = calls.get(level, 0) + 1
            return None, {"quality": float(level * calls[level])}

        fn = ControllableFunction(noisy, "noisy", identity_intent, clock=clock)
        fn.exhaustive_profiling_with_fixed_inputs(None, runs=3)
        # level * (1 + 2 + 3) / 3
        assert fn.predictor.predict(0)["quality"] == pytest.approx(2.0)
        assert fn.predictor.predict(2)["quality"] == pytest.approx(6.0)
        assert calls == {1: 3, 2: 3, 3: 3}

    def test_profiling_follows_predictor_domain(self, clock):
        intent = Intent(
            name="requantized",
            knobs={"alpha": ContinuousRange(0.0, 1.0, 0.0)},
            measures=["quality"],
            constraints={},
            cost_or_value=lambda m: m[0],
            quantization_level=4,
        )
        seen = []

        def body(data, configuration):
            seen.append(configuration.index)
            return None, {"quality": 1.0 + configuration["alpha"].as_float()}

        fn = ControllableFunction(body, "requantized", intent, clock=clock)
        intent.quantize(3)
        fn.exhaustive_profiling_with_fixed_inputs(None)
        assert seen == [0, 1, 2, 3]
        assert fn.predictor.predict(3)["quality"] == pytest.approx(2.0)

    def test_profiling_needs_a_run(self, identity_intent):
        fn = ControllableFunction(knob_as_measure, "identity", identity_intent)
        with pytest.raises(ContractViolation):
            fn.exhaustive_profiling_with_fixed_inputs(1, runs=0)


class TestMeasurements:
    @pytest.fixture
    def latency_intent(self):
        return Intent(
            name="latency",
            knobs={"factor": ContinuousRange(0.5, 1.0, 1.0)},
            measures=["latency", "error"],
            constraints={},
            cost_or_value=lambda m: m[1],
            optimization_type=OptimizationType.MINIMIZE,
            quantization_level=2,
        )

    def test_latency_overwrites_body_value(self, latency_intent, clock):
        fn = ControllableFunction(
            lambda data, c: (data, {"latency": 99.0, "error": 1.0}),
            "latency",
            latency_intent,
            FunctionConfig(save_measure_values=True),
            clock=clock,
        )
        fn.execute(0)
        assert fn.history.records == [{"latency": clock.step, "error": 1.0}]

    def test_update_uses_call_midpoint(self, latency_intent, clock):
        fn = ControllableFunction(lambda data, c: (data, {"error": 1.0}), "latency", latency_intent, clock=clock)
        start = clock.now
        fn.execute(0)
        assert fn.predictor.last_sample_time == pytest.approx(start + clock.step / 2)

    def test_missing_measure_is_a_lookup_failure(self, latency_intent, clock):
        fn = ControllableFunction(lambda data, c: (data, {}), "latency", latency_intent, clock=clock)
        with pytest.raises(MeasureLookupError):
            fn.execute(0)

    def test_history_disabled_by_default(self, identity_intent, clock):
        fn = ControllableFunction(knob_as_measure, "identity", identity_intent, clock=clock)
        fn.execute(1)
        assert len(fn.history) == 0

    def test_history_frame(self, identity_intent, clock):
        fn = ControllableFunction(
            knob_as_measure, "identity", identity_intent, FunctionConfig(save_measure_values=True), clock=clock
        )
        fn.exhaustive_profiling_with_fixed_inputs(1)
        for _ in range(5):
            fn.execute(1)
        frame = fn.history.to_frame()
        assert list(frame.columns) == ["quality"]
        assert len(frame) == 5
        assert frame.index[0] == 1
        assert fn.history.series("quality") == [3.0] * 5


class TestReload:
    def test_load_intent_rebuilds_components(self, identity_intent, clock):
        fn = ControllableFunction(
            knob_as_measure, "identity", identity_intent,
            FunctionConfig(save_measure_values=True, controller=ControllerConfig(window_size=3)),
            clock=clock,
        )
        fn.exhaustive_profiling_with_fixed_inputs(1)
        fn.execute(1)
        old_predictor, old_controller = fn.predictor, fn.controller

        smaller = Intent(
            name="smaller",
            knobs={"level": DiscreteRange([1, 2], 1)},
            measures=["quality"],
            constraints={},
            cost_or_value=lambda m: m[0],
            optimization_type=OptimizationType.MINIMIZE,
        )
        fn.load_intent(smaller)

        assert fn.intent is smaller
        assert fn.predictor is not old_predictor
        assert fn.controller is not old_controller
        assert len(fn.predictor.domain) == 2
        assert len(fn.history) == 0
        assert fn.controller.window_size == 3

        fn.exhaustive_profiling_with_fixed_inputs(1)
        assert fn.execute(10) == 10
