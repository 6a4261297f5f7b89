"""
Tests for generator syntax and the derived program constructors.
"""

import math

import pytest

from tracemh.distributions import discrete, normal
from tracemh.mh import mh_state
from tracemh.program import gen
from tracemh.sampler import Sampler, Weighted
from tracemh.stdlib import bernoulli, categorical, condition, observe, uniform_discrete
from tracemh.trace import Trace
from tracemh.traced import Traced


@gen
def two_choices(y):
    x = yield Trace.primitive(normal(0.0, 1.0))
    k = yield Trace.primitive(discrete([1.0, 1.0]))
    yield observe(normal(x, 1.0), y)
    return x, k


class TestGen:
    def test_matches_explicit_binds(self, base_key):
        explicit = Trace.primitive(normal(0.0, 1.0)).bind(
            lambda x: Trace.primitive(discrete([1.0, 1.0])).bind(
                lambda k: observe(normal(x, 1.0), 0.3).map(lambda _: (x, k))
            )
        )
        generated_base = Weighted(Sampler(base_key))
        explicit_base = Weighted(Sampler(base_key))
        generated = two_choices(0.3).run(generated_base)
        expected = explicit.run(explicit_base)

        assert generated.values() == expected.values()
        assert generated.answer == expected.answer
        assert generated_base.log_weight == pytest.approx(explicit_base.log_weight)

    def test_continuations_replay_generator(self, scripted):
        state = two_choices(0.3).run(Weighted(scripted(samples=[0.5, 1])))
        assert state.answer == (0.5, 1)

        rest = mh_state(
            state.snapshots[0].resume(-1.0), Weighted(scripted(samples=[0]))
        )
        assert rest.answer == (-1.0, 0)
        assert rest.log_weight == pytest.approx(normal(-1.0, 1.0).log_density(0.3))

    def test_body_without_yields(self, sampler):
        @gen
        def constant():
            return 7
            yield

        assert constant().marginal(Weighted(sampler)) == 7

    def test_traced_layer(self, sampler):
        @gen(layer=Traced)
        def model():
            a = yield Traced.primitive(discrete([1.0, 1.0, 1.0]))
            yield Traced.factor(-float(a))
            return a

        program = model()
        state = program.run(sampler)

        assert isinstance(program, Traced)
        assert state.num_sites == 1
        assert state.log_weight == -float(state.answer)

    def test_yielding_other_layer_rejected(self):
        @gen
        def bad():
            yield Traced.pure(1)

        with pytest.raises(TypeError, match="expected a Trace program"):
            bad()

    def test_wraps_function(self):
        assert two_choices.__name__ == "two_choices"


class TestStdlib:
    def test_categorical_maps_index_to_value(self, sampler):
        state = categorical([("a", 1.0), ("b", 3.0)]).run(Weighted(sampler))

        assert state.snapshots[0].primitive == discrete([1.0, 3.0])
        assert state.answer == ["a", "b"][state.values()[0]]

    def test_categorical_respects_zero_weights(self, sampler):
        program = categorical([("a", 1.0), ("b", 0.0)])
        assert all(program.marginal(Weighted(sampler)) == "a" for _ in range(10))

    def test_categorical_needs_values(self):
        with pytest.raises(ValueError, match="at least one value"):
            categorical([])

    def test_uniform_discrete(self, sampler):
        state = uniform_discrete(["x", "y", "z"]).run(Weighted(sampler))
        assert state.answer in ("x", "y", "z")
        assert state.snapshots[0].primitive == discrete([1.0, 1.0, 1.0])

    def test_bernoulli_returns_bool(self, sampler):
        assert bernoulli(1.0).marginal(Weighted(sampler)) is True
        assert bernoulli(0.0).marginal(Weighted(sampler)) is False

    def test_observe_adds_log_density(self, sampler):
        base = Weighted(sampler)
        state = observe(normal(0.0, 1.0), 0.5).run(base)

        expected = normal(0.0, 1.0).log_density(0.5)
        assert state.num_sites == 0
        assert state.log_weight == pytest.approx(expected)
        assert base.log_weight == pytest.approx(expected)

    def test_condition(self, sampler):
        assert condition(True).run(Weighted(sampler)).log_weight == 0.0
        assert condition(False).run(Weighted(sampler)).log_weight == -math.inf

    def test_inner_layer(self, sampler):
        program = bernoulli(0.3, layer=Traced)
        assert isinstance(program, Traced)
        assert isinstance(program.run(sampler).answer, bool)
