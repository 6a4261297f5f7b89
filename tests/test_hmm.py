"""
Test the HMM example model and its exact posterior marginals.

Exact marginals are checked against brute-force enumeration and against
TensorFlow Probability's HiddenMarkovModel; Lightweight MH on the full
sixteen-observation sequence is then checked against the exact marginals.
"""

import itertools
import math

import jax.numpy as jnp
import pytest
import tensorflow_probability.substrates.jax as tfp

from tracemh.extras.hmm import (
    STATES,
    TRANSITIONS,
    VALUES,
    emission,
    exact_marginals,
    forward_backward,
    hmm,
)
from tracemh.inference import chain, empirical_marginal
from tracemh.sampler import Sampler, Weighted
from tracemh.traced import Traced

tfd = tfp.distributions


def enumerate_marginals(values):
    """Posterior marginals of every latent state by summing over all paths."""
    K = len(STATES)
    joint = {}
    for path in itertools.product(range(K), repeat=len(values) + 1):
        log_p = -math.log(K)
        for prev, nxt in zip(path, path[1:]):
            log_p += math.log(TRANSITIONS[STATES[prev]][nxt])
        for state, y in zip(path[1:], values):
            log_p += emission(STATES[state]).log_density(y)
        joint[path] = math.exp(log_p)

    total = sum(joint.values())
    marginals = [[0.0] * K for _ in range(len(values) + 1)]
    for path, p in joint.items():
        for t, k in enumerate(path):
            marginals[t][k] += p / total
    return jnp.array(marginals), math.log(total)


class TestExactInference:
    def test_matches_enumeration(self):
        values = VALUES[:3]
        expected, log_marginal = enumerate_marginals(values)

        assert jnp.allclose(exact_marginals(values), expected, atol=1e-5)
        _, _, fb_log_marginal = forward_backward(values)
        assert float(fb_log_marginal) == pytest.approx(log_marginal, abs=1e-4)

    def test_matches_tfp_hidden_markov_model(self):
        transition_matrix = jnp.array([TRANSITIONS[s] for s in STATES])
        # The first observation is emitted by the state after the initial one.
        initial_probs = jnp.full(len(STATES), 1.0 / len(STATES)) @ transition_matrix
        tfp_hmm = tfd.HiddenMarkovModel(
            initial_distribution=tfd.Categorical(probs=initial_probs),
            transition_distribution=tfd.Categorical(probs=transition_matrix),
            observation_distribution=tfd.Normal(
                loc=jnp.array(STATES, dtype=float), scale=1.0
            ),
            num_steps=len(VALUES),
        )
        observations = jnp.array(VALUES)

        _, _, log_marginal = forward_backward(VALUES)
        assert jnp.allclose(log_marginal, tfp_hmm.log_prob(observations), atol=1e-4)

        tfp_marginals = tfp_hmm.posterior_marginals(observations).probs_parameter()
        assert jnp.allclose(exact_marginals(VALUES)[1:], tfp_marginals, atol=1e-4)

    def test_rows_are_distributions(self):
        marginals = exact_marginals()
        assert marginals.shape == (len(VALUES) + 1, len(STATES))
        assert jnp.allclose(marginals.sum(axis=1), 1.0, atol=1e-5)
        assert jnp.all(marginals >= 0.0)


class TestModel:
    def test_one_choice_per_state(self, base_key):
        base = Weighted(Sampler(base_key))
        state = hmm().run(base)

        assert state.num_sites == len(VALUES) + 1
        assert len(state.answer) == len(VALUES) + 1
        assert set(state.answer) <= set(STATES)

        expected = sum(
            emission(x).log_density(y) for x, y in zip(state.answer[1:], VALUES)
        )
        assert state.log_weight == pytest.approx(expected, rel=1e-5)
        assert base.log_weight == pytest.approx(expected, rel=1e-5)

    def test_answer_follows_recorded_choices(self, base_key):
        state = hmm(VALUES[:4]).run(Weighted(Sampler(base_key)))
        assert state.answer == [STATES[index] for index in state.values()]

    def test_inner_layer(self, base_key):
        program = hmm(VALUES[:4], layer=Traced)
        assert isinstance(program, Traced)
        assert program.run(Sampler(base_key)).num_sites == 5


@pytest.mark.slow
def test_initial_state_posterior(base_key):
    """Pools 16 chains of 10,000 steps each, 160,000 kernel steps in total."""
    result = chain(hmm(), base_key, 10_000, burn_in=1_000, n_chains=16)
    initial_states = [answer[0] for answer in result.flat_answers()]

    estimate = empirical_marginal(initial_states, STATES)
    exact = exact_marginals()[0]
    assert jnp.allclose(estimate, exact, atol=0.02), (estimate, exact)
