"""
Hidden Markov model with Gaussian emissions, plus exact posterior marginals.

The model has latent states (-1, 0, 1), a uniform initial state, a fixed
transition matrix and ``Normal(state, 1)`` emissions. It is built by
folding one step per observation onto the initial state, so each step is
sequenced after everything before it. Exact marginals come from
forward-backward in log space and are used to check approximate inference.
"""

from functools import partial

import jax
import jax.numpy as jnp
from tensorflow_probability.substrates import jax as tfp

from ..distributions import Continuous, normal
from ..program import Layer
from ..stdlib import categorical, observe, uniform_discrete
from ..trace import Trace
from ..types import Sequence

tfd = tfp.distributions

STATES: tuple[int, ...] = (-1, 0, 1)

VALUES: tuple[float, ...] = (
    0.9, 0.8, 0.7, 0.0, -0.025, 5.0, 2.0, 0.1,
    0.0, 0.13, 0.45, 6.0, 0.2, 0.3, -1.0, -1.0,
)  # fmt: skip

TRANSITIONS: dict[int, tuple[float, ...]] = {
    -1: (0.1, 0.4, 0.5),
    0: (0.2, 0.6, 0.2),
    1: (0.15, 0.7, 0.15),
}


def transition(state: int, *, layer: Layer = Trace):
    return categorical(list(zip(STATES, TRANSITIONS[state])), layer=layer)


def emission(state: int) -> Continuous:
    return normal(float(state), 1.0)


def _expand(rest: list[int], y: float, layer: Layer):
    return transition(rest[0], layer=layer).bind(
        lambda x: observe(emission(x), y, layer=layer).map(lambda _: [x, *rest])
    )


def hmm(values: Sequence[float] = VALUES, *, layer: Layer = Trace):
    """The HMM conditioned on `values`.

    Returns:
        A program whose answer is the latent state sequence, initial state
        first (``len(values) + 1`` states).
    """
    program = uniform_discrete(STATES, layer=layer).map(lambda x: [x])
    for y in values:
        program = program.bind(partial(_expand, y=float(y), layer=layer))
    return program.map(lambda states: list(reversed(states)))


###################
# Exact inference #
###################


def _log_parameters(values: Sequence[float]):
    log_initial = jnp.full(len(STATES), -jnp.log(len(STATES)))
    log_transition = jnp.log(jnp.array([TRANSITIONS[s] for s in STATES]))
    locs = jnp.array(STATES, dtype=float)
    log_emission = tfd.Normal(locs[None, :], 1.0).log_prob(
        jnp.array(values, dtype=float)[:, None]
    )
    return log_initial, log_transition, log_emission


def forward_backward(values: Sequence[float] = VALUES):
    """
    Forward-backward over the latent chain ``x_0 .. x_T``.

    ``x_0`` has no observation; ``values[t]`` is emitted by ``x_{t+1}``.

    Returns:
        log_alpha: Unnormalised forward messages, shape (T + 1, K)
        log_beta: Backward messages, shape (T + 1, K)
        log_marginal: Log marginal likelihood of `values`
    """
    log_initial, log_transition, log_emission = _log_parameters(values)

    def forward_step(prev_alpha, log_em):
        # log α_t(j) = log p(y_t | j) + logsumexp_i(log α_{t-1}(i) + log T(i, j))
        alpha = log_em + jax.scipy.special.logsumexp(
            prev_alpha[:, None] + log_transition, axis=0
        )
        return alpha, alpha

    def backward_step(next_beta, log_em):
        # log β_t(i) = logsumexp_j(log T(i, j) + log p(y_{t+1} | j) + log β_{t+1}(j))
        beta = jax.scipy.special.logsumexp(
            log_transition + (log_em + next_beta)[None, :], axis=1
        )
        return beta, beta

    _, alphas = jax.lax.scan(forward_step, log_initial, log_emission)
    log_alpha = jnp.concatenate([log_initial[None, :], alphas])

    final_beta = jnp.zeros(len(STATES))
    _, betas = jax.lax.scan(backward_step, final_beta, log_emission, reverse=True)
    log_beta = jnp.concatenate([betas, final_beta[None, :]])

    log_marginal = jax.scipy.special.logsumexp(log_alpha[-1])
    return log_alpha, log_beta, log_marginal


def exact_marginals(values: Sequence[float] = VALUES) -> jnp.ndarray:
    """Posterior marginals ``p(x_t = STATES[k] | values)``, shape (T + 1, K)."""
    log_alpha, log_beta, _ = forward_backward(values)
    log_post = log_alpha + log_beta
    log_post = log_post - jax.scipy.special.logsumexp(log_post, axis=1, keepdims=True)
    return jnp.exp(log_post)
