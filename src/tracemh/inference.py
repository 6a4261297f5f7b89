"""
Chain drivers and diagnostics for Lightweight Metropolis-Hastings.

`chain` runs a `Trace` program once (forwarding its factors to a fresh
`Weighted` base effect per chain) and then applies the MH kernel
repeatedly, recording the answer after every step. R-hat and a lag-1
effective sample size are computed when the answers are scalars and more
than one chain was run.
"""

from dataclasses import dataclass

import jax.numpy as jnp
from tqdm.auto import tqdm

from .sampler import Sampler, Weighted
from .trace import ForwardingContext, Trace, transition
from .types import Any, PRNGKey, Sequence
from .utils import log_info


def compute_rhat(samples: jnp.ndarray) -> float:
    """
    Compute potential scale reduction factor (R-hat) for MCMC convergence.

    Args:
        samples: Array of shape (n_chains, n_samples)

    Returns:
        R-hat statistic; NaN for a single chain.
    """
    n_chains, n_samples = samples.shape
    if n_chains < 2:
        return float("nan")

    chain_means = jnp.mean(samples, axis=1)
    B = n_samples * jnp.var(chain_means, ddof=1)
    W = jnp.mean(jnp.var(samples, axis=1, ddof=1))
    var_plus = ((n_samples - 1) * W + B) / n_samples
    return float(jnp.sqrt(var_plus / W))


def compute_ess(samples: jnp.ndarray, kind: str = "bulk") -> float:
    """
    Effective sample size from the lag-1 autocorrelation, ``N / (1 + 2 rho)``.

    Args:
        samples: Array of shape (n_chains, n_samples)
        kind: "bulk" uses all samples, "tail" the spread between the 5% and
            95% quantiles of each chain.
    """
    n_chains, n_samples = samples.shape
    if kind == "tail":
        quantiles = jnp.quantile(samples, jnp.array([0.05, 0.95]), axis=1)
        flat = (quantiles[1] - quantiles[0]).reshape(-1)
        total = n_samples
    elif kind == "bulk":
        flat = samples.reshape(-1)
        total = n_chains * n_samples
    else:
        raise ValueError(f"Unknown ESS kind: {kind}")

    rho = jnp.corrcoef(flat[:-1], flat[1:])[0, 1]
    rho = jnp.clip(jnp.nan_to_num(rho), 0.0, 0.99)
    return float(total / (1 + 2 * rho))


@dataclass
class MCMCResult:
    """Answers and accept decisions of one or more MH chains.

    `answers[c]` and `accepts[c]` hold the kept steps of chain `c` (after
    burn-in and thinning).
    """

    answers: list[list[Any]]
    accepts: jnp.ndarray
    acceptance_rate: float
    n_steps: int
    n_chains: int
    log_weights: list[float]

    rhat: float | None = None
    ess_bulk: float | None = None
    ess_tail: float | None = None

    def flat_answers(self) -> list[Any]:
        return [answer for answers in self.answers for answer in answers]


def _is_scalar(answer: Any) -> bool:
    return isinstance(answer, (int, float)) or (
        hasattr(answer, "shape") and answer.shape == ()
    )


def chain(
    trace: Trace,
    key: PRNGKey | int,
    n_steps: int,
    *,
    burn_in: int = 0,
    thin: int = 1,
    n_chains: int = 1,
    progress_bar: bool = False,
) -> MCMCResult:
    """
    Run Lightweight MH chains on `trace`.

    Args:
        trace: The program to sample from.
        key: PRNG key (or integer seed); every chain gets its own split.
        n_steps: Total MH steps per chain, including burn-in.
        burn_in: Number of initial steps to discard.
        thin: Keep every `thin`-th step after burn-in.
        n_chains: Number of independent chains.
        progress_bar: Show a tqdm progress bar per chain.

    Returns:
        MCMCResult with answers, acceptances and diagnostics.
    """
    if n_steps < 0 or burn_in < 0 or burn_in > n_steps:
        raise ValueError(
            f"Need 0 <= burn_in <= n_steps, got burn_in={burn_in}, n_steps={n_steps}"
        )
    if thin < 1 or n_chains < 1:
        raise ValueError(f"thin and n_chains must be positive, got {thin}, {n_chains}")

    kept = range(burn_in, n_steps, thin)

    all_answers, all_accepts, log_weights = [], [], []
    for index, sampler in enumerate(Sampler(key).split(n_chains)):
        base = Weighted(sampler)
        context = ForwardingContext(base)
        state = trace.run(context)
        log_weights.append(base.log_weight)

        answers, accepts = [], []
        steps = tqdm(
            range(n_steps),
            desc=f"LMH chain {index}",
            disable=not progress_bar,
            position=0,
        )
        for step in steps:
            state, accepted = transition(state, context)
            if step in kept:
                answers.append(state.answer)
                accepts.append(accepted)

        rate = sum(accepts) / len(accepts) if accepts else float("nan")
        log_info(
            "chain %d: %d steps, %d kept, acceptance rate %.3f",
            index,
            n_steps,
            len(answers),
            rate,
        )
        all_answers.append(answers)
        all_accepts.append(accepts)

    accepts = jnp.array(all_accepts, dtype=bool).reshape(n_chains, len(kept))
    result = MCMCResult(
        answers=all_answers,
        accepts=accepts,
        acceptance_rate=float(jnp.mean(accepts)) if len(kept) else float("nan"),
        n_steps=len(kept),
        n_chains=n_chains,
        log_weights=log_weights,
    )

    if n_chains > 1 and len(kept) > 1 and all(map(_is_scalar, result.flat_answers())):
        samples = jnp.array(all_answers, dtype=float)
        result.rhat = compute_rhat(samples)
        result.ess_bulk = compute_ess(samples, kind="bulk")
        result.ess_tail = compute_ess(samples, kind="tail")
    return result


def empirical_marginal(values: Sequence[Any], support: Sequence[Any]) -> jnp.ndarray:
    """Frequency of each element of `support` among `values`."""
    counts = jnp.array([sum(1 for value in values if value == s) for s in support])
    return counts / max(len(values), 1)
