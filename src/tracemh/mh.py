"""
Lightweight Metropolis-Hastings over execution traces.

A proposal picks one random choice of the current trace uniformly, redraws
it from its primitive and re-runs the rest of the program, reusing every
old value whose position lines up with a choice of the same support. The
acceptance ratio is

    min(1, (m * w_new * reuse_ratio) / (n * w_old))

where `m` and `n` are the old and new numbers of choices and `reuse_ratio`
is the product of ``p_new(x) / p_old(x)`` over the reused values. All
quantities are kept in log space.
"""

import math

from .coroutine import Done, Execution, Paused
from .sampler import RandomSource
from .snapshot import Cache, Snapshot, TraceState
from .types import Callable, Sequence
from .utils import logger


def mh_reuse(
    caches: Sequence[Cache],
    execution: Execution,
    source: RandomSource,
) -> tuple[float, TraceState]:
    """Run `execution` to completion, reusing cached values by position.

    At the k-th pause the k-th cache entry is consulted: its value is kept
    if its primitive has the same support as the paused one, otherwise a
    fresh value is drawn. The entry is consumed in both cases and never
    tested against a later pause. Entries beyond the last pause are ignored.

    Returns:
        The log reuse ratio and the resulting trace state.
    """
    log_reuse_ratio = 0.0
    snapshots: list[Snapshot] = []
    result = execution(source)
    while isinstance(result, Paused):
        primitive = result.primitive
        position = len(snapshots)
        cached = caches[position] if position < len(caches) else None
        if cached is not None and cached.primitive.support_equals(primitive):
            value = cached.value
            if cached.primitive != primitive:
                log_reuse_ratio += primitive.log_density(value)
                log_reuse_ratio -= cached.primitive.log_density(value)
        else:
            value = source.sample(primitive)
        snapshots.append(Snapshot(primitive, value, result.resume))
        result = result.resume(value)(source)

    # The loop only exits on `Done`.
    return log_reuse_ratio, TraceState(
        tuple(snapshots), result.log_weight, result.answer
    )


def mh_state(execution: Execution, source: RandomSource) -> TraceState:
    """Run `execution` once from scratch, recording every choice."""
    _, state = mh_reuse([], execution, source)
    return state


def mh_reset(
    state: TraceState | Callable[[RandomSource], TraceState],
) -> Execution:
    """Turn a trace state back into an execution that can be re-driven.

    The execution finishes immediately when the state has no choices and
    otherwise pauses at the first choice's primitive, resuming into that
    choice's continuation. The recorded values are forgotten; pass them as
    caches to `mh_reuse` to replay them.

    `state` may also be a computation producing the state, which is then
    run each time the execution is.
    """

    def reset(source: RandomSource) -> Done | Paused:
        current = state if isinstance(state, TraceState) else state(source)
        if not current.snapshots:
            return Done(current.answer, current.log_weight)
        first = current.snapshots[0]
        return Paused(first.primitive, first.resume)

    return reset


def mh_propose(
    state: TraceState,
    source: RandomSource,
) -> tuple[TraceState, float]:
    """Propose a new trace by redrawing one choice of `state`.

    Returns:
        The proposed trace state and the log acceptance probability.
    """
    m = state.num_sites
    if m == 0:
        return state, 0.0

    i = source.uniform_index(m)
    prefix, chosen, suffix = (
        state.snapshots[:i],
        state.snapshots[i],
        state.snapshots[i + 1 :],
    )
    caches = [snapshot.to_cache() for snapshot in suffix]
    value = source.sample(chosen.primitive)
    log_reuse_ratio, partial = mh_reuse(caches, chosen.resume(value), source)

    snapshots = (
        prefix + (Snapshot(chosen.primitive, value, chosen.resume),) + partial.snapshots
    )
    proposal = TraceState(snapshots, partial.log_weight, partial.answer)
    n = proposal.num_sites

    if state.log_weight == -math.inf:
        log_alpha = 0.0
    else:
        log_alpha = min(
            0.0,
            math.log(m)
            + proposal.log_weight
            + log_reuse_ratio
            - math.log(n)
            - state.log_weight,
        )
    logger.debug(
        "proposal at site %d of %d: %d sites after, log acceptance %.4f",
        i,
        m,
        n,
        log_alpha,
    )
    return proposal, log_alpha


def mh_transition(
    state: TraceState,
    source: RandomSource,
) -> tuple[TraceState, bool]:
    """One accept/reject step; also reports whether the proposal was accepted."""
    proposal, log_alpha = mh_propose(state, source)
    accept_prob = min(1.0, max(0.0, math.exp(log_alpha)))
    accept = source.bernoulli(accept_prob)
    logger.debug("%s with probability %.4f", "accept" if accept else "reject", accept_prob)
    return (proposal if accept else state), accept


def mh_kernel(state: TraceState, source: RandomSource) -> TraceState:
    """The Lightweight Metropolis-Hastings kernel.

    Every trace state carries all the information needed to compute its
    own acceptance ratio, so the kernel needs nothing but the state.
    """
    new_state, _ = mh_transition(state, source)
    return new_state
