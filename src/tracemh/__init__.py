from beartype import BeartypeConf
from beartype.claw import beartype_this_package

conf = BeartypeConf(
    is_color=True,
    is_debug=False,
    is_pep484_tower=True,
    violation_type=TypeError,
)

beartype_this_package(conf=conf)

from .coroutine import Done, Execution, Paused, done, paused, then
from .distributions import (
    Continuous,
    Discrete,
    Primitive,
    beta,
    discrete,
    exponential,
    gamma,
    laplace,
    normal,
    uniform,
)
from .inference import MCMCResult, chain, compute_ess, compute_rhat, empirical_marginal
from .mh import mh_kernel, mh_propose, mh_reset, mh_reuse, mh_state, mh_transition
from .program import gen
from .sampler import Effect, RandomSource, Sampler, Weighted
from .snapshot import Cache, Snapshot, TraceState
from .stdlib import bernoulli, categorical, condition, observe, uniform_discrete
from .trace import ForwardingContext, Trace, transition
from .traced import Traced
from .utils import setup_logging

__all__ = [
    "Cache",
    "Continuous",
    "Discrete",
    "Done",
    "Effect",
    "Execution",
    "ForwardingContext",
    "MCMCResult",
    "Paused",
    "Primitive",
    "RandomSource",
    "Sampler",
    "Snapshot",
    "Trace",
    "TraceState",
    "Traced",
    "Weighted",
    "bernoulli",
    "beta",
    "categorical",
    "chain",
    "compute_ess",
    "compute_rhat",
    "condition",
    "discrete",
    "done",
    "empirical_marginal",
    "exponential",
    "gamma",
    "gen",
    "laplace",
    "mh_kernel",
    "mh_propose",
    "mh_reset",
    "mh_reuse",
    "mh_state",
    "mh_transition",
    "normal",
    "observe",
    "paused",
    "setup_logging",
    "then",
    "transition",
    "uniform",
    "uniform_discrete",
]
