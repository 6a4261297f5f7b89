"""
The outer trace layer: traced programs that report their weight once.

A `Trace` is a `Traced` program whose effects run against a
`ForwardingContext`, a small record ``{base, forwarding, log_weight}``
threaded through every execution. Each `factor` updates the weight kept in
the trace state, is recorded in the context, and is passed on to the base
effect while forwarding is enabled.

The first execution of a program forwards, so an importance-sampling driver
sitting on the base effect sees the correct incremental weight. MH steps
run with forwarding suspended; whatever still reached the base effect
during a step is multiplied back out afterwards, so repeated MH steps never
change the externally observed weight.

This is only sound when the base effect does not care about the order in
which factors arrive relative to its other effects, which holds for
`Weighted`.
"""

from contextlib import contextmanager
from dataclasses import dataclass

from .distributions import Primitive
from .mh import mh_transition
from .sampler import Effect
from .snapshot import TraceState
from .traced import Opaque, Traced
from .types import Any, Callable

# A computation over the base effect.
Computation = Callable[[Effect], Any]


@dataclass
class ForwardingContext(Effect):
    """Weight-recording wrapper around the base effect.

    Attributes:
        base: The underlying effect.
        forwarding: Whether factors currently reach `base`.
        log_weight: Every factor seen, whether forwarded or not.
        forwarded: The part of `log_weight` that reached `base`.
    """

    base: Effect
    forwarding: bool = True
    log_weight: float = 0.0
    forwarded: float = 0.0

    def sample(self, primitive: Primitive) -> Any:
        return self.base.sample(primitive)

    def uniform_index(self, n: int) -> int:
        return self.base.uniform_index(n)

    def bernoulli(self, p: float) -> bool:
        return self.base.bernoulli(p)

    def factor(self, log_weight: float) -> None:
        self.log_weight += log_weight
        if self.forwarding:
            self.base.factor(log_weight)
            self.forwarded += log_weight

    @contextmanager
    def suspended(self):
        """Suspend forwarding, then cancel any net weight the base received."""
        forwarding, forwarded = self.forwarding, self.forwarded
        self.forwarding = False
        try:
            yield self
        finally:
            self.forwarding = forwarding
            net = self.forwarded - forwarded
            if net != 0.0:
                self.base.factor(-net)
                self.forwarded = forwarded

    @contextmanager
    def rebased(self, base: Effect):
        """Temporarily run against a different base effect."""
        original = self.base
        self.base = base
        try:
            yield self
        finally:
            self.base = original


def _context(effect: Effect) -> ForwardingContext:
    return effect if isinstance(effect, ForwardingContext) else ForwardingContext(effect)


def transition(state: TraceState, context: ForwardingContext) -> tuple[TraceState, bool]:
    """One MH step that leaves the weight seen by the base effect unchanged."""
    with context.suspended():
        return mh_transition(state, context)


@dataclass(frozen=True)
class Trace:
    """A probabilistic program that keeps its execution trace.

    Example:
        >>> from tracemh import Trace, Weighted, Sampler, normal
        >>> model = Trace.primitive(normal(0.0, 1.0)).bind(
        ...     lambda x: Trace.factor(-x * x).map(lambda _: x)
        ... )
        >>> x = model.mh_step(100).marginal(Weighted(Sampler(0)))
    """

    traced: Traced

    ################
    # Constructors #
    ################

    @staticmethod
    def pure(value: Any) -> "Trace":
        return Trace(Traced.pure(value))

    @staticmethod
    def primitive(primitive: Primitive) -> "Trace":
        return Trace(Traced.primitive(primitive))

    @staticmethod
    def factor(log_weight: float) -> "Trace":
        log_weight = float(log_weight)
        forward = Traced.lift(lambda context: context.factor(log_weight))
        return Trace(Traced.factor(log_weight).then(forward))

    @staticmethod
    def lift(computation: Computation) -> "Trace":
        """Run `computation` against the base effect.

        The computation sees the forwarding context, which delegates draws
        to the base effect and forwards its factors only while forwarding
        is enabled.
        """
        return Trace(Traced.lift(computation))

    ###############
    # Combinators #
    ###############

    def bind(self, f: Callable[[Any], "Trace"]) -> "Trace":
        return Trace(self.traced.bind(lambda value: f(value).traced))

    def map(self, f: Callable[[Any], Any]) -> "Trace":
        return Trace(self.traced.map(f))

    def then(self, other: "Trace") -> "Trace":
        return Trace(self.traced.then(other.traced))

    ##############
    # Operations #
    ##############

    def map_underlying(
        self,
        transform: Callable[[Computation], Computation],
    ) -> "Trace":
        """Apply `transform` to the base-effect computation of this run only.

        The trace structure is untouched and MH re-executions do not see the
        transform.
        """
        traced = self.traced

        def run(context: ForwardingContext, log_weight: float) -> TraceState:
            def on_base(base: Effect) -> TraceState:
                with context.rebased(base):
                    return traced.run(context, log_weight)

            return transform(on_base)(context.base)

        return Trace(Opaque(run))

    def mh_step(self, n_steps: int = 1) -> "Trace":
        """Follow every run with `n_steps` Lightweight MH steps.

        Factors applied while stepping are not passed to the base effect.
        """
        if n_steps < 0:
            raise ValueError(f"n_steps must be nonnegative, got {n_steps}")
        traced = self.traced

        def run(context: ForwardingContext, log_weight: float) -> TraceState:
            state = traced.run(context, log_weight)
            for _ in range(n_steps):
                state, _ = transition(state, context)
            return state

        return Trace(Opaque(run))

    def run(self, effect: Effect) -> TraceState:
        """Run once, forwarding factors to `effect`, and return the trace."""
        return self.traced.run(_context(effect))

    def marginal(self, effect: Effect) -> Any:
        """Run once and discard the trace, keeping only the answer."""
        return self.run(effect).answer


pure = Trace.pure
primitive = Trace.primitive
factor = Trace.factor
lift = Trace.lift
