"""
The inner trace layer.

A `Traced` program is an immutable description of a probabilistic
computation. Running it with a random source and an incoming log weight
executes it once and returns a `TraceState` that records every random
choice together with a continuation reaching to the end of the *whole*
program. Factors only change the weight carried in the state; nothing is
passed to the random source.

Programs are interpreted two ways:

* `Traced.run` executes eagerly, drawing every choice from the source.
* `Traced.execute` describes the same program as a suspension-based
  `Execution` which pauses at each choice instead of drawing it. This is
  what snapshot continuations use to re-enter the rest of a program
  during MH re-execution. Programs built from opaque computations (for
  example MH-stepped programs) fall back to running eagerly and resetting
  the result with `mh_reset`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .coroutine import Done, Execution, done, paused, then
from .distributions import Primitive
from .mh import mh_kernel, mh_reset
from .sampler import RandomSource
from .snapshot import Snapshot, TraceState
from .types import Any, Callable

# A computation over the underlying effect.
Computation = Callable[[RandomSource], Any]


class Traced(ABC):
    @abstractmethod
    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        raise NotImplementedError

    def execute(self, log_weight: float) -> Execution:
        return mh_reset(lambda source: self.run(source, log_weight))

    ################
    # Constructors #
    ################

    @staticmethod
    def pure(value: Any) -> "Traced":
        return Pure(value)

    @staticmethod
    def primitive(primitive: Primitive) -> "Traced":
        return Draw(primitive)

    @staticmethod
    def factor(log_weight: float) -> "Traced":
        return Factor(float(log_weight))

    @staticmethod
    def lift(computation: Computation) -> "Traced":
        return Lift(computation)

    ###############
    # Combinators #
    ###############

    def bind(self, f: Callable[[Any], "Traced"]) -> "Traced":
        return Bind(self, f)

    def map(self, f: Callable[[Any], Any]) -> "Traced":
        return Bind(self, lambda value: Pure(f(value)))

    def then(self, other: "Traced") -> "Traced":
        return Bind(self, lambda _: other)

    def map_underlying(
        self,
        transform: Callable[[Computation], Computation],
    ) -> "Traced":
        """Transform the underlying computation of this run.

        Only the current execution is affected; continuations recorded in
        the resulting trace, and hence every MH re-execution, run without
        the transform.
        """

        def run(source: RandomSource, log_weight: float) -> TraceState:
            return transform(lambda inner: self.run(inner, log_weight))(source)

        return Opaque(run)

    def mh_step(self, n_steps: int = 1) -> "Traced":
        """Follow every run of this program with `n_steps` MH kernel steps."""
        if n_steps < 0:
            raise ValueError(f"n_steps must be nonnegative, got {n_steps}")

        def run(source: RandomSource, log_weight: float) -> TraceState:
            state = self.run(source, log_weight)
            for _ in range(n_steps):
                state = mh_kernel(state, source)
            return state

        return Opaque(run)

    def marginal(self, source: RandomSource) -> Any:
        """Run once and discard the trace."""
        return self.run(source).answer


@dataclass(frozen=True)
class Pure(Traced):
    value: Any

    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        return TraceState((), log_weight, self.value)

    def execute(self, log_weight: float) -> Execution:
        return done(self.value, log_weight)


@dataclass(frozen=True)
class Draw(Traced):
    distribution: Primitive

    def _resume(self, log_weight: float) -> Callable[[Any], Execution]:
        return lambda value: done(value, log_weight)

    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        value = source.sample(self.distribution)
        snapshot = Snapshot(self.distribution, value, self._resume(log_weight))
        return TraceState((snapshot,), log_weight, value)

    def execute(self, log_weight: float) -> Execution:
        return paused(self.distribution, self._resume(log_weight))


@dataclass(frozen=True)
class Factor(Traced):
    log_weight: float

    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        return TraceState((), log_weight + self.log_weight, None)

    def execute(self, log_weight: float) -> Execution:
        return done(None, log_weight + self.log_weight)


@dataclass(frozen=True)
class Lift(Traced):
    computation: Computation

    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        return TraceState((), log_weight, self.computation(source))

    def execute(self, log_weight: float) -> Execution:
        def execution(source: RandomSource) -> Done:
            return Done(self.computation(source), log_weight)

        return execution


@dataclass(frozen=True)
class Bind(Traced):
    """Sequencing: run `program`, then the program `f` builds from its answer.

    Every snapshot recorded by `program` has its continuation extended into
    `f`, since what "the rest of the program" is depends on the values the
    left part produces in each re-execution.
    """

    program: Traced
    f: Callable[[Any], Traced]

    def _continue(self, execution: Execution) -> Execution:
        return then(execution, lambda value, log_weight: self.f(value).execute(log_weight))

    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        left = self.program.run(source, log_weight)
        right = self.f(left.answer).run(source, left.log_weight)
        snapshots = tuple(
            snapshot.map_resume(self._continue) for snapshot in left.snapshots
        )
        return TraceState(snapshots + right.snapshots, right.log_weight, right.answer)

    def execute(self, log_weight: float) -> Execution:
        return self._continue(self.program.execute(log_weight))


@dataclass(frozen=True)
class Opaque(Traced):
    """A program given only by its run function."""

    run_fn: Callable[[RandomSource, float], TraceState]

    def run(self, source: RandomSource, log_weight: float = 0.0) -> TraceState:
        return self.run_fn(source, log_weight)


pure = Traced.pure
primitive = Traced.primitive
factor = Traced.factor
lift = Traced.lift
