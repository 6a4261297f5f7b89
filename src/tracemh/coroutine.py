"""Suspension-based execution of probabilistic programs.

An `Execution` is a callable taking a random source and returning either

* `Done(answer, log_weight)`: the program finished, having accumulated
  `log_weight` from its factors, or
* `Paused(primitive, resume)`: the program reached a random choice and
  waits for a value; ``resume(value)`` is the execution of the rest.

Only primitive draws suspend. A pause is an ordinary return value and
resumption is ordinary function application, so a paused program can be
resumed any number of times with different values.
"""

from dataclasses import dataclass

from .distributions import Primitive
from .sampler import RandomSource
from .types import Any, Callable


@dataclass(frozen=True)
class Done:
    answer: Any
    log_weight: float


@dataclass(frozen=True)
class Paused:
    primitive: Primitive
    resume: Callable[[Any], "Execution"]


Execution = Callable[[RandomSource], Done | Paused]


def done(answer: Any, log_weight: float) -> Execution:
    """An execution that finishes immediately."""

    def execution(source: RandomSource) -> Done:
        return Done(answer, log_weight)

    return execution


def paused(primitive: Primitive, resume: Callable[[Any], Execution]) -> Execution:
    """An execution that suspends immediately at `primitive`."""

    def execution(source: RandomSource) -> Paused:
        return Paused(primitive, resume)

    return execution


def then(
    execution: Execution,
    continuation: Callable[[Any, float], Execution],
) -> Execution:
    """Drive `execution`; once it finishes with ``(x, w)`` continue with
    ``continuation(x, w)``.

    Every pause of `execution` is passed through with its resumption
    wrapped, so resuming it later still ends up in `continuation`.
    """

    def chained(source: RandomSource) -> Done | Paused:
        result = execution(source)
        if isinstance(result, Paused):
            resume = result.resume
            return Paused(
                result.primitive,
                lambda value: then(resume(value), continuation),
            )
        return continuation(result.answer, result.log_weight)(source)

    return chained
