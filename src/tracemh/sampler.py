"""Base probabilistic effects.

The trace engine only ever asks its substrate for four things: draw from a
primitive, pick a uniform index, flip a biased coin and (for the outer
trace layer) multiply the accumulated weight. `RandomSource` covers the
first three, `Effect` adds the fourth.

Effects are plain mutable objects handed to a program for the duration of
a run.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import jax.random as jrand

from .distributions import Primitive
from .types import Any, PRNGKey


class RandomSource(ABC):
    @abstractmethod
    def sample(self, primitive: Primitive) -> Any:
        raise NotImplementedError

    @abstractmethod
    def uniform_index(self, n: int) -> int:
        """Uniform choice over ``0 .. n - 1``."""
        raise NotImplementedError

    @abstractmethod
    def bernoulli(self, p: float) -> bool:
        raise NotImplementedError


class Effect(RandomSource):
    @abstractmethod
    def factor(self, log_weight: float) -> None:
        """Multiply the accumulated weight by ``exp(log_weight)``."""
        raise NotImplementedError


class Sampler(RandomSource):
    """Random source driven by a JAX PRNG key, split once per draw.

    Example:
        >>> import jax.random as jrand
        >>> from tracemh.distributions import normal
        >>> sampler = Sampler(jrand.key(0))
        >>> x = sampler.sample(normal(0.0, 1.0))
    """

    def __init__(self, key: PRNGKey | int):
        self.key = jrand.key(key) if isinstance(key, int) else key

    def next_key(self) -> PRNGKey:
        self.key, sub_key = jrand.split(self.key)
        return sub_key

    def split(self, n: int) -> list["Sampler"]:
        """Independent samplers, e.g. one per MH chain."""
        return [Sampler(key) for key in jrand.split(self.next_key(), n)]

    def sample(self, primitive: Primitive) -> Any:
        return primitive.sample(self.next_key())

    def uniform_index(self, n: int) -> int:
        if n <= 0:
            raise ValueError(f"uniform_index needs a positive range, got {n}")
        return int(jrand.randint(self.next_key(), (), 0, n))

    def bernoulli(self, p: float) -> bool:
        return bool(jrand.bernoulli(self.next_key(), p))


@dataclass
class Weighted(Effect):
    """Accumulates an importance log weight on top of a random source."""

    source: RandomSource
    log_weight: float = 0.0

    def sample(self, primitive: Primitive) -> Any:
        return self.source.sample(primitive)

    def uniform_index(self, n: int) -> int:
        return self.source.uniform_index(n)

    def bernoulli(self, p: float) -> bool:
        return self.source.bernoulli(p)

    def factor(self, log_weight: float) -> None:
        self.log_weight += float(log_weight)
