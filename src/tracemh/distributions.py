"""Primitive distributions: the atomic random choices of a traced program.

A primitive is one of a closed set of variants:

* `Discrete`: a finite weighted support over the indices ``0 .. n - 1``.
  Values are Python ``int`` indices.
* `Continuous`: a named parametric family with an interval support.
  Values are Python ``float``s.

Densities and samplers come from TensorFlow Probability on JAX. Two
primitives are interchangeable for the purpose of reusing a sampled value
exactly when `Primitive.support_equals` holds; family or parameter equality
plays no role.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cache

import jax
import jax.numpy as jnp
from jax.interpreters import xla

from .types import Any, Callable, PRNGKey

# TFP on JAX >= 0.7 still looks up the aval table on the XLA interpreter
# module; newer JAX keeps it on `jax.core` only.
if not hasattr(xla, "pytype_aval_mappings") and hasattr(
    jax.core, "pytype_aval_mappings"
):
    xla.pytype_aval_mappings = jax.core.pytype_aval_mappings

from tensorflow_probability.substrates import jax as tfp  # noqa: E402

tfd = tfp.distributions


class Primitive(ABC):
    """An atomic distribution supporting one draw and density evaluation."""

    @abstractmethod
    def support_equals(self, other: "Primitive") -> bool:
        raise NotImplementedError

    @abstractmethod
    def log_density(self, value: Any) -> float:
        raise NotImplementedError

    @abstractmethod
    def sample(self, key: PRNGKey) -> Any:
        raise NotImplementedError


############
# Discrete #
############


@jax.jit
def _categorical_log_prob(weights, value):
    probs = jnp.asarray(weights)
    return tfd.Categorical(probs=probs / jnp.sum(probs)).log_prob(value)


@jax.jit
def _categorical_sample(key, weights):
    probs = jnp.asarray(weights)
    return tfd.Categorical(probs=probs / jnp.sum(probs)).sample(seed=key)


@dataclass(frozen=True)
class Discrete(Primitive):
    """Finite weighted support over ``0 .. len(weights) - 1``.

    Weights are nonnegative and need not be normalised.
    """

    weights: tuple[float, ...]

    def __post_init__(self):
        if not self.weights:
            raise ValueError("Discrete primitive needs at least one weight")

    @property
    def size(self) -> int:
        return len(self.weights)

    def support_equals(self, other: Primitive) -> bool:
        return isinstance(other, Discrete) and other.size == self.size

    def log_density(self, value: Any) -> float:
        if not isinstance(value, int) or not 0 <= value < self.size:
            return -math.inf
        return float(_categorical_log_prob(self.weights, value))

    def sample(self, key: PRNGKey) -> int:
        return int(_categorical_sample(key, self.weights))


##############
# Continuous #
##############


@dataclass(frozen=True)
class Family:
    """A TFP distribution constructor together with its support interval."""

    constructor: Callable[..., Any]
    support: Callable[..., tuple[float, float]]


def _real_line(*_):
    return (-math.inf, math.inf)


def _positive_reals(*_):
    return (0.0, math.inf)


def _unit_interval(*_):
    return (0.0, 1.0)


def _bounded(low, high):
    return (float(low), float(high))


FAMILIES: dict[str, Family] = {
    "normal": Family(tfd.Normal, _real_line),
    "laplace": Family(tfd.Laplace, _real_line),
    "gamma": Family(tfd.Gamma, _positive_reals),
    "exponential": Family(tfd.Exponential, _positive_reals),
    "beta": Family(tfd.Beta, _unit_interval),
    "uniform": Family(tfd.Uniform, _bounded),
}


@cache
def _compiled(name: str):
    constructor = FAMILIES[name].constructor

    @jax.jit
    def log_prob(params, value):
        return constructor(*params).log_prob(value)

    @jax.jit
    def sample(key, params):
        return constructor(*params).sample(seed=key)

    return log_prob, sample


@dataclass(frozen=True)
class Continuous(Primitive):
    """A parametric family from `FAMILIES`, e.g. ``Continuous("normal", (0.0, 1.0))``."""

    family: str
    params: tuple[float, ...]

    def __post_init__(self):
        if self.family not in FAMILIES:
            raise ValueError(
                f"Unknown continuous family {self.family!r}; "
                f"expected one of {sorted(FAMILIES)}"
            )

    @property
    def support(self) -> tuple[float, float]:
        return FAMILIES[self.family].support(*self.params)

    def support_equals(self, other: Primitive) -> bool:
        return isinstance(other, Continuous) and other.support == self.support

    def log_density(self, value: Any) -> float:
        log_prob, _ = _compiled(self.family)
        return float(log_prob(self.params, value))

    def sample(self, key: PRNGKey) -> float:
        _, sample = _compiled(self.family)
        return float(sample(key, self.params))


################
# Constructors #
################


def discrete(weights) -> Discrete:
    return Discrete(tuple(float(w) for w in weights))


def normal(loc: float, scale: float) -> Continuous:
    """Normal distribution with mean `loc` and standard deviation `scale`."""
    return Continuous("normal", (float(loc), float(scale)))


def laplace(loc: float, scale: float) -> Continuous:
    return Continuous("laplace", (float(loc), float(scale)))


def gamma(concentration: float, rate: float) -> Continuous:
    return Continuous("gamma", (float(concentration), float(rate)))


def exponential(rate: float) -> Continuous:
    return Continuous("exponential", (float(rate),))


def beta(concentration1: float, concentration0: float) -> Continuous:
    return Continuous("beta", (float(concentration1), float(concentration0)))


def uniform(low: float, high: float) -> Continuous:
    """Uniform distribution on ``[low, high)``; its support depends on the bounds."""
    return Continuous("uniform", (float(low), float(high)))
