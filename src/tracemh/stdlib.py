"""Derived program constructors.

Each constructor builds a program of either trace layer (`Trace` by
default) from the layer's own `primitive` and `factor`.
"""

import math

from .distributions import Primitive, discrete
from .program import Layer
from .trace import Trace
from .types import Any, Sequence


def categorical(pairs: Sequence[tuple[Any, float]], *, layer: Layer = Trace):
    """Draw one of the values in `pairs` with probability proportional to its weight.

    The trace records the index of the drawn value, so two categorical
    choices with the same number of values can reuse each other's draws.
    """
    if not pairs:
        raise ValueError("categorical needs at least one value")
    values = [value for value, _ in pairs]
    weights = [weight for _, weight in pairs]
    return layer.primitive(discrete(weights)).map(lambda index: values[index])


def uniform_discrete(values: Sequence[Any], *, layer: Layer = Trace):
    return categorical([(value, 1.0) for value in values], layer=layer)


def bernoulli(p: float, *, layer: Layer = Trace):
    return layer.primitive(discrete([1.0 - p, p])).map(bool)


def observe(primitive: Primitive, value: Any, *, layer: Layer = Trace):
    """Condition on `value` having been drawn from `primitive`."""
    return layer.factor(primitive.log_density(value))


def condition(predicate: bool, *, layer: Layer = Trace):
    """Hard constraint: weight zero unless `predicate` holds."""
    return layer.factor(0.0 if predicate else -math.inf)
