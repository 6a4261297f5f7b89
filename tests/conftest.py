"""
Shared fixtures for the tracemh test suite.
"""

import jax.random as jrand
import pytest

from tracemh.sampler import RandomSource, Sampler


class ScriptedSource(RandomSource):
    """Random source replaying fixed outcomes.

    Each kind of request (`sample`, `uniform_index`, `bernoulli`) pops from
    its own script. When a script runs out the request goes to `fallback`,
    or fails the test if there is none. Every request is logged in `calls`.
    """

    def __init__(self, samples=(), indices=(), coins=(), fallback=None):
        self.samples = list(samples)
        self.indices = list(indices)
        self.coins = list(coins)
        self.fallback = fallback
        self.calls = []

    def _next(self, script, kind, *args):
        self.calls.append(kind)
        if script:
            return script.pop(0)
        if self.fallback is None:
            pytest.fail(f"unexpected {kind} request")
        return getattr(self.fallback, kind)(*args)

    def sample(self, primitive):
        return self._next(self.samples, "sample", primitive)

    def uniform_index(self, n):
        value = self._next(self.indices, "uniform_index", n)
        assert 0 <= value < n
        return value

    def bernoulli(self, p):
        return self._next(self.coins, "bernoulli", p)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def base_key():
    """Base random key for tests."""
    return jrand.key(42)


@pytest.fixture
def sampler(base_key):
    return Sampler(base_key)


@pytest.fixture
def scripted():
    """Factory for `ScriptedSource` instances."""
    return ScriptedSource
