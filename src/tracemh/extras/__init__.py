"""
tracemh extras - example models built on the trace engine.

These are clients of the engine rather than part of it; they are used by
the test suite and the examples to check inference against exact answers.
"""

from .hmm import (
    STATES,
    TRANSITIONS,
    VALUES,
    emission,
    exact_marginals,
    forward_backward,
    hmm,
    transition,
)

__all__ = [
    "STATES",
    "TRANSITIONS",
    "VALUES",
    "emission",
    "exact_marginals",
    "forward_backward",
    "hmm",
    "transition",
]
