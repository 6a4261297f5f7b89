"""The trace data model: snapshots, cache entries and trace states."""

from dataclasses import dataclass

from .coroutine import Execution
from .distributions import Primitive
from .types import Any, Callable


@dataclass(frozen=True)
class Cache:
    """A sampled value together with the primitive it was drawn from.

    Used read-only when deciding whether a value can be reused.
    """

    primitive: Primitive
    value: Any


@dataclass(frozen=True)
class Snapshot:
    """A random choice: its primitive, its value and the rest of the program.

    ``resume(value)`` is the execution of everything after this choice,
    given `value` for it; its final weight is the weight of the whole trace.
    """

    primitive: Primitive
    value: Any
    resume: Callable[[Any], Execution]

    def to_cache(self) -> Cache:
        return Cache(self.primitive, self.value)

    def map_resume(self, f: Callable[[Execution], Execution]) -> "Snapshot":
        """Rewrite the rest of the program, keeping primitive and value."""
        resume = self.resume
        return Snapshot(self.primitive, self.value, lambda value: f(resume(value)))


@dataclass(frozen=True)
class TraceState:
    """The record of one execution.

    Attributes:
        snapshots: Every random choice visited, in program order.
        log_weight: Sum of the log factors applied along this execution.
        answer: The value the program returned.
    """

    snapshots: tuple[Snapshot, ...]
    log_weight: float
    answer: Any

    @property
    def num_sites(self) -> int:
        return len(self.snapshots)

    def caches(self) -> list[Cache]:
        return [snapshot.to_cache() for snapshot in self.snapshots]

    def values(self) -> tuple:
        return tuple(snapshot.value for snapshot in self.snapshots)
