"""Generator syntax for building traced programs.

Writing programs as chains of `bind` calls gets unwieldy, so `gen` lets a
model be written as a generator function that yields sub-programs and
receives their answers:

    >>> from tracemh import gen, observe, normal, Trace
    >>> @gen
    ... def model(y):
    ...     x = yield Trace.primitive(normal(0.0, 1.0))
    ...     yield observe(normal(x, 1.0), y)
    ...     return x

Each ``yield`` becomes a `bind`. Continuations recorded in the trace replay
the generator from the start, feeding it the answers produced so far, so
the body must not have side effects: it may run many times per MH step.
"""

from functools import wraps

from .trace import Trace
from .traced import Traced
from .types import Any, Callable

Layer = type[Trace] | type[Traced]


def _replay(
    fn: Callable[..., Any],
    args: tuple,
    kwargs: dict,
    layer: Layer,
    answers: tuple,
):
    generator = fn(*args, **kwargs)
    try:
        program = next(generator)
        for answer in answers:
            program = generator.send(answer)
    except StopIteration as stop:
        return layer.pure(stop.value)
    finally:
        generator.close()

    if not isinstance(program, layer):
        raise TypeError(
            f"{fn.__name__} yielded {type(program).__name__}, "
            f"expected a {layer.__name__} program"
        )
    return program.bind(
        lambda answer: _replay(fn, args, kwargs, layer, answers + (answer,))
    )


def gen(fn: Callable[..., Any] | None = None, /, *, layer: Layer = Trace):
    """Turn a generator function into a function returning a program.

    Args:
        fn: Generator function yielding programs of `layer`.
        layer: `Trace` (default) or `Traced`.
    """

    def decorate(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def build(*args, **kwargs):
            return _replay(fn, args, kwargs, layer, ())

        return build

    return decorate if fn is None else decorate(fn)
