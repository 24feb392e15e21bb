"""
Aioprims: async helper primitives for asyncio.

Provides deferred-execution futures tied to points of the event loop's
cycle, async predicate combinators with explicit sequential or
concurrent evaluation, and lazy-sequence head extraction.

Usage:
    from aioprims import microtask, timeout, filter, some, some_concurrent, first

    # Yield to the loop, or wait
    await microtask()
    await timeout(100)

    # Sequential, stops at the first match
    found = await some(items, is_valid)

    # Concurrent, returns on the first match from any element
    found = await some_concurrent(items, is_valid)

    # Pull one element, then close the generator
    head = await first(agen())
"""

import logging

from .scheduling import (
    Scheduler,
    AsyncioScheduler,
    get_scheduler,
    use_scheduler,
    microtask,
    macrotask,
    animation_frame,
    timeout,
)
from .predicates import (
    filter,
    some,
    none,
    every,
    some_concurrent,
    none_concurrent,
    every_concurrent,
    Predicate,
)
from .sequences import LazySequence, Nothing, NOTHING, lazy, first

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    # Deferred execution
    "microtask",
    "macrotask",
    "animation_frame",
    "timeout",
    "Scheduler",
    "AsyncioScheduler",
    "get_scheduler",
    "use_scheduler",
    # Predicate combinators
    "filter",
    "some",
    "none",
    "every",
    "some_concurrent",
    "none_concurrent",
    "every_concurrent",
    "Predicate",
    # Lazy sequences
    "first",
    "lazy",
    "LazySequence",
    "Nothing",
    "NOTHING",
]
