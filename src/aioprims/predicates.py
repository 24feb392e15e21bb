"""
Async predicate combinators.

Two evaluation policies are exposed under distinct names:

Sequential (some, none, every): elements are visited in order and the
predicate is awaited before the next element is pulled. Evaluation
stops at the first deciding element, so nothing past it is pulled or
tested. Works on iterables, async iterables and LazySequences,
including unbounded ones.

Concurrent (some_concurrent, none_concurrent, every_concurrent): the
predicate runs on every element of a finite collection at once, and
the result is returned as soon as one outcome decides it. Invocations
still running at that point are left to finish; their outcomes are
discarded.

filter always runs every invocation concurrently and keeps input order.
"""

from __future__ import annotations
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Collection, Iterable
from typing import Any, TypeVar, Union
import asyncio
import logging

from .sequences import NOTHING, LazySequence

logger = logging.getLogger(__name__)

T = TypeVar("T")

Predicate = Callable[[T], Awaitable[bool]]
Items = Union[Iterable[T], AsyncIterable[T], LazySequence[T]]

# Predicate tasks that outlive the call that spawned them.
_running: set[asyncio.Task[bool]] = set()


async def _invoke(predicate: Predicate[T], item: T) -> bool:
    return bool(await predicate(item))


def _check_predicate(predicate: Any) -> None:
    if not callable(predicate):
        raise TypeError(f"predicate must be callable, got {type(predicate).__name__!r}")


def _check_collection(items: Any) -> None:
    if not isinstance(items, Collection):
        raise TypeError(
            f"concurrent evaluation needs a finite collection, got {type(items).__name__!r}"
        )


async def _elements(items: Items[T]) -> AsyncIterator[T]:
    """Pull elements one at a time from any supported source."""
    if isinstance(items, LazySequence):
        while True:
            value = await items.next()
            if value is NOTHING:
                return
            yield value
    elif isinstance(items, AsyncIterable):
        async for value in items:
            yield value
    else:
        for value in items:
            yield value


async def _scan(items: Items[T], predicate: Predicate[T], trigger: bool) -> bool:
    """Return True as soon as an outcome equals trigger, False if none does."""
    _check_predicate(predicate)
    elements = _elements(items)
    index = 0
    try:
        async for item in elements:
            if bool(await predicate(item)) is trigger:
                logger.debug("short-circuit at index %d", index)
                return True
            index += 1
        return False
    finally:
        # Releases only the pulling wrapper, never the caller's source.
        await elements.aclose()


async def some(items: Items[T], predicate: Predicate[T]) -> bool:
    """
    True if predicate holds for at least one element.

    Sequential: stops at the first element that passes.

    Example:
        async def is_even(n):
            return n % 2 == 0

        assert await some([1, 2, 3], is_even)
    """
    return await _scan(items, predicate, trigger=True)


async def none(items: Items[T], predicate: Predicate[T]) -> bool:
    """True if predicate holds for no element. Stops at the first that passes."""
    return not await _scan(items, predicate, trigger=True)


async def every(items: Items[T], predicate: Predicate[T]) -> bool:
    """True if predicate holds for every element. Stops at the first that fails."""
    return not await _scan(items, predicate, trigger=False)


async def _race(
    items: Collection[T], predicate: Predicate[T], trigger: bool, default: bool
) -> bool:
    """
    Run predicate on all items concurrently.

    Resolves with `not default` as soon as one outcome equals trigger,
    otherwise with default once every invocation has settled. A failure
    seen before any deciding outcome is raised after the rest settle.
    """
    _check_predicate(predicate)
    _check_collection(items)
    if not items:
        return default

    loop = asyncio.get_running_loop()
    outcome: asyncio.Future[bool] = loop.create_future()
    pending = len(items)
    failure: BaseException | None = None

    def settle(task: asyncio.Task[bool]) -> None:
        nonlocal pending, failure
        _running.discard(task)
        pending -= 1

        error = asyncio.CancelledError() if task.cancelled() else task.exception()
        if outcome.done():
            if error is not None:
                logger.debug("discarding late predicate failure: %r", error)
            else:
                logger.debug("discarding late predicate outcome: %r", task.result())
            return

        if error is not None:
            if failure is None:
                failure = error
        elif failure is None and task.result() is trigger:
            outcome.set_result(not default)
            return

        if pending == 0:
            if isinstance(failure, asyncio.CancelledError):
                outcome.cancel()
            elif failure is not None:
                outcome.set_exception(failure)
            else:
                outcome.set_result(default)

    for item in items:
        task = asyncio.ensure_future(_invoke(predicate, item))
        _running.add(task)
        task.add_done_callback(settle)

    return await outcome


async def some_concurrent(items: Collection[T], predicate: Predicate[T]) -> bool:
    """
    True if predicate holds for at least one element.

    Concurrent: returns on the first passing outcome, whichever element
    it comes from.
    """
    return await _race(items, predicate, trigger=True, default=False)


async def none_concurrent(items: Collection[T], predicate: Predicate[T]) -> bool:
    """True if predicate holds for no element. Returns on the first passing outcome."""
    return await _race(items, predicate, trigger=True, default=True)


async def every_concurrent(items: Collection[T], predicate: Predicate[T]) -> bool:
    """True if predicate holds for every element. Returns on the first failing outcome."""
    return await _race(items, predicate, trigger=False, default=True)


async def filter(items: Collection[T], predicate: Predicate[T]) -> list[T]:
    """
    Elements of items for which predicate holds, in their original order.

    All invocations run concurrently. If any fails, the others are still
    awaited and the failure of the earliest failing element is raised.

    Example:
        async def is_even(n):
            return n % 2 == 0

        assert await filter([1, 2, 3, 4, 5], is_even) == [2, 4]
    """
    _check_predicate(predicate)
    _check_collection(items)
    items = list(items)
    results = await asyncio.gather(
        *[_invoke(predicate, item) for item in items], return_exceptions=True
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return [item for item, keep in zip(items, results) if keep]
