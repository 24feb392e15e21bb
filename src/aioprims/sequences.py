"""
Lazy, pull-based sequences and head extraction.

A LazySequence produces elements on demand and may hold resources
(open handles, timers, upstream producers) that must be released with
close(). `first` pulls exactly one element and always closes the
sequence, whatever the pull did.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable, Iterator
from typing import Any, Generic, TypeVar, Union
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Nothing:
    """Marker for "no value". Distinct from None and every user value."""

    _instance: Nothing | None = None

    def __new__(cls) -> Nothing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOTHING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "NOTHING"


NOTHING = Nothing()


class LazySequence(ABC, Generic[T]):
    """
    Explicit pull interface over a lazily produced sequence.

    next() returns the next element, or NOTHING once the sequence is
    exhausted. close() releases whatever the sequence holds; it is safe
    to call more than once. Used as an async context manager, the
    sequence is closed on exit.

    Example:
        class Lines(LazySequence[str]):
            def __init__(self, path):
                self._fh = open(path)

            async def next(self):
                line = self._fh.readline()
                return line if line else NOTHING

            async def close(self):
                self._fh.close()
    """

    @abstractmethod
    async def next(self) -> T | Nothing:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    async def __aenter__(self) -> LazySequence[T]:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class _AsyncIteratorSequence(LazySequence[T]):
    """Adapts an async iterator or async generator."""

    def __init__(self, iterator: AsyncIterator[T]):
        self._iterator = iterator
        self._closed = False

    async def next(self) -> T | Nothing:
        try:
            return await self._iterator.__anext__()
        except StopAsyncIteration:
            return NOTHING

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._iterator, "aclose", None)
        if aclose is not None:
            await aclose()


class _IteratorSequence(LazySequence[T]):
    """Adapts a plain iterator or generator."""

    def __init__(self, iterator: Iterator[T]):
        self._iterator = iterator
        self._closed = False

    async def next(self) -> T | Nothing:
        return next(self._iterator, NOTHING)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._iterator, "close", None)
        if close is not None:
            close()


Source = Union[LazySequence[T], AsyncIterator[T], Iterable[T]]


def lazy(source: Source[T]) -> LazySequence[T]:
    """
    Wrap source in a LazySequence.

    LazySequences are returned as is. Async iterators are closed with
    aclose() and iterators with close(), when they have one. Other
    iterables are turned into an iterator first.
    """
    if isinstance(source, LazySequence):
        return source
    if isinstance(source, AsyncIterator):
        return _AsyncIteratorSequence(source)
    if isinstance(source, Iterator):
        return _IteratorSequence(source)
    if isinstance(source, Iterable):
        return _IteratorSequence(iter(source))
    raise TypeError(f"Cannot pull elements from {type(source).__name__!r}")


async def first(source: Source[T], default: Any = NOTHING) -> T | Any:
    """
    Pull the first element of source, then close it.

    Returns default (NOTHING unless given) if source is empty. The
    source is closed exactly once before returning, including when the
    pull raises, and is never pulled a second time.

    Example:
        async def numbers():
            yield 1
            yield 2

        assert await first(numbers()) == 1
        assert await first([]) is NOTHING
    """
    async with lazy(source) as sequence:
        value = await sequence.next()
    logger.debug("first: pulled %r and closed source", value)
    if value is NOTHING:
        return default
    return value
