"""
Deferred-execution primitives.

Each factory registers exactly one callback with the active Scheduler
and returns a future that resolves when the callback fires. Futures
resolve once and cannot be re-armed.

    await microtask()        # next ready-queue turn
    await macrotask()        # after everything already queued
    await animation_frame()  # next frame tick
    await timeout(250)       # no earlier than 250 ms from now
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import asyncio
import math

Callback = Callable[[], None]


class Scheduler(ABC):
    """
    Host scheduler backend for the deferred-execution primitives.

    Implementations register a zero-argument callback with one event
    source each. A rendering host, for instance, implements call_frame
    on top of its own frame callbacks.
    """

    @abstractmethod
    def call_microtask(self, callback: Callback) -> None:
        ...

    @abstractmethod
    def call_macrotask(self, callback: Callback) -> None:
        ...

    @abstractmethod
    def call_frame(self, callback: Callback) -> None:
        ...

    @abstractmethod
    def call_later(self, delay: float, callback: Callback) -> None:
        """Run callback no earlier than delay seconds from now."""


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by the running asyncio event loop.

    Microtasks go on the ready queue with call_soon. Macrotasks go
    through call_later(0), which the loop only runs after the callbacks
    already in the ready queue. Frames come from a fixed-rate clock
    aligned to loop.time().
    """

    def __init__(self, frame_rate: float = 60.0):
        """
        Args:
            frame_rate: Frame ticks per second for call_frame.
        """
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")
        self.frame_rate = frame_rate

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.frame_rate

    def call_microtask(self, callback: Callback) -> None:
        asyncio.get_running_loop().call_soon(callback)

    def call_macrotask(self, callback: Callback) -> None:
        asyncio.get_running_loop().call_later(0, callback)

    def call_frame(self, callback: Callback) -> None:
        loop = asyncio.get_running_loop()
        now = loop.time()
        tick = (math.floor(now / self.frame_interval) + 1) * self.frame_interval
        loop.call_at(tick, callback)

    def call_later(self, delay: float, callback: Callback) -> None:
        asyncio.get_running_loop().call_later(delay, callback)


_scheduler: ContextVar[Scheduler] = ContextVar(
    "aioprims_scheduler", default=AsyncioScheduler()
)


def get_scheduler() -> Scheduler:
    """Return the scheduler active in the current context."""
    return _scheduler.get()


@contextmanager
def use_scheduler(scheduler: Scheduler) -> Iterator[Scheduler]:
    """Make scheduler the active one for the duration of the block."""
    token = _scheduler.set(scheduler)
    try:
        yield scheduler
    finally:
        _scheduler.reset(token)


def _deferred(register: Callable[[Callback], None]) -> asyncio.Future[None]:
    future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def resolve() -> None:
        # The awaiting task may have been cancelled in the meantime.
        if not future.done():
            future.set_result(None)

    register(resolve)
    return future


def microtask(scheduler: Scheduler | None = None) -> asyncio.Future[None]:
    """
    Future resolved at the next microtask turn.

    Use it to yield to the loop and run again as soon as possible,
    without a delay.
    """
    scheduler = scheduler or get_scheduler()
    return _deferred(scheduler.call_microtask)


def macrotask(scheduler: Scheduler | None = None) -> asyncio.Future[None]:
    """Future resolved once the callbacks queued so far have run."""
    scheduler = scheduler or get_scheduler()
    return _deferred(scheduler.call_macrotask)


def animation_frame(scheduler: Scheduler | None = None) -> asyncio.Future[None]:
    """
    Future resolved on the next frame tick.

    What a frame is depends on the scheduler. The default backend ticks
    at a fixed rate; hosts with a real render loop should install their
    own Scheduler with use_scheduler().
    """
    scheduler = scheduler or get_scheduler()
    return _deferred(scheduler.call_frame)


def timeout(ms: float, scheduler: Scheduler | None = None) -> asyncio.Future[None]:
    """
    Future resolved no earlier than ms milliseconds from now.

    The duration is handed to the scheduler unchecked, so invalid values
    fail (or are clamped) the way the scheduler decides.
    """
    scheduler = scheduler or get_scheduler()
    return _deferred(lambda callback: scheduler.call_later(ms / 1000, callback))
