"""Tests for deferred-execution primitives."""

import asyncio
import pytest
from aioprims import (
    AsyncioScheduler,
    Scheduler,
    animation_frame,
    get_scheduler,
    macrotask,
    microtask,
    timeout,
    use_scheduler,
)

# Slack for loop clock resolution.
EPSILON = 0.002


class ManualScheduler(Scheduler):
    """Collects callbacks so tests decide when they fire."""

    def __init__(self):
        self.microtasks = []
        self.macrotasks = []
        self.frames = []
        self.timers = []

    def call_microtask(self, callback):
        self.microtasks.append(callback)

    def call_macrotask(self, callback):
        self.macrotasks.append(callback)

    def call_frame(self, callback):
        self.frames.append(callback)

    def call_later(self, delay, callback):
        self.timers.append((delay, callback))


class TestAsyncioBackend:
    @pytest.mark.asyncio
    async def test_microtask_resolves(self):
        assert await microtask() is None

    @pytest.mark.asyncio
    async def test_macrotask_resolves(self):
        assert await macrotask() is None

    @pytest.mark.asyncio
    async def test_microtask_runs_before_earlier_macrotask(self):
        order = []
        macro = macrotask()
        micro = microtask()
        macro.add_done_callback(lambda _: order.append("macro"))
        micro.add_done_callback(lambda _: order.append("micro"))
        await asyncio.gather(macro, micro)
        assert order == ["micro", "macro"]

    @pytest.mark.asyncio
    async def test_macrotask_runs_after_queued_callbacks(self):
        loop = asyncio.get_running_loop()
        order = []
        macro = macrotask()
        macro.add_done_callback(lambda _: order.append("macro"))
        loop.call_soon(order.append, "soon")
        await macro
        await asyncio.sleep(0)
        assert order == ["soon", "macro"]

    @pytest.mark.asyncio
    async def test_timeout_waits_at_least_duration(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        await timeout(30)
        assert loop.time() - start >= 0.03 - EPSILON

    @pytest.mark.asyncio
    async def test_timeout_zero(self):
        assert await timeout(0) is None

    def test_timeout_invalid_duration(self):
        async def run():
            timeout("10")

        with pytest.raises(TypeError):
            asyncio.run(run())

    @pytest.mark.asyncio
    async def test_animation_frame_on_next_tick(self):
        scheduler = AsyncioScheduler(frame_rate=20)
        loop = asyncio.get_running_loop()
        start = loop.time()
        await animation_frame(scheduler)
        assert loop.time() - start <= scheduler.frame_interval + 0.05

    @pytest.mark.asyncio
    async def test_cancelled_future_is_left_alone(self):
        errors = []
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _loop, context: errors.append(context))
        try:
            future = timeout(5)
            future.cancel()
            await asyncio.sleep(0.02)
            assert future.cancelled()
            assert errors == []
        finally:
            loop.set_exception_handler(None)

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            microtask()

    def test_frame_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            AsyncioScheduler(frame_rate=0)
        with pytest.raises(ValueError):
            AsyncioScheduler(frame_rate=-30)

    def test_frame_interval(self):
        assert AsyncioScheduler(frame_rate=50).frame_interval == pytest.approx(0.02)


class TestPluggableBackend:
    def test_default_is_asyncio(self):
        assert isinstance(get_scheduler(), AsyncioScheduler)

    def test_use_scheduler_restores_previous(self):
        before = get_scheduler()
        manual = ManualScheduler()
        with use_scheduler(manual) as active:
            assert active is manual
            assert get_scheduler() is manual
        assert get_scheduler() is before

    @pytest.mark.asyncio
    async def test_each_factory_registers_one_callback(self):
        manual = ManualScheduler()
        with use_scheduler(manual):
            micro = microtask()
            macro = macrotask()
            frame = animation_frame()
            timer = timeout(1500)

        assert len(manual.microtasks) == 1
        assert len(manual.macrotasks) == 1
        assert len(manual.frames) == 1
        assert len(manual.timers) == 1
        assert manual.timers[0][0] == pytest.approx(1.5)

        for future in (micro, macro, frame, timer):
            assert not future.done()

        manual.frames[0]()
        await frame
        assert not micro.done()

        manual.microtasks[0]()
        manual.macrotasks[0]()
        manual.timers[0][1]()
        await asyncio.gather(micro, macro, timer)

    @pytest.mark.asyncio
    async def test_resolves_only_once(self):
        manual = ManualScheduler()
        frame = animation_frame(manual)
        manual.frames[0]()
        manual.frames[0]()
        assert await frame is None

    @pytest.mark.asyncio
    async def test_explicit_scheduler_argument(self):
        manual = ManualScheduler()
        future = microtask(scheduler=manual)
        assert len(manual.microtasks) == 1
        assert get_scheduler() is not manual
        manual.microtasks[0]()
        await future
