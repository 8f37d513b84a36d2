"""
Cancellable repeating tasks for the verification loop and its countdowns.

The state machine only talks to `call_every()` and `time()`, so the service
runs it on asyncio while tests drive it deterministically with
`ManualScheduler.advance()`.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger("uvicorn.error")


class Handle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Virtual-clock scheduler: nothing runs until advance() is called."""

    @dataclass
    class _Timer:
        due: float
        interval: float
        fn: Callable[[], Any]
        handle: Handle
        seq: int = field(default=0)

    def __init__(self, start: float = 0.0):
        self.now = start
        self._timers: list[ManualScheduler._Timer] = []
        self._seq = 0

    def time(self) -> float:
        return self.now

    def call_every(self, interval: float, fn: Callable[[], Any]) -> Handle:
        handle = Handle()
        self._seq += 1
        self._timers.append(self._Timer(self.now + interval, interval, fn, handle, self._seq))
        return handle

    @property
    def active_count(self) -> int:
        return sum(1 for t in self._timers if not t.handle.cancelled)

    def advance(self, seconds: float):
        end = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.handle.cancelled and t.due <= end + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = timer.due
            timer.due += timer.interval
            timer.fn()
        self.now = end
        self._timers = [t for t in self._timers if not t.handle.cancelled]


class _AsyncioHandle(Handle):
    def __init__(self, loop: asyncio.AbstractEventLoop):
        super().__init__()
        self._loop = loop
        self.task: asyncio.Task | None = None
        self.running = False

    def cancel(self):
        self.cancelled = True
        # A running callback keeps the lock until it returns; the loop exits after.
        if self.task is not None and not self.running:
            self._loop.call_soon_threadsafe(self.task.cancel)


class AsyncioScheduler:
    """Runs callbacks on the event loop's clock, one at a time.

    Every callback holds `lock` while it runs and is executed in a worker
    thread, so blocking detection work never stalls the websocket. Callers
    that mutate the same state from the loop go through run_exclusive().
    Must be created inside a running event loop.
    """

    def __init__(self):
        self._loop = asyncio.get_running_loop()
        self.lock = asyncio.Lock()
        self._handles: list[_AsyncioHandle] = []

    def time(self) -> float:
        return time.monotonic()

    def call_every(self, interval: float, fn: Callable[[], Any]) -> Handle:
        handle = _AsyncioHandle(self._loop)
        self._handles = [h for h in self._handles if not h.cancelled]
        self._handles.append(handle)

        def _start():
            if not handle.cancelled:
                handle.task = self._loop.create_task(self._repeat(interval, fn, handle))

        self._loop.call_soon_threadsafe(_start)
        return handle

    async def _repeat(self, interval: float, fn: Callable[[], Any], handle: _AsyncioHandle):
        while not handle.cancelled:
            await asyncio.sleep(interval)
            async with self.lock:
                if handle.cancelled:
                    return
                handle.running = True
                try:
                    await asyncio.to_thread(fn)
                except Exception:
                    logger.exception("Scheduled callback failed")
                finally:
                    handle.running = False

    async def run_exclusive(self, fn: Callable[..., Any], *args):
        async with self.lock:
            return await asyncio.to_thread(fn, *args)

    def shutdown(self):
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
