"""Interval ticker plus on-demand request queue feeding a single-flight Poller.

Timer ticks and poll-now requests are handled by one loop, so cycles run one
after another. Requests that pile up while a cycle is running are coalesced
into the next cycle and all receive its result.
"""

from __future__ import annotations

import asyncio
import logging

from prwatch_core.config import MIN_POLL_INTERVAL_MINUTES

logger = logging.getLogger(__name__)

INITIAL_DELAY_SECONDS = 6.0

_STOP = object()
_RESCHEDULE = object()


class PollScheduler:
    def __init__(self, poller, interval_minutes: int = 2, initial_delay: float = INITIAL_DELAY_SECONDS):
        self._poller = poller
        self._interval = max(interval_minutes, MIN_POLL_INTERVAL_MINUTES) * 60.0
        self._initial_delay = initial_delay
        self._requests: asyncio.Queue = asyncio.Queue()
        self._deadline = 0.0
        self._reschedules = 0
        self._running = False
        self.cycles = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._running

    def poll_now(self) -> asyncio.Future:
        """Queue an on-demand poll; the returned future resolves with the cycle result.

        The timer deadline is left alone. A request made before run() starts is
        served by its first cycle.
        """
        future = asyncio.get_running_loop().create_future()
        self._requests.put_nowait(future)
        return future

    def reschedule(self, interval_minutes: int) -> None:
        """Apply a new interval and restart the timer, as after a settings change."""
        self._interval = max(interval_minutes, MIN_POLL_INTERVAL_MINUTES) * 60.0
        self._reschedules += 1
        if self._running:
            self._deadline = asyncio.get_running_loop().time() + self._initial_delay
            self._requests.put_nowait(_RESCHEDULE)
        logger.info("Poll interval set to %.0f minute(s)", self._interval / 60)

    def stop(self) -> None:
        self._requests.put_nowait(_STOP)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._running = True
        self._deadline = loop.time() + self._initial_delay
        try:
            await self._loop(loop)
        finally:
            self._running = False
            self._release_pending()

    async def _loop(self, loop: asyncio.AbstractEventLoop) -> None:
        while True:
            timeout = max(self._deadline - loop.time(), 0)
            try:
                item = await asyncio.wait_for(self._requests.get(), timeout=timeout)
            except asyncio.TimeoutError:
                item = None  # timer tick

            if item is _STOP:
                return
            if item is _RESCHEDULE:
                continue

            waiters = [item] if item is not None else []
            stop_after = False
            while not self._requests.empty():
                extra = self._requests.get_nowait()
                if extra is _STOP:
                    stop_after = True
                elif extra is not _RESCHEDULE:
                    waiters.append(extra)

            reschedules_before = self._reschedules
            result = await self._run_cycle(waiters)

            if item is None and self._reschedules == reschedules_before:
                delay = self._interval
                retry_after = getattr(result, "retry_after", None)
                if retry_after and retry_after > delay:
                    logger.info("Rate limited; delaying next poll by %.0fs", retry_after)
                    delay = retry_after
                self._deadline = loop.time() + delay

            if stop_after:
                return

    async def _run_cycle(self, waiters: list[asyncio.Future]):
        self.cycles += 1
        try:
            result = await self._poller.poll()
        except Exception as e:
            logger.error("Poll cycle failed (%s): %s", type(e).__name__, e)
            for w in waiters:
                if not w.done():
                    w.set_exception(e)
            return None
        for w in waiters:
            if not w.done():
                w.set_result(result)
        return result

    def _release_pending(self) -> None:
        while not self._requests.empty():
            item = self._requests.get_nowait()
            if isinstance(item, asyncio.Future) and not item.done():
                item.set_result(None)
