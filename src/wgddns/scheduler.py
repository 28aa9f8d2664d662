"""Periodic driver for the change detector."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from wgddns.config import MIN_CHECK_INTERVAL, format_duration
from wgddns.errors import ConfigError


class Scheduler:
    """Runs a check pass at a fixed interval until stopped.

    Ticks behave like a ticker: the first pass runs one interval after
    start, passes never overlap, and ticks missed while a pass overran are
    dropped rather than replayed.
    """

    DEFAULT_STOP_TIMEOUT = 120.0

    def __init__(
        self,
        check: Callable[[], Awaitable[object]],
        interval: float,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
        logger: logging.Logger | None = None,
    ):
        """Initialize scheduler.

        Args:
            check: Async callable running one full pass.
            interval: Seconds between ticks (at least one second).
            stop_timeout: How long stop() waits for a running pass.
            logger: Logger to use. Defaults to the module logger.

        Raises:
            ConfigError: If interval is below the minimum.
        """
        if interval < MIN_CHECK_INTERVAL:
            raise ConfigError("Check interval must be at least 1 second")
        self._check = check
        self._interval = interval
        self._stop_timeout = stop_timeout
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._passes = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def passes(self) -> int:
        """Number of completed passes."""
        return self._passes

    def start(self) -> None:
        """Start ticking in a background task."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(self._stop_event))

    async def stop(self) -> None:
        """Stop ticking.

        A pass in progress is allowed to finish, up to stop_timeout.
        """
        self._stop_event.set()
        if self._task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._task), self._stop_timeout)
        except TimeoutError:
            self._log.warning("Check pass did not finish in time, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def run(self, stop_event: asyncio.Event) -> None:
        """Tick until stop_event is set."""
        loop = asyncio.get_running_loop()
        self._log.info(f"DNS check interval: {format_duration(self._interval)}")
        next_tick = loop.time() + self._interval

        while not stop_event.is_set():
            delay = next_tick - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(stop_event.wait(), delay)
                except TimeoutError:
                    pass
            if stop_event.is_set():
                break

            self._log.debug("Starting scheduled endpoint check")
            try:
                await self._check()
            except Exception as e:
                self._log.error(f"Endpoint check failed: {e}")
            self._passes += 1
            self._log.debug("Completed scheduled endpoint check")

            next_tick += self._interval
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // self._interval) + 1
                next_tick += skipped * self._interval

        self._log.info("Shutting down monitor")
