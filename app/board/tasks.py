"""Cancellable, reschedulable delayed actions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class DebouncedTask:
    """Run ``action`` once, ``delay`` seconds after the last ``schedule()``.

    Rescheduling while the delay is pending restarts the timer, so only the
    last call of a burst runs. Once the action has started it is left to
    finish. ``close()`` cancels any pending run and ignores later schedules.
    """

    def __init__(
        self,
        action: Callable[[], Awaitable[None]],
        delay: float,
        name: str | None = None,
    ):
        self.action = action
        self.delay = delay
        self.name = name or getattr(action, "__name__", "debounced")
        self.runs = 0
        self._timer: asyncio.Task | None = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def schedule(self) -> None:
        if self._closed:
            return
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_and_run())

    def cancel(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def close(self) -> None:
        self._closed = True
        self.cancel()

    async def flush(self) -> None:
        """Run a pending action now instead of waiting for the delay."""
        if not self.pending:
            return
        self.cancel()
        await self._run()

    async def _wait_and_run(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        await self._run()

    async def _run(self) -> None:
        self.runs += 1
        try:
            await self.action()
        except Exception:
            logger.exception("Debounced task %s failed", self.name)
