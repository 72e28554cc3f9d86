"""Cancellable delayed callbacks for the auto-advance after a correct answer."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class ScheduledTask(ABC):
    """Handle of a pending callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Cancelling twice is harmless."""
        raise NotImplementedError("Subclasses must implement this method")


class Scheduler(ABC):
    """Runs a callback once after a delay."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], bool]) -> ScheduledTask:
        """Run `callback` after `delay` seconds unless the returned task is cancelled."""
        raise NotImplementedError("Subclasses must implement this method")


class AsyncioTask(ScheduledTask):
    """ScheduledTask backed by an asyncio task."""

    def __init__(self, task: asyncio.Task):
        self.task = task

    def cancel(self) -> None:
        if not self.task.done():
            self.task.cancel()

    @property
    def done(self) -> bool:
        return self.task.done()


class AsyncioScheduler(Scheduler):
    """Scheduler on the running event loop.

    `on_fired` is awaited after a callback that returned True, which lets the
    bot render the card the trainer advanced to.
    """

    def __init__(self, on_fired: Optional[Callable[[], Awaitable[None]]] = None):
        self.on_fired = on_fired

    def schedule(self, delay: float, callback: Callable[[], bool]) -> AsyncioTask:
        loop = asyncio.get_running_loop()
        return AsyncioTask(loop.create_task(self._run(delay, callback)))

    async def _run(self, delay: float, callback: Callable[[], bool]) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.debug("Auto-advance cancelled")
            raise
        if callback() and self.on_fired is not None:
            try:
                await self.on_fired()
            except Exception as e:
                logger.error(f"Error after auto-advance: {e}")
