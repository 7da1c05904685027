import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

import sentry_sdk

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """
    Runs a housekeeping sweep every interval_seconds in a background task.

    Expiry is always enforced at read time; the sweep only reclaims storage.
    A failed sweep is logged and retried on the next tick.
    """

    def __init__(self, sweep: Callable[[], Awaitable[Any]], interval_seconds: float):
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0

    def start(self) -> None:
        if not self.enabled or self._task is not None:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Maintenance sweep every {self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.exception("Maintenance sweep failed")
                sentry_sdk.capture_exception(e)
