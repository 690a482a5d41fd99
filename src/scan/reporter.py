# src/scan/reporter.py - v1
"""Progress reporter: ordered, one-at-a-time delivery of scan events.

The work context calls ``emit()``, which never blocks. A single consumer task
drains the queue and invokes the observer, so callbacks never run
concurrently with each other and arrive in emission order.
"""

from __future__ import annotations

import asyncio
import inspect
import logging

from bucketscan.scan.events import ScanEvent, ScanObserver

logger = logging.getLogger(__name__)

_CLOSE = object()


class ProgressReporter:
    """Deliver scan events to an observer on the reporting task.

    Args:
        observer: Callbacks to invoke. A callback that raises is logged and
            delivery continues with the next event.
    """

    def __init__(self, observer: ScanObserver) -> None:
        self._observer = observer
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._delivered = 0

    @property
    def delivered(self) -> int:
        """Number of events handed to the observer so far."""
        return self._delivered

    def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._drain(), name="bucketscan-reporter"
            )

    def emit(self, event: ScanEvent) -> None:
        """Queue an event for delivery (fire-and-forget)."""
        self._queue.put_nowait(event)

    async def aclose(self) -> None:
        """Deliver everything already emitted, then stop the consumer."""
        if self._task is None:
            return
        self._queue.put_nowait(_CLOSE)
        await self._task
        self._task = None

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            if event is _CLOSE:
                return
            await self._deliver(event)  # type: ignore[arg-type]

    async def _deliver(self, event: ScanEvent) -> None:
        callback, args = self._observer.callback_for(event)
        self._delivered += 1
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Observer callback failed for %s", type(event).__name__)
