# --- pdfrecon_lib/progress.py ---
"""
pdfrecon_lib/progress.py: Out-of-band progress reporting and caller-level
cancellation for the pipelines.
"""
import asyncio
import logging
import threading

from .models import RenderProgress

log = logging.getLogger("pdfrecon.render")

_CLOSED = object()


class CancellationToken:
    """A thread-safe flag checked by the pipelines at page boundaries."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressChannel:
    """
    Delivers RenderProgress events to an optional listener and to a bounded
    queue readable through `events()`.

    Emission never blocks and never fails the caller: listener errors are
    logged and ignored, and events are dropped when the queue is full.
    """

    def __init__(self, listener=None, maxsize=64):
        self.listener = listener
        self._queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    def emit(self, current, total):
        event = RenderProgress(current, total)
        if self.listener is not None:
            try:
                self.listener(event)
            except Exception as e:
                log.debug("Progress listener failed: %s", e)
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            log.debug("Progress queue full; dropping %d/%d.", current, total)

    def close(self):
        """Ends the events() iteration once queued events have been read."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Make room for the sentinel; the oldest event is the least useful.
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    async def events(self):
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event
