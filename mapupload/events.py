"""
Upload Event Channel

The single observable sink of one upload call. It carries zero or more
``stats`` events followed by exactly one terminal event, ``error`` or
``finished``. The terminal event is kept so that listeners attached after
the upload ended still receive it once.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .models import JobDescriptor, ProgressSample

logger = logging.getLogger(__name__)

STATS = "stats"
ERROR = "error"
FINISHED = "finished"

EVENTS = (STATS, ERROR, FINISHED)
TERMINAL_EVENTS = (ERROR, FINISHED)


class UploadEventChannel:
    """Event emitter with a single terminal signal and terminal replay"""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {name: [] for name in EVENTS}
        self._terminal: Optional[Tuple[str, Any]] = None
        self._closed = asyncio.Event()
        self._pending: Set[asyncio.Future] = set()

    @property
    def closed(self) -> bool:
        return self._terminal is not None

    @property
    def terminal(self) -> Optional[Tuple[str, Any]]:
        """``(event name, value)`` of the terminal event, once emitted"""
        return self._terminal

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event. Terminal events already emitted are replayed."""
        self._check_event(event_name)
        if callback in self._listeners[event_name]:
            return
        self._listeners[event_name].append(callback)

        if self._terminal is not None and self._terminal[0] == event_name:
            self._deliver(event_name, callback, self._terminal[1])

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        self._check_event(event_name)
        if callback in self._listeners[event_name]:
            self._listeners[event_name].remove(callback)

    def emit_stats(self, sample: ProgressSample):
        if self.closed:
            logger.debug("Ignoring stats after upload ended")
            return
        self._dispatch(STATS, sample)

    def fail(self, error: BaseException) -> bool:
        """Emit the terminal ``error`` event. Returns False if already ended."""
        return self._terminate(ERROR, error)

    def finish(self, job: JobDescriptor) -> bool:
        """Emit the terminal ``finished`` event. Returns False if already ended."""
        return self._terminate(FINISHED, job)

    async def wait_closed(self):
        await self._closed.wait()

    def _terminate(self, event_name: str, value: Any) -> bool:
        if self.closed:
            logger.debug(f"Ignoring {event_name} after upload ended with {self._terminal[0]}")
            return False
        self._terminal = (event_name, value)
        self._closed.set()
        self._dispatch(event_name, value)
        return True

    def _dispatch(self, event_name: str, value: Any):
        # Copy list to avoid modification during iteration
        for callback in self._listeners[event_name][:]:
            self._deliver(event_name, callback, value)

    def _deliver(self, event_name: str, callback: Callable, value: Any):
        try:
            result = callback(value)
        except Exception as e:
            logger.warning(f"Error in event listener for {event_name}: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            self._pending.add(future)
            future.add_done_callback(
                lambda done: self._listener_done(event_name, done)
            )

    def _listener_done(self, event_name: str, future: asyncio.Future):
        self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.warning(
                f"Error in event listener for {event_name}: {future.exception()}"
            )

    def _check_event(self, event_name: str):
        if event_name not in EVENTS:
            raise ValueError(f"Unknown event {event_name!r}, expected one of {', '.join(EVENTS)}")
