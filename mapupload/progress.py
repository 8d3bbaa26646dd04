"""
Progress measurement for streaming uploads.

ProgressReader sits between the byte source and the storage upload and
counts every byte read. ProgressMeter samples that counter on a fixed
wall-clock interval, so the sampling cost does not depend on how small the
reads are or how fast the transfer goes.
"""

import asyncio
import logging
import threading
import time
from typing import Any, BinaryIO, Callable, Optional

from .exceptions import UploadCancelledError
from .models import ProgressSample

logger = logging.getLogger(__name__)


class ProgressMeter:
    """Thread-safe byte counter that produces ProgressSample snapshots"""

    def __init__(
        self,
        total: Optional[int] = None,
        interval: float = 0.1,
        length_source: Any = None,
    ):
        """
        Args:
            total: Expected size in bytes, if known
            interval: Seconds between samples
            length_source: Object whose integer ``length`` attribute is
                adopted as the total once it appears (caller streams that
                learn their size while being read)
        """
        self.interval = interval
        self._total = total
        self._length_source = length_source
        self._lock = threading.Lock()
        self._transferred = 0
        self._started = time.monotonic()
        self._last_time = self._started
        self._last_transferred = 0

    @property
    def transferred(self) -> int:
        with self._lock:
            return self._transferred

    @property
    def total(self) -> Optional[int]:
        if self._total is None and self._length_source is not None:
            length = getattr(self._length_source, "length", None)
            if isinstance(length, int) and not isinstance(length, bool) and length >= 0:
                self._total = length
        return self._total

    def add(self, count: int):
        with self._lock:
            self._transferred += count

    def has_unreported_progress(self) -> bool:
        return self.transferred != self._last_transferred

    def sample(self) -> ProgressSample:
        """Take a new sample and reset the interval window"""
        now = time.monotonic()
        transferred = self.transferred
        elapsed = now - self._last_time
        delta = transferred - self._last_transferred

        sample = ProgressSample(
            transferred=transferred,
            total=self.total,
            interval_ms=int(elapsed * 1000),
            delta=delta,
            speed=delta / elapsed if elapsed > 0 else 0.0,
            runtime=now - self._started,
        )

        self._last_time = now
        self._last_transferred = transferred
        return sample

    async def run(self, emit: Callable[[ProgressSample], Any]):
        """Emit a sample every interval until cancelled"""
        while True:
            await asyncio.sleep(self.interval)
            sample = self.sample()
            logger.debug(f"Progress: {sample.transferred}/{sample.total} bytes")
            emit(sample)


class ProgressReader:
    """
    Read-only file-like wrapper that reports bytes read to a meter.

    Only ``read`` is exposed, so the storage client treats the source as a
    non-seekable stream and reads it once from start to end.
    """

    def __init__(self, source: BinaryIO, meter: ProgressMeter):
        self._source = source
        self._meter = meter
        self._aborted = threading.Event()

    def abort(self):
        """Make the next read fail so the storage transfer gives up"""
        self._aborted.set()

    def read(self, size: int = -1) -> bytes:
        if self._aborted.is_set():
            raise UploadCancelledError("Upload aborted while reading the source")
        chunk = self._source.read(size)
        if chunk:
            self._meter.add(len(chunk))
        return chunk
