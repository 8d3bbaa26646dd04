"""
Tests for the Upload Event Channel

Tests the single-terminal-signal rule, terminal replay for late listeners
and listener isolation.
"""

import asyncio
import pytest

from mapupload.events import UploadEventChannel
from mapupload.exceptions import ValidationError
from mapupload.models import JobDescriptor, ProgressSample


def run(coro):
    return asyncio.run(coro)


class TestUploadEventChannel:
    """Test cases for UploadEventChannel"""

    def setup_method(self):
        """Setup for each test"""
        self.events = []
        self.sample = ProgressSample(transferred=10, total=100, interval_ms=100)
        self.job = JobDescriptor(id="acme.mytileset", data={"status": "queued"})

    def record(self, channel):
        for name in ("stats", "error", "finished"):
            channel.on(name, lambda value, name=name: self.events.append((name, value)))

    def test_stats_then_finished(self):
        """Test stats are delivered in order before the terminal event"""
        async def main():
            channel = UploadEventChannel()
            self.record(channel)
            channel.emit_stats(self.sample)
            assert channel.finish(self.job) is True
            return channel

        channel = run(main())

        assert self.events == [("stats", self.sample), ("finished", self.job)]
        assert channel.closed
        assert channel.terminal == ("finished", self.job)

    def test_single_terminal_signal(self):
        """Test nothing is delivered after the first terminal event"""
        error = ValidationError("bad")

        async def main():
            channel = UploadEventChannel()
            self.record(channel)
            assert channel.fail(error) is True
            assert channel.finish(self.job) is False
            assert channel.fail(ValidationError("again")) is False
            channel.emit_stats(self.sample)

        run(main())

        assert self.events == [("error", error)]

    def test_terminal_replayed_to_late_listener(self):
        """Test a listener attached after the end still gets the outcome once"""
        received = []

        async def main():
            channel = UploadEventChannel()
            channel.emit_stats(self.sample)
            channel.finish(self.job)
            channel.on("finished", received.append)
            channel.on("stats", received.append)
            channel.on("error", received.append)

        run(main())

        assert received == [self.job]

    def test_duplicate_listener_registered_once(self):
        """Test the same callback is not subscribed twice"""
        received = []

        async def main():
            channel = UploadEventChannel()
            channel.on("stats", received.append)
            channel.on("stats", received.append)
            channel.emit_stats(self.sample)

        run(main())

        assert received == [self.sample]

    def test_off(self):
        """Test unsubscribed listeners receive nothing"""
        received = []

        async def main():
            channel = UploadEventChannel()
            channel.on("stats", received.append)
            channel.off("stats", received.append)
            channel.emit_stats(self.sample)

        run(main())

        assert received == []

    def test_failing_listener_is_isolated(self):
        """Test one raising listener does not block the others"""
        received = []

        def broken(value):
            raise RuntimeError("listener bug")

        async def main():
            channel = UploadEventChannel()
            channel.on("finished", broken)
            channel.on("finished", received.append)
            channel.finish(self.job)

        run(main())

        assert received == [self.job]

    def test_async_listener(self):
        """Test coroutine listeners are scheduled on the loop"""
        received = []

        async def listener(job):
            received.append(job)

        async def main():
            channel = UploadEventChannel()
            channel.on("finished", listener)
            channel.finish(self.job)
            await asyncio.sleep(0)

        run(main())

        assert received == [self.job]

    def test_wait_closed(self):
        """Test waiting for termination"""
        async def main():
            channel = UploadEventChannel()
            asyncio.get_running_loop().call_soon(channel.finish, self.job)
            await asyncio.wait_for(channel.wait_closed(), timeout=1)
            return channel.terminal

        assert run(main()) == ("finished", self.job)

    def test_unknown_event(self):
        """Test subscribing to an unknown event name"""
        async def main():
            UploadEventChannel().on("progress", print)

        with pytest.raises(ValueError, match="Unknown event"):
            run(main())
