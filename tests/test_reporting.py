"""
Tests for the Rich console reporter
"""

import io

from rich.console import Console

from mapupload.exceptions import RemoteServiceError
from mapupload.models import JobDescriptor, ProgressSample
from mapupload.orchestrator import UploadHandle
from mapupload.reporting import RichProgressReporter


class TestRichProgressReporter:
    """Test cases for RichProgressReporter"""

    def setup_method(self):
        """Setup for each test"""
        self.output = io.StringIO()
        self.console = Console(file=self.output, force_terminal=False, width=100)
        self.reporter = RichProgressReporter(console=self.console)
        self.handle = UploadHandle()

    def test_stats_update_progress(self):
        """Test samples drive the progress task"""
        self.reporter.attach(self.handle, description="Uploading tiles")
        self.handle.channel.emit_stats(ProgressSample(transferred=512, total=2048, interval_ms=100))

        task = self.reporter.progress.tasks[0]
        assert task.description == "Uploading tiles"
        assert task.completed == 512
        assert task.total == 2048
        self.reporter.progress.stop()

    def test_unknown_total(self):
        """Test streams of unknown size keep an indeterminate bar"""
        self.reporter.attach(self.handle)
        self.handle.channel.emit_stats(ProgressSample(transferred=10, total=None, interval_ms=100))

        assert self.reporter.progress.tasks[0].total is None
        self.reporter.progress.stop()

    def test_finished_prints_panel(self):
        """Test the success panel shows the job"""
        self.reporter.attach(self.handle)
        self.handle.channel.finish(JobDescriptor(id="acme.mytileset", data={"status": "queued"}))

        output = self.output.getvalue()
        assert "Upload completed successfully!" in output
        assert "acme.mytileset" in output
        assert "queued" in output
        assert self.reporter.progress.live.is_started is False

    def test_error_printed(self):
        """Test failures are reported on the console"""
        self.reporter.attach(self.handle)
        self.handle.channel.fail(RemoteServiceError("forbidden", status_code=403))

        output = self.output.getvalue()
        assert "Upload failed: forbidden" in output
        assert "403" in output

    def test_attach_returns_handle(self):
        """Test attach is chainable"""
        assert self.reporter.attach(self.handle) is self.handle
        self.reporter.progress.stop()
