"""
Console Progress Reporter

Renders an UploadHandle on a terminal with Rich: a transfer bar driven by
``stats`` events, then a success panel or an error line.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)
from rich.text import Text

from .models import JobDescriptor, ProgressSample
from .orchestrator import UploadHandle


class RichProgressReporter:
    """Observer that draws upload progress with Rich"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=self.console,
        )
        self._task: Optional[TaskID] = None

    def attach(self, handle: UploadHandle, description: str = "Uploading") -> UploadHandle:
        """Start rendering and subscribe to the handle's events"""
        self._task = self.progress.add_task(description, total=None)
        self.progress.start()
        handle.on("stats", self._on_stats)
        handle.on("finished", self._on_finished)
        handle.on("error", self._on_error)
        return handle

    def _on_stats(self, sample: ProgressSample):
        self.progress.update(self._task, completed=sample.transferred, total=sample.total)

    def _on_finished(self, job: JobDescriptor):
        self.progress.stop()

        message_text = Text()
        message_text.append("🎉 ", style="bold green")
        message_text.append("Upload completed successfully!\n", style="bold green")
        message_text.append("Job: ", style="green")
        message_text.append(str(job.id), style="bold green")
        if job.status:
            message_text.append("\nStatus: ", style="blue")
            message_text.append(job.status, style="bold blue")

        self.console.print(Panel(message_text, title="🗺️  Upload", border_style="green", padding=(1, 2)))

    def _on_error(self, error: BaseException):
        self.progress.stop()
        self.console.print(f"❌ Upload failed: {error}", style="red")
