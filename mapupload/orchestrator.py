"""
Upload Orchestrator

Coordinates one upload call: validate options, fetch storage credentials,
stream the source into storage, register the processing job. Stages run
strictly in sequence on a background task, and every outcome is reported
through the handle's event channel.
"""

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Union

from .api_client import HostingAPIClient, fetch_credentials, finalize_upload
from .engine import StorageFactory, stream_upload
from .environment import UploadEnvironment
from .events import ERROR, FINISHED, UploadEventChannel
from .exceptions import UploadCancelledError, UploadError
from .models import JobDescriptor, UploadRequest, UploadSettings, UploadState
from .storage import S3MultipartUploader
from .validator import validate_options

logger = logging.getLogger(__name__)


class UploadHandle:
    """
    Observable result of an upload call.

    Returned before any stage has run, so listeners attached right after
    ``upload()`` see every event. Terminal events are replayed to listeners
    attached later; ``stats`` events are not.
    """

    def __init__(self, channel: Optional[UploadEventChannel] = None):
        self.channel = channel or UploadEventChannel()
        self._state = UploadState.INIT
        self._task: Optional[asyncio.Task] = None
        self.map_id: Optional[str] = None

    def on(self, event_name: str, callback: Callable) -> "UploadHandle":
        self.channel.on(event_name, callback)
        return self

    def off(self, event_name: str, callback: Callable) -> "UploadHandle":
        self.channel.off(event_name, callback)
        return self

    @property
    def state(self) -> UploadState:
        return self._state

    def done(self) -> bool:
        return self.channel.closed

    @property
    def job(self) -> Optional[JobDescriptor]:
        terminal = self.channel.terminal
        if terminal and terminal[0] == FINISHED:
            return terminal[1]
        return None

    @property
    def error(self) -> Optional[BaseException]:
        terminal = self.channel.terminal
        if terminal and terminal[0] == ERROR:
            return terminal[1]
        return None

    async def wait(self) -> Optional[JobDescriptor]:
        """Wait for the upload to end. Returns the job, or None if it failed."""
        await self.channel.wait_closed()
        return self.job

    def _advance(self, state: UploadState):
        logger.info(f"Upload {self.map_id or '<unvalidated>'}: {self._state.value} -> {state.value}")
        self._state = state


class UploadOrchestrator:
    """Runs the validate → credentials → store → finalize pipeline"""

    def __init__(
        self,
        client: Optional[HostingAPIClient] = None,
        storage_factory: Optional[StorageFactory] = None,
        settings: Optional[UploadSettings] = None,
        environment: Optional[UploadEnvironment] = None,
    ):
        self.environment = environment or UploadEnvironment()
        self.settings = settings or self.environment.get_settings()
        self.client = client
        self.storage_factory = storage_factory or S3MultipartUploader

    def upload(self, options: Union[Mapping[str, Any], UploadRequest]) -> UploadHandle:
        """
        Start an upload and return its handle immediately.

        Must be called from a running event loop. Invalid options are
        reported as the handle's ``error`` event, never raised here.
        """
        handle = UploadHandle()
        handle._task = asyncio.get_running_loop().create_task(
            self._run(options, handle)
        )
        return handle

    async def _run(self, options, handle: UploadHandle):
        channel = handle.channel
        try:
            request = validate_options(options, self.environment)
            handle.map_id = request.map_id
            handle._advance(UploadState.VALIDATED)
            logger.debug(f"Upload source for {request.map_id}: {request.source_kind.value}")

            client = self.client or HostingAPIClient(self.settings)
            try:
                credentials = await fetch_credentials(request, client)
                handle._advance(UploadState.CREDENTIALS_ACQUIRED)

                await stream_upload(
                    request, credentials, channel, self.storage_factory, self.settings
                )
                handle._advance(UploadState.STORED)

                job = await finalize_upload(request, credentials, client)
            finally:
                if client is not self.client:
                    client.close()

        except asyncio.CancelledError:
            self._fail(handle, UploadCancelledError("Upload cancelled"))
            raise
        except UploadError as e:
            self._fail(handle, e)
        except Exception as e:
            logger.exception("Unexpected error during upload")
            self._fail(handle, e)
        else:
            handle._advance(UploadState.FINALIZED)
            logger.info(f"Upload of {request.map_id} registered as job {job.id}")
            channel.finish(job)

    def _fail(self, handle: UploadHandle, error: BaseException):
        logger.error(f"Upload failed in state {handle.state.value}: {error}")
        handle._advance(UploadState.FAILED)
        handle.channel.fail(error)


def upload(options: Union[Mapping[str, Any], UploadRequest], **kwargs) -> UploadHandle:
    """Start an upload with a default orchestrator; see UploadOrchestrator"""
    return UploadOrchestrator(**kwargs).upload(options)
