"""
Streaming Upload Engine

Pipes the upload source through a ProgressReader into a multipart object
storage upload, emitting ``stats`` on the event channel while bytes move.
Returning normally means the object is stored; the engine never emits a
terminal event.
"""

import asyncio
import logging
import os
from typing import BinaryIO, Callable, Optional, Tuple

from .events import UploadEventChannel
from .exceptions import SourceOpenError, StorageUploadError
from .models import SourceKind, StorageCredentials, UploadRequest, UploadSettings
from .progress import ProgressMeter, ProgressReader
from .storage import ObjectStorageUploader, S3MultipartUploader

logger = logging.getLogger(__name__)

StorageFactory = Callable[[StorageCredentials, UploadSettings], ObjectStorageUploader]


def open_source(request: UploadRequest) -> Tuple[BinaryIO, Optional[int], bool]:
    """
    Resolve the byte source of a request.

    Returns:
        (source, total bytes or None, whether the engine owns the source)

    Raises:
        SourceOpenError: The file cannot be opened or its size read
    """
    if request.source_kind is SourceKind.STREAM:
        # Without a declared length, percentages stay unavailable unless the
        # stream reports a length later on
        return request.stream, request.length, False

    path = os.fspath(request.file)
    try:
        source = open(path, "rb")
    except OSError as e:
        raise SourceOpenError("Cannot open source file", path=path, original_exception=e)

    if request.length is not None:
        return source, request.length, True

    try:
        size = os.fstat(source.fileno()).st_size
    except OSError as e:
        source.close()
        raise SourceOpenError("Cannot read source file size", path=path, original_exception=e)

    return source, size, True


async def stream_upload(
    request: UploadRequest,
    credentials: StorageCredentials,
    events: UploadEventChannel,
    storage_factory: Optional[StorageFactory] = None,
    settings: Optional[UploadSettings] = None,
) -> None:
    """
    Stream the request's source into ``credentials.bucket/credentials.key``.

    Raises:
        SourceOpenError: The source file is unreadable
        StorageUploadError: Anything failed while transferring
    """
    settings = settings or UploadSettings()
    storage_factory = storage_factory or S3MultipartUploader

    source, total, owned = open_source(request)
    meter = ProgressMeter(
        total=total,
        interval=settings.progress_interval,
        length_source=None if owned else source,
    )
    reader = ProgressReader(source, meter)
    sampler = asyncio.ensure_future(meter.run(events.emit_stats))

    try:
        storage = storage_factory(credentials, settings)
        loop = asyncio.get_running_loop()
        transfer = loop.run_in_executor(
            None, storage.upload, reader, credentials.bucket, credentials.key
        )
        try:
            await asyncio.shield(transfer)
        except asyncio.CancelledError:
            # The worker thread must stop reading before the source is closed
            reader.abort()
            results = await asyncio.gather(transfer, return_exceptions=True)
            logger.info(f"Storage transfer for {request.map_id} abandoned: {results[0]}")
            raise
        if sampler.done() and not sampler.cancelled() and sampler.exception():
            raise sampler.exception()
    except Exception as e:
        raise StorageUploadError(
            "Upload to object storage failed",
            bucket=credentials.bucket,
            key=credentials.key,
            original_exception=e,
        )
    finally:
        sampler.cancel()
        await asyncio.gather(sampler, return_exceptions=True)
        if meter.has_unreported_progress():
            events.emit_stats(meter.sample())
        if owned:
            source.close()

    logger.info(f"Stored {meter.transferred} bytes for {request.map_id}")
