"""
mapupload - upload files and streams as hosted map datasets

One upload call runs a 3-stage workflow against the hosting service:

Stage 1: Credentials - Exchange account + access token for scoped storage credentials
Stage 2: Storage - Stream the source into a multipart object storage upload
Stage 3: Registration - Register the stored object as a processing job

Usage:
    handle = mapupload.upload({
        "file": "tiles.mbtiles",
        "account": "acme",
        "access_token": token,
        "map_id": "acme.mytileset",
    })
    handle.on("stats", print)
    job = await handle.wait()
"""

from .environment import DEFAULT_HOST_URL, UploadEnvironment
from .events import UploadEventChannel
from .exceptions import (
    EnvironmentValidationError,
    FinalizationError,
    InvalidCredentialsError,
    NetworkError,
    RemoteServiceError,
    ResponseParseError,
    SourceOpenError,
    StorageUploadError,
    UploadCancelledError,
    UploadError,
    ValidationError,
)
from .models import (
    JobDescriptor,
    ProgressSample,
    SourceKind,
    StorageCredentials,
    UploadRequest,
    UploadSettings,
    UploadState,
)
from .orchestrator import UploadHandle, UploadOrchestrator, upload
from .validator import validate_options

__version__ = "0.1.0"
__all__ = [
    # Main
    "upload",
    "UploadOrchestrator",
    "UploadHandle",
    "UploadEventChannel",
    "validate_options",
    "UploadEnvironment",
    "DEFAULT_HOST_URL",
    # Models
    "UploadRequest",
    "StorageCredentials",
    "ProgressSample",
    "JobDescriptor",
    "SourceKind",
    "UploadSettings",
    "UploadState",
    # Errors
    "UploadError",
    "ValidationError",
    "NetworkError",
    "ResponseParseError",
    "InvalidCredentialsError",
    "RemoteServiceError",
    "FinalizationError",
    "SourceOpenError",
    "StorageUploadError",
    "UploadCancelledError",
    "EnvironmentValidationError",
]
