"""
Exceptions for the upload pipeline.

Every stage raises a subclass of UploadError. The orchestrator turns the
first one raised into the single terminal ``error`` event of an upload, so
callers only ever see these types on the event channel.

Each exception includes:
- Clear error message
- Stage context (endpoint, status code, path, bucket/key) where relevant
- Original exception preserved for debugging
"""

from typing import List, Optional, Sequence


class UploadError(Exception):
    """
    Base exception for all upload errors.

    Context fields are appended to the rendered message so a single
    ``str(error)`` is enough for a log line or a console message.
    """

    def __init__(
        self,
        message: str,
        original_exception: Optional[BaseException] = None,
        redact: Sequence[str] = (),
        **context,
    ):
        self.message = message
        self.original_exception = original_exception

        error_parts = [message]
        for name, value in context.items():
            if value is not None:
                error_parts.append(f"{name.replace('_', ' ').capitalize()}: {value}")

        if original_exception is not None:
            error_parts.append(f"Original error: {original_exception}")

        # Transport errors can echo the request URL, token included
        rendered = " | ".join(error_parts)
        for secret in redact:
            if secret:
                rendered = rendered.replace(secret, "***")

        super().__init__(rendered)


class ValidationError(UploadError):
    """Caller options are invalid. Raised before any I/O."""


class NetworkError(UploadError):
    """
    Raised when the hosting API cannot be reached.

    This typically indicates:
    - DNS resolution failures
    - Connection refused or proxy failures
    - Request timeouts
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
        redact: Sequence[str] = (),
    ):
        self.endpoint = endpoint
        super().__init__(message, original_exception, redact, endpoint=endpoint)


class ResponseParseError(UploadError):
    """The hosting API answered with a body that is not valid JSON."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.endpoint = endpoint
        super().__init__(message, original_exception, endpoint=endpoint)


class InvalidCredentialsError(UploadError):
    """Credentials payload parsed fine but lacks ``key`` or ``bucket``."""


class RemoteServiceError(UploadError):
    """
    Raised when the credentials endpoint answers with a non-200 status.

    ``message`` is the server's own ``message`` field when it sent one.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, status_code=status_code, endpoint=endpoint)


class FinalizationError(UploadError):
    """Job registration answered with anything other than 201."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, status_code=status_code, endpoint=endpoint)


class SourceOpenError(UploadError):
    """The local source file could not be opened or inspected."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.path = path
        super().__init__(message, original_exception, path=path)


class StorageUploadError(UploadError):
    """
    Raised for any failure while streaming the source into object storage.

    Wraps errors from the source stream, the progress meter and the
    multipart upload alike; there is no partial success.
    """

    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
    ):
        self.bucket = bucket
        self.key = key
        super().__init__(message, original_exception, bucket=bucket, key=key)


class UploadCancelledError(UploadError):
    """The pipeline task was cancelled before reaching a terminal state."""


class EnvironmentValidationError(UploadError):
    """Required environment variables are missing."""

    def __init__(self, message: str, missing_vars: Optional[List[str]] = None):
        self.missing_vars = missing_vars or []
        super().__init__(message)
