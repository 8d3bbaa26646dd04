"""
Data Models for the Upload Workflow

Dataclasses shared by every stage of the pipeline. Request and result
models are frozen; a new ProgressSample is built for every progress tick.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, Optional, Union

# Map ids are namespaced by account: "<account>.<name>"
MAP_ID_SEPARATOR = "."


def mask_secret(value: Optional[str]) -> Optional[str]:
    """Mask a secret for display, keeping only enough to tell values apart"""
    if not value:
        return value
    if len(value) <= 12:
        return "***"
    return f"{value[:4]}...{value[-4:]}"


class SourceKind(Enum):
    """Where the bytes of an upload come from"""
    FILE = "file"
    STREAM = "stream"


class UploadState(Enum):
    """Orchestrator state machine"""
    INIT = "init"
    VALIDATED = "validated"
    CREDENTIALS_ACQUIRED = "credentials_acquired"
    STORED = "stored"
    FINALIZED = "finalized"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.FINALIZED, UploadState.FAILED)


@dataclass(frozen=True)
class UploadRequest:
    """Validated, normalized options for one upload call"""
    source_kind: SourceKind
    account: str
    access_token: str = field(repr=False)
    map_id: str
    host_url: str
    file: Optional[Union[str, os.PathLike]] = None
    stream: Optional[BinaryIO] = field(default=None, repr=False)
    length: Optional[int] = None
    proxy: Optional[str] = None

    @property
    def proxies(self) -> Optional[Dict[str, str]]:
        """Proxy mapping in the shape ``requests`` expects"""
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}

    def to_options(self) -> Dict[str, Any]:
        """Raw options equivalent to this request"""
        return {
            "file": self.file,
            "stream": self.stream,
            "length": self.length,
            "account": self.account,
            "access_token": self.access_token,
            "map_id": self.map_id,
            "host_url": self.host_url,
            "proxy": self.proxy,
        }


@dataclass(frozen=True)
class StorageCredentials:
    """
    Short-lived, scoped credentials to write one object to storage.

    The three secret fields are capability tokens: they are left out of
    ``repr`` and only appear masked in ``summary()``.
    """
    bucket: str
    key: str
    access_key_id: Optional[str] = field(default=None, repr=False)
    secret_access_key: Optional[str] = field(default=None, repr=False)
    session_token: Optional[str] = field(default=None, repr=False)

    @property
    def object_url(self) -> str:
        """Public URL of the stored object"""
        return f"http://{self.bucket}.s3.amazonaws.com/{self.key}"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "StorageCredentials":
        return cls(
            bucket=data["bucket"],
            key=data["key"],
            access_key_id=data.get("accessKeyId"),
            secret_access_key=data.get("secretAccessKey"),
            session_token=data.get("sessionToken"),
        )

    def summary(self) -> Dict[str, Optional[str]]:
        """Loggable view of the credentials"""
        return {
            "bucket": self.bucket,
            "key": self.key,
            "access_key_id": mask_secret(self.access_key_id),
            "secret_access_key": "***" if self.secret_access_key else None,
            "session_token": "***" if self.session_token else None,
        }


@dataclass(frozen=True)
class ProgressSample:
    """One progress measurement of a streaming upload"""
    transferred: int
    total: Optional[int]
    interval_ms: int
    delta: int = 0
    speed: float = 0.0
    runtime: float = 0.0

    @property
    def percentage(self) -> Optional[float]:
        """Percent complete, or None while the total size is unknown"""
        if self.total is None:
            return None
        if self.total == 0:
            return 100.0
        return min(100.0, self.transferred / self.total * 100)

    @property
    def remaining(self) -> Optional[int]:
        if self.total is None:
            return None
        return max(0, self.total - self.transferred)

    @property
    def eta(self) -> Optional[float]:
        """Estimated seconds left at the current speed"""
        remaining = self.remaining
        if remaining is None or self.speed <= 0:
            return None
        return remaining / self.speed


@dataclass(frozen=True)
class JobDescriptor:
    """Processing job registered by the hosting service"""
    id: Optional[str]
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> Optional[str]:
        return self.data.get("status")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "JobDescriptor":
        return cls(id=data.get("id"), data=dict(data))


@dataclass(frozen=True)
class UploadSettings:
    """Process-wide tunables for upload operations"""
    request_timeout: float = 60
    progress_interval: float = 0.1
    part_size: int = 5 * 1024 * 1024
    max_concurrency: int = 4
    region: str = "us-east-1"
    acl: str = "public-read"
