"""
Object Storage Uploader

Thin adapter over boto3's managed transfer. Chunking, part retries and
checksums belong to boto3; this module only binds the scoped credentials,
the ACL and the transfer tuning for one object.
"""

import logging
from typing import BinaryIO, Optional, Protocol, runtime_checkable

import boto3
from boto3.s3.transfer import TransferConfig

from .models import StorageCredentials, UploadSettings

logger = logging.getLogger(__name__)


@runtime_checkable
class ObjectStorageUploader(Protocol):
    """Interface for putting one object into storage"""

    def upload(self, fileobj: BinaryIO, bucket: str, key: str) -> None:
        """Upload a readable stream as ``bucket/key``. Blocks until done."""
        ...


class S3MultipartUploader:
    """Multipart S3 put object using scoped, short-lived credentials"""

    def __init__(
        self,
        credentials: StorageCredentials,
        settings: Optional[UploadSettings] = None,
        client=None,
    ):
        self.settings = settings or UploadSettings()
        self.client = client or boto3.client(
            "s3",
            region_name=self.settings.region,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
        )
        self.transfer_config = TransferConfig(
            multipart_threshold=self.settings.part_size,
            multipart_chunksize=self.settings.part_size,
            max_concurrency=self.settings.max_concurrency,
        )

    def upload(self, fileobj: BinaryIO, bucket: str, key: str) -> None:
        logger.info(f"Streaming upload to s3://{bucket}/{key}")
        self.client.upload_fileobj(
            fileobj,
            bucket,
            key,
            ExtraArgs={"ACL": self.settings.acl},
            Config=self.transfer_config,
        )
