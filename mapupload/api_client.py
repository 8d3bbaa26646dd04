"""
Hosting API Client

Handles the two calls made to the map hosting service around the storage
upload: fetching scoped storage credentials, and registering the stored
object as a processing job. Each call is attempted exactly once.
"""

import asyncio
import functools
import logging
from typing import Any, Optional
from urllib.parse import urlparse

import requests

from .exceptions import (
    FinalizationError,
    InvalidCredentialsError,
    NetworkError,
    RemoteServiceError,
    ResponseParseError,
)
from .models import JobDescriptor, StorageCredentials, UploadRequest, UploadSettings

logger = logging.getLogger(__name__)


class HostingAPIClient:
    """Handles all API interactions with the hosting service"""

    def __init__(
        self,
        settings: Optional[UploadSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or UploadSettings()
        self.session = session or requests.Session()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.session.close()

    def get_credentials(self, request: UploadRequest) -> StorageCredentials:
        """GET /uploads/v1/{account}/credentials"""
        endpoint = f"uploads/v1/{request.account}/credentials"

        try:
            response = self.session.get(
                f"{request.host_url}/{endpoint}",
                params={"access_token": request.access_token},
                headers={"Host": urlparse(request.host_url).netloc},
                proxies=request.proxies,
                timeout=self.settings.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                "Failed to fetch upload credentials",
                endpoint=endpoint,
                original_exception=e,
                redact=[request.access_token],
            )

        if response.status_code != 200:
            raise RemoteServiceError(
                self._server_message(
                    response, f"Hosting service is not available: {response.status_code}"
                ),
                status_code=response.status_code,
                endpoint=endpoint,
            )

        data = self._parse_json(response, endpoint)
        if not isinstance(data, dict) or not data.get("key") or not data.get("bucket"):
            raise InvalidCredentialsError("Invalid credentials: \"key\" and \"bucket\" are required")

        credentials = StorageCredentials.from_api(data)
        logger.debug(f"Received storage credentials: {credentials.summary()}")
        return credentials

    def create_upload(
        self, request: UploadRequest, credentials: StorageCredentials
    ) -> JobDescriptor:
        """POST /uploads/v1/{account}"""
        endpoint = f"uploads/v1/{request.account}"

        payload = {
            "id": request.map_id,
            "url": credentials.object_url,
            "data": request.map_id,
        }

        try:
            response = self.session.post(
                f"{request.host_url}/{endpoint}",
                params={"access_token": request.access_token},
                json=payload,
                proxies=request.proxies,
                timeout=self.settings.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                "Failed to register upload",
                endpoint=endpoint,
                original_exception=e,
                redact=[request.access_token],
            )

        if response.status_code != 201:
            raise FinalizationError(
                self._server_message(
                    response, f"Upload registration failed: {response.status_code}"
                ),
                status_code=response.status_code,
                endpoint=endpoint,
            )

        data = self._parse_json(response, endpoint)
        if not isinstance(data, dict):
            raise ResponseParseError("Expected a JSON object", endpoint=endpoint)

        return JobDescriptor.from_api(data)

    def _parse_json(self, response: requests.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(
                "Malformed JSON in response", endpoint=endpoint, original_exception=e
            )

    def _server_message(self, response: requests.Response, default: str) -> str:
        """Use the server's ``message`` field when the error body has one"""
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return default


async def _call_in_executor(
    client: Optional[HostingAPIClient], method_name: str, *args
):
    """Run a blocking client method without holding up the event loop"""
    owned = client is None
    client = client or HostingAPIClient()
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(
            None, functools.partial(getattr(client, method_name), *args)
        )
    finally:
        if owned:
            client.close()


async def fetch_credentials(
    request: UploadRequest, client: Optional[HostingAPIClient] = None
) -> StorageCredentials:
    """Exchange account and access token for storage credentials"""
    logger.info(f"Fetching upload credentials for account {request.account}")
    return await _call_in_executor(client, "get_credentials", request)


async def finalize_upload(
    request: UploadRequest,
    credentials: StorageCredentials,
    client: Optional[HostingAPIClient] = None,
) -> JobDescriptor:
    """Register the stored object as a processing job"""
    logger.info(f"Registering upload {request.map_id}")
    return await _call_in_executor(
        client, "create_upload", request, credentials
    )
