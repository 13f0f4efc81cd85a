"""Azure Blob Storage client."""

import logging
from collections.abc import AsyncIterable, AsyncIterator

from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient

from .base import BlobDownload, BlobProperties, ObjectStorageClient
from .exceptions import (
    StorageConflictError,
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
    StoragePermissionError,
)

log = logging.getLogger(__name__)


class AzureBlobStorageClient(ObjectStorageClient):
    """Azure Blob Storage client bound to one container."""

    def __init__(self, container_name: str, connection_string: str):
        if not connection_string:
            raise ValueError("Azure Blob Storage requires a connection_string")

        self._container_name = container_name
        self._service_client = BlobServiceClient.from_connection_string(connection_string)
        self._container_client = self._service_client.get_container_client(container_name)

    async def exists(self, key: str) -> bool:
        try:
            return await self._container_client.get_blob_client(key).exists()
        except Exception as e:
            raise self._translate_error(e, key) from e

    async def get_object(self, key: str) -> bytes:
        try:
            downloader = await self._container_client.get_blob_client(key).download_blob()
            return await downloader.readall()
        except Exception as e:
            raise self._translate_error(e, key) from e

    async def open_stream(self, key: str) -> BlobDownload:
        try:
            downloader = await self._container_client.get_blob_client(key).download_blob()
        except Exception as e:
            raise self._translate_error(e, key) from e
        return BlobDownload(content_length=downloader.size, chunks=self._iter_download(downloader, key))

    async def put_object(
        self,
        key: str,
        content: bytes,
        content_type: str,
        cache_control: str | None = None,
        overwrite: bool = True,
    ) -> str:
        try:
            await self._container_client.get_blob_client(key).upload_blob(
                content,
                overwrite=overwrite,
                content_settings=ContentSettings(content_type=content_type, cache_control=cache_control),
            )
            return key
        except Exception as e:
            raise self._translate_error(e, key) from e

    async def put_stream(
        self,
        key: str,
        chunks: AsyncIterable[bytes],
        content_type: str,
        cache_control: str | None = None,
    ) -> int:
        written = 0

        async def counted() -> AsyncIterator[bytes]:
            nonlocal written
            async for chunk in chunks:
                written += len(chunk)
                yield chunk

        # Block blob uploads of unknown length stage blocks and commit the
        # block list last, so a failed stream leaves nothing under the key.
        try:
            await self._container_client.get_blob_client(key).upload_blob(
                counted(),
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type, cache_control=cache_control),
            )
        except Exception as e:
            raise self._translate_error(e, key) from e
        return written

    async def delete_object(self, key: str) -> None:
        try:
            await self._container_client.get_blob_client(key).delete_blob()
        except Exception as e:
            raise self._translate_error(e, key) from e

    async def get_properties(self, key: str) -> BlobProperties:
        try:
            properties = await self._container_client.get_blob_client(key).get_blob_properties()
        except Exception as e:
            raise self._translate_error(e, key) from e
        settings = properties.content_settings
        return BlobProperties(
            size=properties.size,
            content_type=settings.content_type if settings else None,
            cache_control=settings.cache_control if settings else None,
            created_on=properties.creation_time,
            last_modified=properties.last_modified,
        )

    def get_public_url(self, key: str) -> str:
        return self._container_client.get_blob_client(key).url

    async def close(self) -> None:
        await self._service_client.close()

    async def _iter_download(self, downloader, key: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in downloader.chunks():
                yield chunk
        except Exception as e:
            raise self._translate_error(e, key) from e

    def _translate_error(self, error: Exception, key: str | None = None) -> StorageError:
        if isinstance(error, ResourceNotFoundError):
            return StorageNotFoundError(str(error), key=key, cause=error)
        if isinstance(error, ResourceExistsError):
            return StorageConflictError(str(error), key=key, cause=error)
        if isinstance(error, HttpResponseError) and error.status_code == 403:
            return StoragePermissionError(str(error), key=key, cause=error)
        if isinstance(error, (ServiceRequestError, ConnectionError)):
            return StorageConnectionError(str(error), key=key, cause=error)
        return StorageError(str(error), key=key, cause=error)
