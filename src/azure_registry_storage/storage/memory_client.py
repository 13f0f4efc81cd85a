"""In-memory object storage client.

Holds objects in a dict for the lifetime of the process. Used for local
development and tests; data is not persisted across restarts.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from datetime import datetime, timezone

from .base import BlobDownload, BlobProperties, ObjectStorageClient
from .exceptions import StorageConflictError, StorageNotFoundError

log = logging.getLogger(__name__)


@dataclass
class _StoredObject:
    content: bytes
    content_type: str
    cache_control: str | None
    created_on: datetime
    last_modified: datetime


class InMemoryStorageClient(ObjectStorageClient):
    """Object storage client backed by a process-local dict."""

    def __init__(self, container_name: str = "memory", chunk_size: int = 64 * 1024):
        self._container_name = container_name
        self._chunk_size = chunk_size
        self._objects: dict[str, _StoredObject] = {}

    def keys(self) -> list[str]:
        """Return the stored keys in insertion order."""
        return list(self._objects)

    async def exists(self, key: str) -> bool:
        return key in self._objects

    async def get_object(self, key: str) -> bytes:
        return self._get(key).content

    async def open_stream(self, key: str) -> BlobDownload:
        content = self._get(key).content
        return BlobDownload(content_length=len(content), chunks=self._iter_chunks(content))

    async def put_object(
        self,
        key: str,
        content: bytes,
        content_type: str,
        cache_control: str | None = None,
        overwrite: bool = True,
    ) -> str:
        if not overwrite and key in self._objects:
            raise StorageConflictError(f"Object already exists: {key}", key=key)
        self._store(key, bytes(content), content_type, cache_control)
        return key

    async def put_stream(
        self,
        key: str,
        chunks: AsyncIterable[bytes],
        content_type: str,
        cache_control: str | None = None,
    ) -> int:
        buffer = bytearray()
        async for chunk in chunks:
            buffer.extend(chunk)
        self._store(key, bytes(buffer), content_type, cache_control)
        return len(buffer)

    async def delete_object(self, key: str) -> None:
        if self._objects.pop(key, None) is None:
            raise StorageNotFoundError(f"Object not found: {key}", key=key)

    async def get_properties(self, key: str) -> BlobProperties:
        stored = self._get(key)
        return BlobProperties(
            size=len(stored.content),
            content_type=stored.content_type,
            cache_control=stored.cache_control,
            created_on=stored.created_on,
            last_modified=stored.last_modified,
        )

    def get_public_url(self, key: str) -> str:
        return f"memory://{self._container_name}/{key}"

    def _get(self, key: str) -> _StoredObject:
        stored = self._objects.get(key)
        if stored is None:
            raise StorageNotFoundError(f"Object not found: {key}", key=key)
        return stored

    def _store(self, key: str, content: bytes, content_type: str, cache_control: str | None) -> None:
        now = datetime.now(timezone.utc)
        previous = self._objects.get(key)
        self._objects[key] = _StoredObject(
            content=content,
            content_type=content_type,
            cache_control=cache_control,
            created_on=previous.created_on if previous else now,
            last_modified=now,
        )

    async def _iter_chunks(self, content: bytes) -> AsyncIterator[bytes]:
        for start in range(0, len(content), self._chunk_size):
            yield content[start : start + self._chunk_size]
