"""Abstract base class for object storage backends."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BlobProperties:
    """Properties of a stored object, as reported by the backend."""

    size: int
    content_type: str | None = None
    cache_control: str | None = None
    created_on: datetime | None = None
    last_modified: datetime | None = None


@dataclass
class BlobDownload:
    """An opened download: the length is known before the body is consumed."""

    content_length: int
    chunks: AsyncIterator[bytes]


class ObjectStorageClient(ABC):
    """Backend-agnostic interface for blob storage operations.

    Keys are POSIX-style slash-joined paths. Every write replaces the
    whole object, and a completed write is visible to subsequent reads.
    """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if an object is stored under *key*."""

    @abstractmethod
    async def get_object(self, key: str) -> bytes:
        """Download content by key. Raises StorageNotFoundError if missing."""

    @abstractmethod
    async def open_stream(self, key: str) -> BlobDownload:
        """Start a streamed download. Raises StorageNotFoundError if missing."""

    @abstractmethod
    async def put_object(
        self,
        key: str,
        content: bytes,
        content_type: str,
        cache_control: str | None = None,
        overwrite: bool = True,
    ) -> str:
        """Upload content in one request and return the key.

        With ``overwrite=False`` an existing object is left untouched and
        StorageConflictError is raised.
        """

    @abstractmethod
    async def put_stream(
        self,
        key: str,
        chunks: AsyncIterable[bytes],
        content_type: str,
        cache_control: str | None = None,
    ) -> int:
        """Upload an async stream of chunks and return the number of bytes stored.

        Nothing becomes visible under *key* unless the whole stream uploads.
        """

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Delete a single object. Raises StorageNotFoundError if missing."""

    @abstractmethod
    async def get_properties(self, key: str) -> BlobProperties:
        """Fetch object properties. Raises StorageNotFoundError if missing."""

    @abstractmethod
    def get_public_url(self, key: str) -> str:
        """Return the public URL for the given key."""

    async def close(self) -> None:
        """Release network resources held by the client."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
