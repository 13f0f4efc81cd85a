"""
Streaming tarball I/O.

``UploadTarball`` is the write side: chunks are buffered in a bounded
queue that feeds a background upload task. ``done()`` joins two
conditions before reporting: the caller has signaled end of input and
the upload task has settled. The outcome is computed once and shared by
every caller of ``done()``. Use the sink as an async context manager, or
call ``done()`` yourself: a sink dropped without either keeps its upload
task pending until the owning plugin is closed, which cancels it.

``ReadTarball`` is the read side: an opened download whose length is
known before the body is consumed, or a redirect to the blob's URL.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Optional

from .storage.base import ObjectStorageClient
from .storage.exceptions import StorageError

log = logging.getLogger(__name__)

_END_OF_INPUT = object()


class UploadState(str, Enum):
    IDLE = "idle"
    WRITING = "writing"
    FINALIZING = "finalizing"
    UPLOADED = "uploaded"
    FAILED = "failed"


class UploadTarball:
    """Writable sink bound to a background upload of one tarball."""

    def __init__(
        self,
        client: ObjectStorageClient,
        key: str,
        content_type: str,
        cache_control: Optional[str] = None,
        max_buffered_chunks: int = 16,
        uploads: Optional[set] = None,
    ):
        self._client = client
        self._key = key
        self._content_type = content_type
        self._cache_control = cache_control
        self._uploads = uploads

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_buffered_chunks)
        self._upload: Optional[asyncio.Task] = None
        self._outcome: Optional[asyncio.Task] = None
        self._input_ended = False
        self._abandoned = False
        self._state = UploadState.IDLE
        self.bytes_written = 0

    @property
    def key(self) -> str:
        return self._key

    @property
    def state(self) -> UploadState:
        return self._state

    async def write(self, chunk: bytes) -> None:
        """Queue *chunk* for upload, waiting while the buffer is full.

        Raises the upload's error if the upload has already failed.
        """
        if self._input_ended:
            raise StorageError("Cannot write to a tarball upload after it has ended", key=self._key)
        if not chunk:
            return

        self._ensure_started()
        self._state = UploadState.WRITING
        await self._enqueue(bytes(chunk))
        self.bytes_written += len(chunk)

    async def done(self) -> None:
        """Signal end of input and wait for the upload to settle.

        Returns once the tarball is stored; raises the upload's error
        otherwise. Safe to call more than once, concurrently or not.
        """
        if self._outcome is None:
            self._outcome = asyncio.get_running_loop().create_task(self._finalize())
        await asyncio.shield(self._outcome)

    async def __aenter__(self) -> "UploadTarball":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.done()
        else:
            await self._abandon()

    def _ensure_started(self) -> None:
        if self._upload is None:
            self._upload = asyncio.get_running_loop().create_task(self._run_upload())
            if self._uploads is not None:
                self._uploads.add(self._upload)
                self._upload.add_done_callback(self._uploads.discard)

    async def _run_upload(self) -> int:
        return await self._client.put_stream(
            self._key,
            self._chunks(),
            content_type=self._content_type,
            cache_control=self._cache_control,
        )

    async def _chunks(self) -> AsyncIterator[bytes]:
        while True:
            item = await self._queue.get()
            if item is _END_OF_INPUT:
                return
            yield item

    async def _enqueue(self, item) -> None:
        put = asyncio.ensure_future(self._queue.put(item))
        done, _ = await asyncio.wait({put, self._upload}, return_when=asyncio.FIRST_COMPLETED)
        if put in done:
            return

        put.cancel()
        # The upload stopped consuming input: surface its error.
        self._raise_if_upload_ended()
        raise StorageError("Tarball upload ended before all input was consumed", key=self._key)

    async def _finalize(self) -> None:
        if self._abandoned:
            raise StorageError("Tarball upload was abandoned", key=self._key)

        self._input_ended = True
        self._state = UploadState.FINALIZING
        self._ensure_started()
        try:
            if not self._upload.done():
                await self._enqueue(_END_OF_INPUT)
            await asyncio.wait({self._upload})
            self._raise_if_upload_ended()
        except Exception as e:
            self._state = UploadState.FAILED
            log.error("Error creating package tarball %s: %s", self._key, e)
            raise

        self._state = UploadState.UPLOADED
        log.debug("Finished uploading package tarball %s (%d bytes)", self._key, self.bytes_written)

    def _raise_if_upload_ended(self) -> None:
        if self._upload.cancelled():
            raise StorageError("Tarball upload was cancelled", key=self._key)
        self._upload.result()

    async def _abandon(self) -> None:
        self._input_ended = True
        if self._outcome is not None:
            return

        self._abandoned = True
        self._state = UploadState.FAILED
        if self._upload is not None and not self._upload.done():
            self._upload.cancel()
            await asyncio.wait({self._upload})
        if self._upload is not None and not self._upload.cancelled() and self._upload.exception() is not None:
            log.debug("Abandoned tarball upload %s had failed: %s", self._key, self._upload.exception())
        log.warning("Abandoned tarball upload %s", self._key)


class ReadTarball:
    """An opened tarball download, or a redirect to where the tarball lives."""

    def __init__(
        self,
        key: str,
        content_length: Optional[int] = None,
        chunks: Optional[AsyncIterator[bytes]] = None,
        redirect_url: Optional[str] = None,
    ):
        self.key = key
        self.content_length = content_length
        self.redirect_url = redirect_url
        self._chunks = chunks
        self._consumed = False

    @property
    def is_redirect(self) -> bool:
        return self.redirect_url is not None

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._chunks is None:
            raise StorageError("Tarball read is a redirect and has no body", key=self.key)
        if self._consumed:
            raise StorageError("Tarball body has already been consumed", key=self.key)
        self._consumed = True
        return self._chunks

    async def read(self) -> bytes:
        """Consume the whole body and return it."""
        buffer = bytearray()
        async for chunk in self:
            buffer.extend(chunk)
        return bytes(buffer)
