"""Local index provider that keeps the index as a blob in the package container."""

import logging
from typing import Optional

from ..constants import DEFAULT_DB_FILE_NAME, JSON_CONTENT_TYPE
from ..storage.base import ObjectStorageClient
from .base import LocalIndex, LocalIndexProvider

log = logging.getLogger(__name__)


class BlobLocalIndexProvider(LocalIndexProvider):
    """Stores the local index as a JSON blob next to the packages."""

    def __init__(self, client: ObjectStorageClient, db_file_name: str = DEFAULT_DB_FILE_NAME):
        self._client = client
        self._key = db_file_name

    async def get_local_index(self) -> Optional[LocalIndex]:
        if not await self._client.exists(self._key):
            return None

        log.debug("Getting local index from blob %s", self._key)
        raw = await self._client.get_object(self._key)
        return LocalIndex.from_json(raw, key=self._key)

    async def save_local_index(self, local_index: LocalIndex) -> None:
        await self._client.put_object(
            self._key,
            local_index.to_json().encode("utf-8"),
            content_type=JSON_CONTENT_TYPE,
        )
