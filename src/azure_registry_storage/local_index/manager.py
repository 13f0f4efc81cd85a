"""
In-process owner of the registry's local index.

The index is loaded lazily on first use and cached for the lifetime of the
manager; every mutation writes the whole document back through the
provider. Mutations and the lazy load run one at a time under a single
asyncio lock. There is no cross-process invalidation: one process is
expected to own the index, or the provider must bring its own concurrency
control.
"""

import asyncio
import logging
from typing import List, Optional

from .base import LocalIndex, LocalIndexProvider

log = logging.getLogger(__name__)


class LocalIndexManager:
    """Serializes list and secret operations against a LocalIndexProvider."""

    def __init__(self, provider: LocalIndexProvider):
        self._provider = provider
        self._local_index: Optional[LocalIndex] = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._local_index is not None

    async def add(self, name: str) -> None:
        """Append *name* to the package list, saving only if it was missing."""
        async with self._lock:
            local_index = await self._get_or_create()
            if name in local_index.list:
                return

            # A failed save leaves the name in the cached list.
            local_index.list.append(name)
            log.debug("Added package %s", name)
            await self._save(local_index)

    async def remove(self, name: str) -> None:
        """Remove *name* from the package list. Unknown names are a no-op."""
        async with self._lock:
            local_index = await self._get_or_create()
            if name not in local_index.list:
                return

            local_index.list.remove(name)
            log.debug("Removed package %s", name)
            await self._save(local_index)

    async def get(self) -> List[str]:
        """Return a snapshot of the package list."""
        async with self._lock:
            local_index = await self._get_or_create()
            return list(local_index.list)

    async def get_secret(self) -> str:
        async with self._lock:
            return (await self._get_or_create()).secret

    async def set_secret(self, secret: str) -> None:
        async with self._lock:
            local_index = await self._get_or_create()
            local_index.secret = secret
            await self._save(local_index)

    async def _get_or_create(self) -> LocalIndex:
        if self._local_index is not None:
            return self._local_index

        local_index = await self._provider.get_local_index()
        if local_index is None:
            log.warning("Local index doesn't exist, creating...")
            local_index = LocalIndex()
            await self._provider.save_local_index(local_index)
        else:
            log.info("Loaded local index with %d packages", len(local_index.list))

        self._local_index = local_index
        return local_index

    async def _save(self, local_index: LocalIndex) -> None:
        try:
            await self._provider.save_local_index(local_index)
        except Exception as e:
            log.error("Error saving local index: %s", e)
            raise
