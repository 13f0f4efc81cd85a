"""
Azure storage plugin for the package registry.

Exposes the registry-wide operations (package list and secret, backed by
the local index) and hands out ``PackageStorage`` handles for per-package
work. All handles share one object storage client.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from .config import AzureStoragePluginConfig
from .local_index.base import LocalIndexProvider
from .local_index.factory import create_local_index_provider
from .local_index.manager import LocalIndexManager
from .package_storage import PackageStorage
from .storage.base import ObjectStorageClient
from .storage.exceptions import StorageNotImplementedError
from .storage.factory import create_storage_client

log = logging.getLogger(__name__)


class AzureStoragePlugin:
    """Registry storage plugin backed by Azure Blob Storage."""

    def __init__(
        self,
        config: Union[AzureStoragePluginConfig, Dict[str, Any]],
        client: Optional[ObjectStorageClient] = None,
        local_index_provider: Optional[LocalIndexProvider] = None,
    ):
        if isinstance(config, AzureStoragePluginConfig):
            self.config = config
        else:
            self.config = AzureStoragePluginConfig.from_registry_config(config)

        if client is None:
            try:
                client = create_storage_client(self.config)
            except Exception as e:
                log.error("Error creating Azure blob client: %s", e)
                raise
        self._client = client

        if local_index_provider is None:
            local_index_provider = create_local_index_provider(self.config, self._client)
        self._local_index = LocalIndexManager(local_index_provider)
        self._local_index_provider = local_index_provider
        self._uploads: set = set()

    @property
    def client(self) -> ObjectStorageClient:
        return self._client

    async def add(self, name: str) -> None:
        """Add a package to the list."""
        await self._local_index.add(name)

    async def remove(self, name: str) -> None:
        """Remove a package from the list."""
        await self._local_index.remove(name)

    async def get(self) -> List[str]:
        """Get the package list."""
        return await self._local_index.get()

    async def get_secret(self) -> str:
        return await self._local_index.get_secret()

    async def set_secret(self, secret: str) -> None:
        await self._local_index.set_secret(secret)

    def get_package_storage(self, package_name: str) -> PackageStorage:
        return PackageStorage(package_name, self.config, self._client, uploads=self._uploads)

    async def search(self, *args, **kwargs):
        raise StorageNotImplementedError("Search is not supported by the Azure storage plugin")

    async def save_token(self, *args, **kwargs):
        raise StorageNotImplementedError("Token storage is not supported by the Azure storage plugin")

    async def delete_token(self, *args, **kwargs):
        raise StorageNotImplementedError("Token storage is not supported by the Azure storage plugin")

    async def read_tokens(self, *args, **kwargs):
        raise StorageNotImplementedError("Token storage is not supported by the Azure storage plugin")

    async def close(self) -> None:
        pending = [upload for upload in self._uploads if not upload.done()]
        if pending:
            log.warning("Cancelling %d unfinished tarball uploads", len(pending))
            for upload in pending:
                upload.cancel()
            await asyncio.wait(pending)
        await self._local_index_provider.close()
        await self._client.close()

    async def __aenter__(self) -> "AzureStoragePlugin":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
