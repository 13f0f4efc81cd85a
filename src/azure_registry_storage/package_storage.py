"""
Per-package storage: the metadata document and the package's tarballs.

Every key lives under ``{packages_dir}/{package_name}/``. The metadata
document is ``package.json`` in that directory and is always written
whole; tarballs are streamed through ``UploadTarball``/``ReadTarball``.
Concurrent writers to the same key are not serialized here: the last
completed write wins.
"""

import logging
import posixpath
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional, Union

from .config import AzureStoragePluginConfig
from .constants import JSON_CONTENT_TYPE, PACKAGE_FILE_NAME, TARBALL_CONTENT_TYPE
from .models import PackageMetadata
from .storage.base import BlobProperties, ObjectStorageClient
from .storage.exceptions import StorageConflictError, StorageError, StorageNotFoundError
from .tarball import ReadTarball, UploadTarball

log = logging.getLogger(__name__)

MetadataInput = Union[PackageMetadata, Mapping[str, Any]]
UpdateHandler = Callable[[PackageMetadata], Awaitable[None]]
PackageTransformer = Callable[[PackageMetadata], MetadataInput]


def cache_control_header(seconds: Optional[int]) -> Optional[str]:
    """Return the Cache-Control value for a max-age, or None if caching is off."""
    if not seconds:
        return None
    return f"public, max-age={seconds}"


class PackageStorage:
    """Storage handle scoped to one package."""

    def __init__(
        self,
        package_name: str,
        config: AzureStoragePluginConfig,
        client: ObjectStorageClient,
        uploads: Optional[set] = None,
    ):
        self.package_name = package_name
        self._uploads = uploads
        self._config = config
        self._client = client
        self._package_key = self._key_for(PACKAGE_FILE_NAME)

    @property
    def package_key(self) -> str:
        return self._package_key

    # --- Package metadata ---

    async def get_or_create_package(self) -> PackageMetadata:
        """Read the metadata document, creating and storing an empty one if missing."""
        if await self._client.exists(self._package_key):
            raw = await self._client.get_object(self._package_key)
            return PackageMetadata.from_json(raw, key=self._package_key)

        package = PackageMetadata.empty(self.package_name)
        log.debug("Precreating package data for %s", self.package_name)
        await self._write_package(package)
        return package

    async def read_package(self) -> PackageMetadata:
        try:
            package = await self.get_or_create_package()
        except Exception as e:
            log.error("Error reading package data for %s: %s", self.package_name, e)
            raise
        log.debug("Finished reading package data for %s", self.package_name)
        return package

    async def create_package(self, document: MetadataInput) -> None:
        """Store *document* unless the package already has metadata.

        Raises:
            StorageConflictError: If the metadata document already exists.
        """
        try:
            await self._store_package(document, overwrite=False)
        except StorageConflictError as e:
            raise StorageConflictError("Package data already exists", key=self._package_key, cause=e) from e

    async def save_package(self, document: MetadataInput) -> None:
        await self._store_package(document)

    async def _store_package(self, document: MetadataInput, overwrite: bool = True) -> None:
        package = PackageMetadata.coerce(document)
        if package.name != self.package_name:
            log.warning("Saving package data named %s under package %s", package.name, self.package_name)
        try:
            await self._write_package(package, overwrite=overwrite)
        except Exception as e:
            log.error("Error saving package data for %s: %s", self.package_name, e)
            raise
        log.debug("Finished saving package data for %s", self.package_name)

    async def update_package(
        self,
        update_handler: UpdateHandler,
        transform_package: Optional[PackageTransformer] = None,
    ) -> PackageMetadata:
        """Read, let *update_handler* mutate, transform, and write back.

        *update_handler* may raise to abort the update; nothing is written
        in that case. No revision check is made against the stored copy.
        """
        package = await self.get_or_create_package()
        try:
            await update_handler(package)
        except Exception as e:
            log.error("Error updating package data for %s: %s", self.package_name, e)
            raise

        updated = PackageMetadata.coerce(transform_package(package)) if transform_package else package
        await self.save_package(updated)
        return updated

    async def delete_package(self, file_name: str) -> None:
        """Delete one file of the package (metadata or tarball).

        Raises:
            StorageNotFoundError: If the file does not exist.
        """
        key = self._key_for(file_name)
        try:
            await self._client.delete_object(key)
        except Exception as e:
            log.error("Error deleting package file %s: %s", key, e)
            raise
        log.debug("Finished deleting package file %s", key)

    async def remove_package(self) -> None:
        """Blob containers have no directories to remove; files are deleted one by one."""
        log.debug("Nothing to remove for package directory of %s", self.package_name)

    # --- Tarballs ---

    def write_tarball(self, name: str) -> UploadTarball:
        """Return a sink that uploads the tarball *name* as it is written."""
        cache_control = cache_control_header(self._config.cache_package_time)
        if cache_control:
            log.debug("Using %s seconds as cache-control on package", self._config.cache_package_time)

        return UploadTarball(
            self._client,
            self._key_for(name),
            content_type=TARBALL_CONTENT_TYPE,
            cache_control=cache_control,
            uploads=self._uploads,
        )

    async def read_tarball(self, name: str) -> ReadTarball:
        """Open the tarball *name* for reading.

        Raises:
            StorageNotFoundError: If the tarball does not exist.
        """
        key = self._key_for(name)
        if not await self._client.exists(key):
            raise StorageNotFoundError("Package tarball does not exist", key=key)

        if self._config.tarball_redirect:
            return ReadTarball(key, redirect_url=self._client.get_public_url(key))

        try:
            download = await self._client.open_stream(key)
        except Exception as e:
            log.error("Error reading package tarball %s: %s", key, e)
            raise
        log.debug("Opened package tarball %s (%d bytes)", key, download.content_length)
        return ReadTarball(key, content_length=download.content_length, chunks=download.chunks)

    async def remove_tarball(self, name: str) -> None:
        await self.delete_package(name)

    async def get_tarball_properties(self, name: str) -> BlobProperties:
        return await self._client.get_properties(self._key_for(name))

    def _key_for(self, file_name: str) -> str:
        package_dir = posixpath.join(self._config.packages_dir, self.package_name)
        key = posixpath.normpath(posixpath.join(package_dir, file_name.lstrip("/")))
        if not key.startswith(package_dir + "/"):
            raise StorageError(f"File name escapes the package directory: {file_name}", key=key)
        return key

    async def _write_package(self, package: PackageMetadata, overwrite: bool = True) -> None:
        cache_control = cache_control_header(self._config.cache_package_data_time)
        if cache_control:
            log.debug("Using %s seconds as cache-control on package data", self._config.cache_package_data_time)

        await self._client.put_object(
            self._package_key,
            package.to_json(),
            content_type=JSON_CONTENT_TYPE,
            cache_control=cache_control,
            overwrite=overwrite,
        )
