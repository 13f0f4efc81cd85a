"""Azure Blob Storage backed storage plugin for a package registry."""

from .config import AzureStoragePluginConfig
from .local_index import LocalIndex, LocalIndexManager, LocalIndexProvider
from .models import PackageMetadata
from .package_storage import PackageStorage
from .plugin import AzureStoragePlugin
from .tarball import ReadTarball, UploadState, UploadTarball

__all__ = [
    "AzureStoragePlugin",
    "AzureStoragePluginConfig",
    "LocalIndex",
    "LocalIndexManager",
    "LocalIndexProvider",
    "PackageMetadata",
    "PackageStorage",
    "ReadTarball",
    "UploadState",
    "UploadTarball",
]
