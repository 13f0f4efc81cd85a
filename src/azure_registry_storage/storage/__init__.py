"""Object storage abstraction used by the registry storage plugin."""

from .base import BlobDownload, BlobProperties, ObjectStorageClient
from .exceptions import (
    StorageConfigurationError,
    StorageConflictError,
    StorageConnectionError,
    StorageError,
    StorageMalformedError,
    StorageNotFoundError,
    StorageNotImplementedError,
    StoragePermissionError,
)
from .factory import create_storage_client
from .memory_client import InMemoryStorageClient

__all__ = [
    "BlobDownload",
    "BlobProperties",
    "ObjectStorageClient",
    "InMemoryStorageClient",
    "StorageError",
    "StorageNotFoundError",
    "StorageConflictError",
    "StorageMalformedError",
    "StoragePermissionError",
    "StorageConnectionError",
    "StorageNotImplementedError",
    "StorageConfigurationError",
    "create_storage_client",
]
