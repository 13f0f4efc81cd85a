"""Factory for creating object storage clients based on configuration."""

import logging

from .base import ObjectStorageClient

log = logging.getLogger(__name__)


def create_storage_client(config) -> ObjectStorageClient:
    """Create the ObjectStorageClient for a plugin configuration.

    Args:
        config: An AzureStoragePluginConfig with a resolved connection string.

    Returns:
        Configured ObjectStorageClient bound to ``config.container_name``.

    Raises:
        ImportError: If azure-storage-blob is not installed.
    """
    from .azure_client import AzureBlobStorageClient

    log.debug("Creating Azure blob client for container %s", config.container_name)
    return AzureBlobStorageClient(
        container_name=config.container_name,
        connection_string=config.connection_string,
    )
