"""Selects the local index provider from the plugin configuration."""

import logging

from ..storage.base import ObjectStorageClient
from .base import LocalIndexProvider

log = logging.getLogger(__name__)


def create_local_index_provider(config, client: ObjectStorageClient) -> LocalIndexProvider:
    """Create the provider matching the configured connection.

    App Configuration is used when ``config.app_config_connection_string``
    is set; otherwise the index is kept as a blob in the package container
    reached through *client*.

    Raises:
        ImportError: If azure-appconfiguration is needed but not installed.
    """
    if config.app_config_connection_string:
        from .app_config_provider import AppConfigLocalIndexProvider

        log.debug("Using App Configuration key %s for the local index", config.app_config_key_name)
        return AppConfigLocalIndexProvider(
            connection_string=config.app_config_connection_string,
            key_name=config.app_config_key_name,
        )

    from .blob_provider import BlobLocalIndexProvider

    log.debug("Using blob %s for the local index", config.db_file_name)
    return BlobLocalIndexProvider(client, db_file_name=config.db_file_name)
