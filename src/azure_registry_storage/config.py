"""
Configuration model for the Azure registry storage plugin.

The host registry passes its whole parsed configuration; the plugin block
lives under ``store.az-storage`` and uses camelCase keys. Both the YAML
aliases and the snake_case field names are accepted.
"""

import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import (
    APP_CONFIG_CONNECTION_STRING_ENV,
    CONNECTION_STRING_ENV,
    DEFAULT_APP_CONFIG_KEY_NAME,
    DEFAULT_DB_FILE_NAME,
    DEFAULT_PACKAGES_DIR,
    PLUGIN_CONFIG_KEY,
)
from .storage.exceptions import StorageConfigurationError

log = logging.getLogger(__name__)


class AzureStoragePluginConfig(BaseModel):
    """Validated, read-only settings for the storage plugin."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    connection_string: Optional[str] = Field(
        default=None,
        alias="connectionString",
        description="Connection string for the Azure storage account.",
    )
    container_name: str = Field(
        ...,
        min_length=1,
        alias="containerName",
        description="Name of the container inside of the storage account.",
    )
    packages_dir: str = Field(
        default=DEFAULT_PACKAGES_DIR,
        alias="packagesDir",
        description="Where to store the packages inside of the container.",
    )
    cache_package_data_time: Optional[int] = Field(
        default=None,
        ge=0,
        alias="cachePackageDataTime",
        description="Cache-control max-age (seconds) for package metadata documents.",
    )
    cache_package_time: Optional[int] = Field(
        default=None,
        ge=0,
        alias="cachePackageTime",
        description="Cache-control max-age (seconds) for package tarballs.",
    )
    app_config_connection_string: Optional[str] = Field(
        default=None,
        alias="appConfigConnectionString",
        description="Connection string for Azure App Configuration. Selects the config-backed local index.",
    )
    app_config_key_name: str = Field(
        default=DEFAULT_APP_CONFIG_KEY_NAME,
        min_length=1,
        alias="appConfigKeyName",
        description="Key name of the local index in App Configuration.",
    )
    db_file_name: str = Field(
        default=DEFAULT_DB_FILE_NAME,
        min_length=1,
        alias="dbFileName",
        description="Blob name of the local index in the container.",
    )
    tarball_redirect: bool = Field(
        default=False,
        alias="tarballRedirect",
        description="Hand out the blob URL for tarball reads instead of streaming the bytes.",
    )

    @field_validator("packages_dir")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")

    @classmethod
    def from_registry_config(cls, config: Optional[Dict[str, Any]]) -> "AzureStoragePluginConfig":
        """Build the plugin config from the host registry's parsed configuration.

        Raises:
            StorageConfigurationError: If the plugin block, the container name
                or the connection string is missing or invalid.
        """
        if not config:
            log.error("Config for Azure storage plugin is missing! Add `store.%s` to your config file!", PLUGIN_CONFIG_KEY)
            raise StorageConfigurationError(f"Missing `store.{PLUGIN_CONFIG_KEY}` configuration")

        plugin_block = dict((config.get("store") or {}).get(PLUGIN_CONFIG_KEY) or {})

        connection_string = os.getenv(CONNECTION_STRING_ENV)
        if connection_string:
            plugin_block["connection_string"] = connection_string
            plugin_block.pop("connectionString", None)
        else:
            log.debug("Reading connection string from config instead of environment variable")

        if not (plugin_block.get("appConfigConnectionString") or plugin_block.get("app_config_connection_string")):
            app_config_connection_string = os.getenv(APP_CONFIG_CONNECTION_STRING_ENV)
            if app_config_connection_string:
                plugin_block["app_config_connection_string"] = app_config_connection_string

        try:
            plugin_config = cls.model_validate(plugin_block)
        except ValidationError as e:
            log.error("Invalid Azure storage plugin configuration: %s", e)
            raise StorageConfigurationError(f"Invalid `store.{PLUGIN_CONFIG_KEY}` configuration: {e}") from e

        if not plugin_config.connection_string:
            log.error(
                "Connection string is required! Either set 'connectionString' in the config, or set '%s' environment variable.",
                CONNECTION_STRING_ENV,
            )
            raise StorageConfigurationError("An Azure storage connection string is required")

        return plugin_config
