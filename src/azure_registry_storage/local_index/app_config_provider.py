"""Local index provider that uses Azure App Configuration."""

import logging
from typing import Optional

from azure.appconfiguration import ConfigurationSetting
from azure.appconfiguration.aio import AzureAppConfigurationClient
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError, ServiceRequestError

from ..constants import DEFAULT_APP_CONFIG_KEY_NAME, JSON_CONTENT_TYPE
from ..storage.exceptions import StorageConnectionError, StorageError, StoragePermissionError
from .base import LocalIndex, LocalIndexProvider

log = logging.getLogger(__name__)


class AppConfigLocalIndexProvider(LocalIndexProvider):
    """Stores the local index as a single App Configuration setting."""

    def __init__(
        self,
        connection_string: str | None = None,
        key_name: str = DEFAULT_APP_CONFIG_KEY_NAME,
        client: AzureAppConfigurationClient | None = None,
    ):
        if client is None:
            if not connection_string:
                raise ValueError("App Configuration requires a connection_string or a client")
            client = AzureAppConfigurationClient.from_connection_string(connection_string)
        self._client = client
        self._key = key_name

    async def get_local_index(self) -> Optional[LocalIndex]:
        try:
            setting = await self._client.get_configuration_setting(key=self._key)
        except ResourceNotFoundError:
            # 404 just means the key doesn't exist yet
            return None
        except HttpResponseError as e:
            if e.status_code == 404:
                return None
            raise self._translate_error(e) from e
        except ServiceRequestError as e:
            raise self._translate_error(e) from e

        if not setting or not setting.value:
            return None

        log.debug("Getting local index from app configuration key %s", self._key)
        return LocalIndex.from_json(setting.value, key=self._key)

    async def save_local_index(self, local_index: LocalIndex) -> None:
        setting = ConfigurationSetting(
            key=self._key,
            value=local_index.to_json(),
            content_type=JSON_CONTENT_TYPE,
        )
        try:
            await self._client.set_configuration_setting(setting)
        except (HttpResponseError, ServiceRequestError) as e:
            raise self._translate_error(e) from e

    async def close(self) -> None:
        await self._client.close()

    def _translate_error(self, error: Exception) -> StorageError:
        if isinstance(error, ServiceRequestError):
            return StorageConnectionError(str(error), key=self._key, cause=error)
        if getattr(error, "status_code", None) in (401, 403):
            return StoragePermissionError(str(error), key=self._key, cause=error)
        return StorageError(str(error), key=self._key, cause=error)
