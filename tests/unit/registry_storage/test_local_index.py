"""Tests for the local index providers and manager."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError, ServiceRequestError

from azure_registry_storage.config import AzureStoragePluginConfig
from azure_registry_storage.local_index.app_config_provider import AppConfigLocalIndexProvider
from azure_registry_storage.local_index.base import LocalIndex, LocalIndexProvider
from azure_registry_storage.local_index.blob_provider import BlobLocalIndexProvider
from azure_registry_storage.local_index.factory import create_local_index_provider
from azure_registry_storage.local_index.manager import LocalIndexManager
from azure_registry_storage.storage.exceptions import (
    StorageConnectionError,
    StorageError,
    StorageMalformedError,
    StoragePermissionError,
)
from azure_registry_storage.storage.memory_client import InMemoryStorageClient


@pytest.fixture()
def memory_client():
    return InMemoryStorageClient()


@pytest.fixture()
def blob_provider(memory_client):
    return BlobLocalIndexProvider(memory_client)


@pytest.fixture()
def app_config_client():
    client = MagicMock()
    client.get_configuration_setting = AsyncMock()
    client.set_configuration_setting = AsyncMock()
    client.close = AsyncMock()
    return client


def _http_error(status_code: int) -> HttpResponseError:
    error = HttpResponseError(message="failed")
    error.status_code = status_code
    return error


class FlakyProvider(LocalIndexProvider):
    """Provider whose saves fail on demand."""

    def __init__(self, stored: LocalIndex | None = None):
        self.stored = stored
        self.saves = 0
        self.fail_saves = False

    async def get_local_index(self):
        return self.stored.model_copy(deep=True) if self.stored else None

    async def save_local_index(self, local_index):
        if self.fail_saves:
            raise StorageError("save failed")
        self.saves += 1
        self.stored = local_index.model_copy(deep=True)


class TestLocalIndexDocument:
    def test_default_is_empty(self):
        local_index = LocalIndex()

        assert local_index.list == []
        assert local_index.secret == ""

    def test_json_shape(self):
        local_index = LocalIndex(list=["a", "b"], secret="s")

        assert json.loads(local_index.to_json()) == {"list": ["a", "b"], "secret": "s"}

    def test_malformed_json_raises(self):
        with pytest.raises(StorageMalformedError):
            LocalIndex.from_json(b"{not json", key=".verdaccio-db.json")

    def test_loaded_duplicates_are_dropped_in_order(self):
        local_index = LocalIndex.from_json(b'{"list": ["a", "b", "a"], "secret": ""}')

        assert local_index.list == ["a", "b"]


class TestBlobLocalIndexProvider:
    @pytest.mark.asyncio
    async def test_missing_blob_returns_none(self, blob_provider):
        assert await blob_provider.get_local_index() is None

    @pytest.mark.asyncio
    async def test_save_then_get(self, blob_provider, memory_client):
        await blob_provider.save_local_index(LocalIndex(list=["left-pad"], secret="abc"))

        result = await blob_provider.get_local_index()

        assert result == LocalIndex(list=["left-pad"], secret="abc")
        properties = await memory_client.get_properties(".verdaccio-db.json")
        assert properties.content_type == "application/json"

    @pytest.mark.asyncio
    async def test_custom_blob_name(self, memory_client):
        provider = BlobLocalIndexProvider(memory_client, db_file_name="registry/db.json")

        await provider.save_local_index(LocalIndex())

        assert memory_client.keys() == ["registry/db.json"]

    @pytest.mark.asyncio
    async def test_malformed_blob_raises(self, blob_provider, memory_client):
        await memory_client.put_object(".verdaccio-db.json", b"[]", "application/json")

        with pytest.raises(StorageMalformedError):
            await blob_provider.get_local_index()

    @pytest.mark.asyncio
    async def test_manager_removes_name_stored_twice(self, blob_provider, memory_client):
        await memory_client.put_object(".verdaccio-db.json", b'{"list": ["a", "b", "a"], "secret": "s"}', "application/json")
        manager = LocalIndexManager(blob_provider)

        await manager.remove("a")

        assert await manager.get() == ["b"]
        assert (await blob_provider.get_local_index()).list == ["b"]


class TestAppConfigLocalIndexProvider:
    @pytest.mark.asyncio
    async def test_reads_setting_value(self, app_config_client):
        app_config_client.get_configuration_setting.return_value = MagicMock(value='{"list": ["a"], "secret": "s"}')
        provider = AppConfigLocalIndexProvider(client=app_config_client, key_name="registry-db")

        result = await provider.get_local_index()

        assert result == LocalIndex(list=["a"], secret="s")
        app_config_client.get_configuration_setting.assert_awaited_once_with(key="registry-db")

    @pytest.mark.asyncio
    async def test_resource_not_found_returns_none(self, app_config_client):
        app_config_client.get_configuration_setting.side_effect = ResourceNotFoundError(message="missing")
        provider = AppConfigLocalIndexProvider(client=app_config_client)

        assert await provider.get_local_index() is None

    @pytest.mark.asyncio
    async def test_http_404_returns_none(self, app_config_client):
        app_config_client.get_configuration_setting.side_effect = _http_error(404)
        provider = AppConfigLocalIndexProvider(client=app_config_client)

        assert await provider.get_local_index() is None

    @pytest.mark.asyncio
    async def test_empty_value_returns_none(self, app_config_client):
        app_config_client.get_configuration_setting.return_value = MagicMock(value="")
        provider = AppConfigLocalIndexProvider(client=app_config_client)

        assert await provider.get_local_index() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected_type"),
        [
            (_http_error(500), StorageError),
            (_http_error(403), StoragePermissionError),
            (ServiceRequestError(message="unreachable"), StorageConnectionError),
        ],
    )
    async def test_other_failures_propagate(self, app_config_client, error, expected_type):
        app_config_client.get_configuration_setting.side_effect = error
        provider = AppConfigLocalIndexProvider(client=app_config_client)

        with pytest.raises(expected_type) as exc_info:
            await provider.get_local_index()

        assert exc_info.value.cause is error

    @pytest.mark.asyncio
    async def test_save_writes_json_setting(self, app_config_client):
        provider = AppConfigLocalIndexProvider(client=app_config_client, key_name="registry-db")

        await provider.save_local_index(LocalIndex(list=["a"], secret="s"))

        setting = app_config_client.set_configuration_setting.call_args.args[0]
        assert setting.key == "registry-db"
        assert setting.content_type == "application/json"
        assert json.loads(setting.value) == {"list": ["a"], "secret": "s"}

    def test_requires_connection_string_or_client(self):
        with pytest.raises(ValueError):
            AppConfigLocalIndexProvider()

    @pytest.mark.asyncio
    async def test_close_closes_client(self, app_config_client):
        provider = AppConfigLocalIndexProvider(client=app_config_client)

        await provider.close()

        app_config_client.close.assert_awaited_once()


class TestProviderSelection:
    def test_blob_provider_without_app_config(self, memory_client):
        config = AzureStoragePluginConfig(container_name="c", connection_string="conn")

        provider = create_local_index_provider(config, memory_client)

        assert isinstance(provider, BlobLocalIndexProvider)

    @patch("azure_registry_storage.local_index.app_config_provider.AzureAppConfigurationClient")
    def test_app_config_provider_when_configured(self, mock_client_cls, memory_client):
        config = AzureStoragePluginConfig(
            container_name="c",
            connection_string="conn",
            app_config_connection_string="appconfig",
            app_config_key_name="registry-db",
        )

        provider = create_local_index_provider(config, memory_client)

        assert isinstance(provider, AppConfigLocalIndexProvider)
        mock_client_cls.from_connection_string.assert_called_once_with("appconfig")


class TestLocalIndexManager:
    @pytest.mark.asyncio
    async def test_first_access_creates_and_persists_default(self):
        provider = FlakyProvider()
        manager = LocalIndexManager(provider)

        assert not manager.initialized
        assert await manager.get() == []
        assert manager.initialized
        assert provider.stored == LocalIndex()
        assert provider.saves == 1

    @pytest.mark.asyncio
    async def test_existing_index_is_loaded_once(self):
        provider = FlakyProvider(LocalIndex(list=["a"], secret="s"))
        provider.get_local_index = AsyncMock(wraps=provider.get_local_index)
        manager = LocalIndexManager(provider)

        await manager.get()
        await manager.get_secret()

        provider.get_local_index.assert_awaited_once()
        assert provider.saves == 0

    @pytest.mark.asyncio
    async def test_add_twice_keeps_one_entry(self):
        provider = FlakyProvider()
        manager = LocalIndexManager(provider)

        await manager.add("left-pad")
        await manager.add("left-pad")

        assert await manager.get() == ["left-pad"]
        assert provider.stored.list == ["left-pad"]
        assert provider.saves == 2

    @pytest.mark.asyncio
    async def test_add_preserves_insertion_order(self):
        manager = LocalIndexManager(FlakyProvider())

        for name in ["c", "a", "b"]:
            await manager.add(name)

        assert await manager.get() == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_remove_unknown_name_is_noop(self):
        provider = FlakyProvider(LocalIndex(list=["a"]))
        manager = LocalIndexManager(provider)

        await manager.remove("missing")

        assert await manager.get() == ["a"]
        assert provider.saves == 0

    @pytest.mark.asyncio
    async def test_remove_persists(self):
        provider = FlakyProvider(LocalIndex(list=["a", "b"]))
        manager = LocalIndexManager(provider)

        await manager.remove("a")

        assert await manager.get() == ["b"]
        assert provider.stored.list == ["b"]

    @pytest.mark.asyncio
    async def test_get_returns_snapshot(self):
        manager = LocalIndexManager(FlakyProvider(LocalIndex(list=["a"])))

        snapshot = await manager.get()
        snapshot.append("b")

        assert await manager.get() == ["a"]

    @pytest.mark.asyncio
    async def test_secret_survives_new_manager(self, blob_provider):
        manager = LocalIndexManager(blob_provider)

        assert await manager.get_secret() == ""
        await manager.set_secret("abc")
        assert await manager.get_secret() == "abc"

        fresh = LocalIndexManager(blob_provider)
        assert await fresh.get_secret() == "abc"

    @pytest.mark.asyncio
    async def test_failed_save_propagates_and_keeps_cached_entry(self):
        provider = FlakyProvider(LocalIndex())
        manager = LocalIndexManager(provider)
        await manager.get()
        provider.fail_saves = True

        with pytest.raises(StorageError, match="save failed"):
            await manager.add("left-pad")

        assert await manager.get() == ["left-pad"]
        assert provider.stored.list == []

    @pytest.mark.asyncio
    async def test_failed_lazy_create_leaves_manager_uninitialized(self):
        provider = FlakyProvider()
        provider.fail_saves = True
        manager = LocalIndexManager(provider)

        with pytest.raises(StorageError):
            await manager.get()

        assert not manager.initialized

    @pytest.mark.asyncio
    async def test_concurrent_adds_are_all_persisted(self, blob_provider):
        manager = LocalIndexManager(blob_provider)
        names = [f"pkg-{i}" for i in range(20)]

        await asyncio.gather(*(manager.add(name) for name in names))

        stored = await blob_provider.get_local_index()
        assert sorted(stored.list) == sorted(names)
        assert len(stored.list) == 20
