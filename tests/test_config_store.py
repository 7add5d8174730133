import base64
from types import SimpleNamespace

import pytest

from alertsync.core.errors import ConfigStoreError
from alertsync.storage.config_store import (
    CONFIG_KEY,
    FileConfigStore,
    KubernetesSecretConfigStore,
)


@pytest.mark.asyncio
async def test_file_store_round_trip(tmp_path):
    store = FileConfigStore(tmp_path / "alertmanager")

    assert await store.read() is None

    await store.write("route: {}\n")

    assert await store.read() == "route: {}\n"
    assert (tmp_path / "alertmanager" / CONFIG_KEY).exists()


@pytest.mark.asyncio
async def test_file_store_replaces_without_leftovers(tmp_path):
    store = FileConfigStore(tmp_path)

    await store.write("first\n")
    await store.write("second\n")

    assert await store.read() == "second\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == [CONFIG_KEY]


@pytest.mark.asyncio
async def test_file_store_write_failure_raises_store_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    store = FileConfigStore(blocker)

    with pytest.raises(ConfigStoreError):
        await store.write("data")


class StubCoreApi:
    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.secret = SimpleNamespace(data=data)
        self.replaced: list[tuple[str, str, object]] = []

    def read_namespaced_secret(self, name, namespace):
        return self.secret

    def replace_namespaced_secret(self, name, namespace, body):
        self.replaced.append((name, namespace, body))
        self.secret = body


@pytest.mark.asyncio
async def test_secret_store_encodes_config_and_keeps_other_keys():
    api = StubCoreApi({"other": "eA=="})
    store = KubernetesSecretConfigStore(namespace="ns", secret_name="am", _core_api=api)

    await store.write("global: {}\n")

    name, namespace, body = api.replaced[0]
    assert (name, namespace) == ("am", "ns")
    assert body.data["other"] == "eA=="
    assert base64.b64decode(body.data[CONFIG_KEY]).decode() == "global: {}\n"
    assert await store.read() == "global: {}\n"


@pytest.mark.asyncio
async def test_secret_store_read_missing_key():
    store = KubernetesSecretConfigStore(_core_api=StubCoreApi(None))

    assert await store.read() is None


@pytest.mark.asyncio
async def test_secret_store_api_failure_raises_store_error():
    class FailingApi(StubCoreApi):
        def replace_namespaced_secret(self, name, namespace, body):
            raise RuntimeError("forbidden")

    store = KubernetesSecretConfigStore(_core_api=FailingApi({}))

    with pytest.raises(ConfigStoreError):
        await store.write("data")
