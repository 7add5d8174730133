import pytest
import yaml

from alertsync import cli
from alertsync.config import Settings
from alertsync.controller import AlertController, build_config_store
from alertsync.core.errors import ConfigurationError, ExitCode, RuleStoreError, main_with_error_handling
from alertsync.domain.models import EngineAlert
from alertsync.storage.config_store import FileConfigStore, KubernetesSecretConfigStore
from conftest import MemoryConfigStore, MemoryRuleStore, StubEngine, build_rule


@pytest.fixture
def stub_controller(monkeypatch):
    store = MemoryRuleStore()
    engine = StubEngine()

    def factory(settings):
        return AlertController(
            settings.model_copy(update={"cluster_name": "c1"}),
            store=store,
            client=engine,
            config_store=MemoryConfigStore(),
            pod_source=object(),
        )

    monkeypatch.setattr(cli, "AlertController", factory)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    return store, engine


def test_render_writes_document(stub_controller, tmp_path):
    store, _ = stub_controller
    store.rules[("p1", "r1")] = build_rule("p1", "r1")
    output = tmp_path / "config.yml"

    exit_code = cli.main(["render", "--output", str(output)])

    assert exit_code == ExitCode.SUCCESS
    document = yaml.safe_load(output.read_text())
    assert document["route"]["routes"][0]["receiver"] == "p1-r1"


def test_sync_state_reports_success(stub_controller):
    store, engine = stub_controller
    store.rules[("p1", "r1")] = build_rule("p1", "r1")
    engine.alerts = [EngineAlert(labels={"alert_id": "p1-r1"})]

    assert cli.main(["sync-state"]) == ExitCode.SUCCESS
    assert store.state_writes == [("p1-r1", "alerting")]


def test_sync_state_skipped_when_engine_down(stub_controller):
    _, engine = stub_controller
    engine.fail_list = True

    assert cli.main(["sync-state"]) == ExitCode.ENGINE_ERROR


def test_build_config_store_backends(tmp_path):
    assert isinstance(
        build_config_store(Settings(config_dir=str(tmp_path))), FileConfigStore
    )
    assert isinstance(
        build_config_store(Settings(config_store_backend="kubernetes")),
        KubernetesSecretConfigStore,
    )
    with pytest.raises(ConfigurationError):
        build_config_store(Settings(config_store_backend="s3"))


def test_error_handler_maps_exit_codes():
    @main_with_error_handling(log_errors=False)
    def failing() -> int:
        raise RuleStoreError("db down")

    @main_with_error_handling(log_errors=False)
    def crashing() -> int:
        raise ValueError("bug")

    assert failing() == ExitCode.STORAGE_ERROR
    assert crashing() == ExitCode.UNKNOWN_ERROR


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ALERTSYNC_CLUSTER_NAME", "prod-eu")
    monkeypatch.setenv("ALERTSYNC_RELOAD_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("ALERTSYNC_CONFIG_STORE_BACKEND", "kubernetes")

    settings = Settings()

    assert settings.cluster_name == "prod-eu"
    assert settings.reload_max_attempts == 3
    assert settings.config_store_backend == "kubernetes"
    assert settings.restart_history_limit == 30
