from alertsync.storage.config_store import (
    CONFIG_KEY,
    ConfigStore,
    FileConfigStore,
    KubernetesSecretConfigStore,
)

__all__ = ["CONFIG_KEY", "ConfigStore", "FileConfigStore", "KubernetesSecretConfigStore"]
