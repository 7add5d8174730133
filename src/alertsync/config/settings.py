"""
Application settings using Pydantic.

Provides environment-based configuration loading with ALERTSYNC_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ALERTSYNC_",
    )

    # Cluster this controller instance is responsible for
    cluster_name: str = "local"

    # Database (rule store)
    database_url: str = "postgresql+psycopg://localhost/alertsync"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    # Alertmanager
    alertmanager_url: str = "http://alertmanager.cattle-alerting:9093"
    silence_created_by: str = "alertsync"

    # Loop intervals
    state_sync_interval_seconds: float = 10.0
    pod_watch_interval_seconds: float = 30.0

    # Config reload after publish
    reload_max_attempts: int = 10
    reload_interval_seconds: float = 10.0

    # Restart-rate tracking
    restart_history_limit: int = 30

    # Config storage: "file" or "kubernetes"
    config_store_backend: str = "file"
    config_dir: str = "/etc/alertmanager"
    config_secret_namespace: str = "cattle-alerting"
    config_secret_name: str = "alertmanager"

    # Kubernetes access (pod watcher, secret store)
    kubeconfig: str | None = None
    kube_context: str | None = None

    # HTTP client settings
    http_timeout: float = 30.0
    http_max_retries: int = 3
    http_retry_backoff_factor: float = 0.5
    http_circuit_failure_threshold: int = 5
    http_circuit_recovery_timeout: int = 60

    # API
    api_prefix: str = "/api/v1"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
