"""
Storage for the compiled Alertmanager configuration.

The document is a single opaque blob under the key ``config.yml``. Two
backends exist: a local directory (Alertmanager reads the file directly)
and a Kubernetes secret mounted into the Alertmanager pod.
"""

from __future__ import annotations

import asyncio
import base64
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import structlog

from alertsync.core.errors import ConfigStoreError, ConfigurationError

logger = structlog.get_logger()

CONFIG_KEY = "config.yml"


class ConfigStore(Protocol):
    async def read(self) -> str | None: ...

    async def write(self, data: str) -> None: ...


@dataclass
class FileConfigStore:
    """Keep config.yml in a directory, replacing it atomically."""

    directory: Path

    @property
    def path(self) -> Path:
        return Path(self.directory) / CONFIG_KEY

    async def read(self) -> str | None:
        return await asyncio.to_thread(self._read)

    async def write(self, data: str) -> None:
        try:
            await asyncio.to_thread(self._write, data)
        except OSError as exc:
            raise ConfigStoreError(
                f"Failed to write {self.path}: {exc}", details={"path": str(self.path)}
            ) from exc
        logger.info("config_stored", backend="file", path=str(self.path), size=len(data))

    def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, data: str) -> None:
        directory = Path(self.directory)
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".config-", suffix=".yml")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


@dataclass
class KubernetesSecretConfigStore:
    """
    Keep config.yml inside a Kubernetes secret (read-modify-write).

    Configuration:
        namespace: Namespace of the Alertmanager secret
        secret_name: Name of the secret holding config.yml
        kubeconfig: Path to kubeconfig file (optional, in-cluster first)
        context: Kubeconfig context to use (optional)
    """

    namespace: str = "cattle-alerting"
    secret_name: str = "alertmanager"
    kubeconfig: str | None = None
    context: str | None = None

    _core_api: Any = field(default=None, repr=False, compare=False)

    def _api(self) -> Any:
        if self._core_api is not None:
            return self._core_api
        try:
            from kubernetes import client, config
        except ImportError as exc:
            raise ConfigurationError(
                "kubernetes package not installed. Install with: pip install alertsync[kubernetes]"
            ) from exc

        try:
            config.load_incluster_config()
        except config.ConfigException:
            try:
                config.load_kube_config(config_file=self.kubeconfig, context=self.context)
            except config.ConfigException as e:
                raise ConfigurationError(f"Failed to load Kubernetes config: {e}") from e

        self._core_api = client.CoreV1Api()
        return self._core_api

    async def read(self) -> str | None:
        secret = await asyncio.to_thread(self._read_secret)
        encoded = (secret.data or {}).get(CONFIG_KEY)
        if not encoded:
            return None
        return base64.b64decode(encoded).decode("utf-8")

    async def write(self, data: str) -> None:
        try:
            secret = await asyncio.to_thread(self._read_secret)
            secret.data = dict(secret.data or {})
            secret.data[CONFIG_KEY] = base64.b64encode(data.encode("utf-8")).decode("ascii")
            await asyncio.to_thread(
                self._api().replace_namespaced_secret,
                self.secret_name,
                self.namespace,
                secret,
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ConfigStoreError(
                f"Failed to update secret {self.namespace}/{self.secret_name}: {exc}",
                details={"namespace": self.namespace, "secret": self.secret_name},
            ) from exc
        logger.info(
            "config_stored",
            backend="kubernetes",
            secret=f"{self.namespace}/{self.secret_name}",
            size=len(data),
        )

    def _read_secret(self) -> Any:
        return self._api().read_namespaced_secret(self.secret_name, self.namespace)
