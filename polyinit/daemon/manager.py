"""Platform-aware service manager facade."""

import os
from pathlib import Path

from loguru import logger

from polyinit.config.schema import DEFAULT_LOG_DIRECTORY, OPTION_LOG_DIRECTORY, Config
from polyinit.daemon.base import Interface, Service, ServiceInfo
from polyinit.daemon.errors import NotInstalledError, ServiceError
from polyinit.daemon.registry import Registry, default_registry
from polyinit.daemon.status import Status

# Always forward these base env vars
_BASE_ENV_KEYS: list[str] = ["PATH", "HOME", "USER", "LANG"]


class _ControlOnly:
    """Interface for a manager that installs and controls but never runs the program."""

    def start(self, service: Service) -> None:
        raise ServiceError(f"{service} is managed from outside; it cannot be run here")

    def stop(self, service: Service) -> None:
        raise ServiceError(f"{service} is managed from outside; it cannot be run here")


class DaemonManager:
    """Facade: detects the init system, prepares the config, delegates to the backend."""

    def __init__(
        self,
        config: Config,
        interface: Interface | None = None,
        registry: Registry | None = None,
        env_passthrough: list[str] | None = None,
    ):
        self._registry = registry or default_registry()
        self._passthrough = env_passthrough or []
        self.config = self._with_env(config) if self._passthrough else config
        self.service = self._registry.new(interface or _ControlOnly(), self.config)

    @property
    def platform(self) -> str:
        return self.service.platform

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def install(self) -> Path:
        """Write and register the service descriptor. Returns its path."""
        self._ensure_log_directory()
        self.service.install()
        return self.service.config_path()

    def uninstall(self) -> None:
        self.service.uninstall()

    def start(self) -> None:
        self._require_installed()
        self.service.start()

    def stop(self) -> None:
        self._require_installed()
        self.service.stop()

    def restart(self) -> None:
        self._require_installed()
        self.service.restart()

    def status(self) -> Status:
        return self.service.status()

    def get_info(self) -> ServiceInfo:
        return self.service.get_info()

    def render(self) -> str:
        return self.service.render()

    def run(self) -> None:
        self.service.run()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_installed(self) -> None:
        if not self.service.config_path().exists():
            raise NotInstalledError(
                f"Service {self.config.name} is not installed. Run 'polyinit install' first."
            )

    def _ensure_log_directory(self) -> None:
        log_dir = Path(self.config.option.get_str(OPTION_LOG_DIRECTORY, DEFAULT_LOG_DIRECTORY))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create log directory {log_dir}: {e}")

    def _with_env(self, config: Config) -> Config:
        """Copy matching environment variables into the service environment."""
        env = dict(config.env_vars)
        for key in _BASE_ENV_KEYS:
            val = os.environ.get(key)
            if val and key not in env:
                env[key] = val
        for key, val in os.environ.items():
            if key not in env and any(_matches(key, pat) for pat in self._passthrough):
                env[key] = val
        return config.model_copy(update={"env_vars": env})


def _matches(key: str, pattern: str) -> bool:
    """Simple glob match (only supports trailing ``*``)."""
    if pattern.endswith("*"):
        return key.startswith(pattern[:-1])
    return key == pattern
