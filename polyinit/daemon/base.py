"""Abstract base for init-system service backends."""

from __future__ import annotations

import signal
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from loguru import logger

from polyinit.config.schema import (
    DEFAULT_LOG_DIRECTORY,
    OPTION_LOG_DIRECTORY,
    OPTION_LOG_OUTPUT,
    OPTION_RUN_WAIT,
    OPTION_USER_SERVICE,
    Config,
)
from polyinit.daemon import context, template
from polyinit.daemon.errors import NotInstalledError, ServiceError
from polyinit.daemon.status import Status

if TYPE_CHECKING:
    from polyinit.daemon.logger import ServiceLogger

_SHUTDOWN_SIGNALS = {signal.SIGTERM, signal.SIGINT}


@runtime_checkable
class Interface(Protocol):
    """Application callbacks a service invokes from :meth:`Service.run`.

    Both should return quickly; long-running work belongs on its own thread.
    """

    def start(self, service: Service) -> None: ...

    def stop(self, service: Service) -> None: ...


@dataclass
class ServiceInfo:
    """Status snapshot of an installed (or not) service."""

    name: str
    platform: str
    service_file: Path | None = None
    installed: bool = False
    status: Status = Status.UNKNOWN
    error: str | None = None


class Service(ABC):
    """A Config bound to one init-system backend.

    Holds no OS resources; every query goes back to the filesystem or the
    native control tool.
    """

    # Pause between stop and start so the init system can reap the old process
    restart_delay: float = 0.05

    def __init__(self, interface: Interface, platform: str, config: Config):
        self.interface = interface
        self.config = config
        self._platform = platform

    def __str__(self) -> str:
        return self.config.display_name or self.config.name

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def platform(self) -> str:
        """Name of the backend this service was constructed by."""
        return self._platform

    @property
    def is_user_service(self) -> bool:
        return self.config.option.get_bool(OPTION_USER_SERVICE)

    # ------------------------------------------------------------------
    # Install / Uninstall
    # ------------------------------------------------------------------

    @abstractmethod
    def config_path(self) -> Path:
        """Path of the descriptor file this backend installs."""

    @abstractmethod
    def template_source(self) -> str:
        """Template text: the operator override if set, else the built-in."""

    @abstractmethod
    def install(self) -> None:
        """Write the descriptor and register it with the init system."""

    @abstractmethod
    def uninstall(self) -> None:
        """Remove the descriptor and any registration created by install."""

    def render(self) -> str:
        """Return the descriptor text install would write."""
        return template.render(self.template_source(), self.template_context())

    def template_context(self) -> dict[str, Any]:
        c = self.config
        return {
            "name": c.name,
            "display_name": c.display_name,
            "description": c.description,
            "user_name": c.user_name,
            "path": c.exec_path(),
            "arguments": list(c.arguments),
            "working_directory": c.working_directory,
            "chroot": c.chroot,
            "dependencies": list(c.dependencies),
            "env_vars": dict(c.env_vars),
            "log_directory": c.option.get_str(OPTION_LOG_DIRECTORY, DEFAULT_LOG_DIRECTORY),
            "log_output": c.option.get_bool(OPTION_LOG_OUTPUT),
        }

    def _write_descriptor(self, path: Path, mode: int | None = 0o755) -> None:
        """Create *path* and render the template into it.

        The file is created before rendering and is not removed if rendering
        fails, so a broken override can be inspected in place.
        """
        with open(path, "x", encoding="utf-8") as f:
            template.render_to(f, self.template_source(), self.template_context())
        if mode is not None:
            path.chmod(mode)

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------

    @abstractmethod
    def start(self) -> None:
        """Start the service via the init system."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the service via the init system."""

    def restart(self) -> None:
        self.stop()
        time.sleep(self.restart_delay)
        self.start()

    def run(self) -> None:
        """Call ``interface.start``, block until SIGTERM/SIGINT, then ``interface.stop``.

        The shutdown signals are blocked before ``start`` runs, so one that
        arrives while the application is starting stays pending instead of
        being lost; threads spawned by ``start`` inherit the blocked mask.
        The ``run_wait`` option replaces the signal wait entirely.
        """
        run_wait = self.config.option.get_callable(OPTION_RUN_WAIT)
        if run_wait is not None:
            self.interface.start(self)
            run_wait()
            self.interface.stop(self)
            return

        previous = signal.pthread_sigmask(signal.SIG_BLOCK, _SHUTDOWN_SIGNALS)
        try:
            self.interface.start(self)
            signum = signal.sigwait(_SHUTDOWN_SIGNALS)
            logger.info(f"{self} received {signal.Signals(signum).name}, stopping")
        finally:
            signal.pthread_sigmask(signal.SIG_SETMASK, previous)
        self.interface.stop(self)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @abstractmethod
    def status(self) -> Status:
        """Query the init system.

        Raises:
            NotInstalledError: If the service is not installed.
        """

    def get_info(self) -> ServiceInfo:
        path = self.config_path()
        info = ServiceInfo(
            name=self.name,
            platform=self.platform,
            service_file=path if path.exists() else None,
            installed=path.exists(),
        )
        try:
            info.status = self.status()
        except NotInstalledError:
            info.status = Status.UNKNOWN
        except ServiceError as e:
            info.error = str(e)
        return info

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def logger(self, errors: Queue[Exception] | None = None) -> ServiceLogger:
        """Console logger when run by hand, system logger under an init system."""
        from polyinit.daemon.logger import console_logger

        if context.is_interactive():
            return console_logger(self.name)
        return self.system_logger(errors)

    def system_logger(self, errors: Queue[Exception] | None = None) -> ServiceLogger:
        from polyinit.daemon.logger import system_logger

        return system_logger(self.name, errors)


def decode_status(out: str, running: str = "Running", stopped: str = "Stopped") -> Status:
    """Map control-script output to a Status by prefix.

    Raises:
        NotInstalledError: For any other output.
    """
    if out.startswith(running):
        return Status.RUNNING
    if out.startswith(stopped):
        return Status.STOPPED
    raise NotInstalledError()
