"""Pick the init system that governs this host."""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from polyinit.config.schema import Config
from polyinit.daemon.base import Interface, Service
from polyinit.daemon.context import is_interactive
from polyinit.daemon.errors import NoServiceSystemDetected

ServiceFactory = Callable[[Interface, str, Config], Service]


@dataclass(frozen=True)
class BackendDescriptor:
    """A candidate init system: how to detect it and how to build a Service for it."""

    name: str
    detect: Callable[[], bool]
    interactive: Callable[[], bool]
    factory: ServiceFactory

    def __str__(self) -> str:
        return self.name

    def new(self, interface: Interface, config: Config) -> Service:
        return self.factory(interface, self.name, config)


class Registry:
    """Ordered candidate backends; the first whose ``detect()`` is true wins.

    The choice is made once and kept for the registry's lifetime.
    """

    def __init__(self, backends: Sequence[BackendDescriptor]):
        self._backends = tuple(backends)
        self._selected: BackendDescriptor | None = None

    @property
    def backends(self) -> tuple[BackendDescriptor, ...]:
        return self._backends

    def select(self) -> BackendDescriptor:
        """Return the active backend, probing candidates in priority order on first use.

        Raises:
            NoServiceSystemDetected: If no candidate is detected.
        """
        if self._selected is None:
            for backend in self._backends:
                if backend.detect():
                    logger.debug(f"Detected service system {backend.name}")
                    self._selected = backend
                    break
            else:
                raise NoServiceSystemDetected()
        return self._selected

    def new(self, interface: Interface, config: Config) -> Service:
        """Bind *config* to the active backend."""
        return self.select().new(interface, config)

    def platform(self) -> str:
        return self.select().name

    def interactive(self) -> bool:
        return self.select().interactive()


def linux_backends() -> list[BackendDescriptor]:
    """Linux candidates, most specific first; sysv is the catch-all."""
    from polyinit.daemon.boxrc import BoxRCService, is_boxrc
    from polyinit.daemon.openrc import OpenRCService, is_openrc
    from polyinit.daemon.rcs import RCSService, is_rcs
    from polyinit.daemon.systemd import SystemdService, is_systemd
    from polyinit.daemon.sysv import SystemVService, is_sysv
    from polyinit.daemon.upstart import UpstartService, is_upstart

    return [
        BackendDescriptor("linux-systemd", is_systemd, is_interactive, SystemdService),
        BackendDescriptor("linux-upstart", is_upstart, is_interactive, UpstartService),
        BackendDescriptor("linux-openrc", is_openrc, is_interactive, OpenRCService),
        BackendDescriptor("linux-rcs", is_rcs, is_interactive, RCSService),
        BackendDescriptor("linux-boxrc", is_boxrc, is_interactive, BoxRCService),
        BackendDescriptor("linux-systemv", is_sysv, is_interactive, SystemVService),
    ]


def default_registry() -> Registry:
    """Registry for the running platform; empty where no backend applies."""
    if sys.platform.startswith("linux"):
        return Registry(linux_backends())
    return Registry([])
