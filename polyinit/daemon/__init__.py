"""Install and control a program as a native service on Linux init systems."""

from polyinit.daemon.base import Interface, Service, ServiceInfo, decode_status
from polyinit.daemon.context import is_interactive
from polyinit.daemon.errors import (
    AlreadyInstalledError,
    CommandError,
    CommandStartError,
    NoServiceSystemDetected,
    NotInstalledError,
    ServiceError,
    ServiceFailedError,
    TemplateRenderError,
    UserServiceNotSupportedError,
)
from polyinit.daemon.manager import DaemonManager
from polyinit.daemon.registry import BackendDescriptor, Registry, default_registry, linux_backends
from polyinit.daemon.status import Status

__all__ = [
    "AlreadyInstalledError",
    "BackendDescriptor",
    "CommandError",
    "CommandStartError",
    "DaemonManager",
    "Interface",
    "NoServiceSystemDetected",
    "NotInstalledError",
    "Registry",
    "Service",
    "ServiceError",
    "ServiceFailedError",
    "ServiceInfo",
    "Status",
    "TemplateRenderError",
    "UserServiceNotSupportedError",
    "decode_status",
    "default_registry",
    "is_interactive",
    "linux_backends",
]
