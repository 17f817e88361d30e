"""Errors raised by service backends."""

from __future__ import annotations

from collections.abc import Sequence

from polyinit.daemon.status import Status


class ServiceError(RuntimeError):
    """Base class for every error a lifecycle call can raise."""

    status: Status = Status.UNKNOWN


class NoServiceSystemDetected(ServiceError):
    def __init__(self) -> None:
        super().__init__("No service system detected.")


class UserServiceNotSupportedError(ServiceError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"User services are not supported on {platform}.")
        self.platform = platform


class AlreadyInstalledError(ServiceError):
    def __init__(self, path: object) -> None:
        super().__init__(f"Init already exists: {path}")
        self.path = path


class NotInstalledError(ServiceError):
    """The service descriptor is absent or its status output is not recognised."""

    def __init__(self, message: str = "the service is not installed") -> None:
        super().__init__(message)


class ServiceFailedError(ServiceError):
    def __init__(self, name: str) -> None:
        super().__init__(f"service {name} is in failed state")


class TemplateRenderError(ServiceError):
    pass


class CommandStartError(ServiceError):
    """The external command could not be started at all."""

    def __init__(self, command: str, cause: OSError) -> None:
        super().__init__(f"{command!r} failed: {cause}")
        self.command = command


class CommandError(ServiceError):
    """The external command ran but reported failure."""

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
        signal: int | None = None,
    ) -> None:
        cmdline = " ".join([command, *args])
        if signal is not None:
            reason = f"terminated by signal {signal}"
        elif exit_code == 0:
            reason = f"failed with stderr: {stderr.strip()}"
        else:
            reason = f"exit status {exit_code}"
        detail = stderr.strip() or stdout.strip()
        message = f"{cmdline!r} {reason}"
        if detail and exit_code != 0:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.command = command
        self.arguments = tuple(args)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.signal = signal
