"""Run external control commands and map their exit status."""

import os
import subprocess

from loguru import logger

from polyinit.daemon.errors import CommandError, CommandStartError

# launchctl may exit 0 while printing this on a successful asynchronous load
_LAUNCHCTL_IN_PROGRESS = "Operation now in progress\n"


def run(command: str, *args: str) -> None:
    """Run ``command args...`` and raise if it does not succeed."""
    _run_command(command, args, read_stdout=False)


def run_with_output(command: str, *args: str) -> tuple[int, str]:
    """Run ``command args...`` and return ``(exit_code, stdout)``.

    A non-zero exit raises :class:`CommandError`; its ``exit_code`` and
    ``stdout`` attributes still carry what the command reported, since some
    tools (``systemctl is-active``) answer through their exit status.
    """
    return _run_command(command, args, read_stdout=True)


def _run_command(command: str, args: tuple[str, ...], read_stdout: bool) -> tuple[int, str]:
    logger.debug(f"exec: {command} {' '.join(args)}")
    try:
        proc = subprocess.Popen(
            [command, *args],
            stdout=subprocess.PIPE if read_stdout else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise CommandStartError(command, e) from e

    out, err = proc.communicate()
    out = out or ""
    err = err or ""

    exit_code, sig = _exit_status(proc.returncode)
    if exit_code != 0:
        raise CommandError(command, args, exit_code, out, err, signal=sig)

    if os.path.basename(command) == "launchctl":
        if err and not err.endswith(_LAUNCHCTL_IN_PROGRESS):
            raise CommandError(command, args, 0, "", err)

    return 0, out


def _exit_status(returncode: int) -> tuple[int, int | None]:
    """Map a Popen return code to ``(exit_code, signal)``.

    Popen reports death-by-signal as ``-signum``; use the shell's ``128 + n``.
    """
    if returncode < 0:
        return 128 - returncode, -returncode
    return returncode, None
