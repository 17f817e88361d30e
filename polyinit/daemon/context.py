"""Decide whether this process was started by an init system or by a person."""

import os
from pathlib import Path

CGROUP_FILE = Path("/proc/1/cgroup")
PROC_ROOT = Path("/proc")

_MAX_CGROUP_LINES = 5
_CONTAINER_MARKERS = ("docker", "lxc")
_SYSTEMD_BINARY = "systemd"


def is_in_container(cgroup_path: Path | None = None) -> bool:
    """Return True if pid 1's control groups name a container runtime.

    Only the first few lines are scanned. I/O errors propagate.
    """
    path = cgroup_path or CGROUP_FILE
    with open(path, encoding="utf-8", errors="replace") as f:
        for lineno, line in enumerate(f):
            if lineno >= _MAX_CGROUP_LINES:
                break
            if any(marker in line for marker in _CONTAINER_MARKERS):
                return True
    return False


def binary_name(pid: int) -> str:
    """Return the executable name recorded in ``/proc/<pid>/stat``.

    Raises:
        OSError: If the stat record cannot be read.
        ValueError: If the record has no parenthesised name field.
    """
    data = (PROC_ROOT / str(pid) / "stat").read_text(encoding="utf-8", errors="replace")
    start = data.index("(") + 1
    # The name itself may contain ')', so the field ends at the last one
    end = data.rindex(")")
    if end < start:
        raise ValueError(f"malformed stat record for pid {pid}")
    return data[start:end]


def is_interactive() -> bool:
    """Return True unless the process looks like it was launched by an init system.

    Containers always count as interactive because init ancestry inside them
    says nothing about the host. Any read failure counts as "not detected".
    """
    try:
        if is_in_container():
            return True
    except OSError:
        pass

    ppid = os.getppid()
    if ppid == 1:
        return False

    try:
        parent = binary_name(ppid)
    except (OSError, ValueError):
        parent = ""
    return parent != _SYSTEMD_BINARY
