"""BusyBox-style ``rcS`` backend: ``/etc/init.d/S50<name>`` run from inittab."""

import re
from pathlib import Path

from polyinit.daemon.script import ScriptService

INIT_DIR = Path("/etc/init.d")
INITTAB = Path("/etc/inittab")

_SYSINIT = re.compile(r"::sysinit:.*rcS")


def is_rcs() -> bool:
    if not (INIT_DIR / "rcS").exists():
        return False
    try:
        return _SYSINIT.search(INITTAB.read_text(errors="replace")) is not None
    except OSError:
        return False


class RCSService(ScriptService):
    def config_path(self) -> Path:
        return INIT_DIR / f"S50{self.name}"
