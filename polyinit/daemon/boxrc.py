"""boxinit backend: ``/etc/boxinit.d`` scripts linked into ``/etc/boxrc.d``."""

import re
from pathlib import Path

from polyinit.daemon.script import ScriptService

BOXINIT_DIR = Path("/etc/boxinit.d")
BOXRC_DIR = Path("/etc/boxrc.d")
INITTAB = Path("/etc/inittab")

_SYSINIT = re.compile(r"::sysinit:.*boxrc\.d")
_ORDER_PREFIX = "65"


def is_boxrc() -> bool:
    if not BOXINIT_DIR.exists():
        return False
    try:
        return _SYSINIT.search(INITTAB.read_text(errors="replace")) is not None
    except OSError:
        return False


class BoxRCService(ScriptService):
    """Script in ``/etc/boxinit.d`` with a start-order symlink in ``/etc/boxrc.d``."""

    def config_path(self) -> Path:
        return BOXINIT_DIR / f"{_ORDER_PREFIX}{self.name}"

    def link_path(self) -> Path:
        return BOXRC_DIR / f"{_ORDER_PREFIX}{self.name}"

    def _register(self, path: Path) -> None:
        self.link_path().symlink_to(path)

    def uninstall(self) -> None:
        self.config_path().unlink()
        self.link_path().unlink()
