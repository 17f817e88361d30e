"""System V init backend: LSB script in ``/etc/init.d`` plus runlevel links."""

from pathlib import Path

from polyinit.config.schema import OPTION_SYSV_SCRIPT
from polyinit.daemon.script import CONTROL_SCRIPT_BODY, ScriptService

INIT_DIR = Path("/etc/init.d")
ETC_DIR = Path("/etc")

START_RUNLEVELS = ("2", "3", "4", "5")
KILL_RUNLEVELS = ("0", "1", "6")

SYSV_SCRIPT = (
    """\
#!/bin/sh
# For RedHat and cousins:
# chkconfig: - 99 01
# description: {{ description }}
# processname: {{ path }}

### BEGIN INIT INFO
# Provides:          {{ name }}
# Required-Start:
# Required-Stop:
# Default-Start:     2 3 4 5
# Default-Stop:      0 1 6
# Short-Description: {{ display_name }}
# Description:       {{ description }}
### END INIT INFO

"""
    + CONTROL_SCRIPT_BODY
)


def is_sysv() -> bool:
    return INIT_DIR.is_dir()


class SystemVService(ScriptService):
    script_option = OPTION_SYSV_SCRIPT
    default_script = SYSV_SCRIPT

    def config_path(self) -> Path:
        return INIT_DIR / self.name

    def link_paths(self) -> list[Path]:
        links = [ETC_DIR / f"rc{level}.d" / f"S50{self.name}" for level in START_RUNLEVELS]
        links += [ETC_DIR / f"rc{level}.d" / f"K02{self.name}" for level in KILL_RUNLEVELS]
        return links

    def template_context(self) -> dict:
        ctx = super().template_context()
        ctx["preamble"] = '[ -e /etc/sysconfig/"$name" ] && . /etc/sysconfig/"$name"\n'
        return ctx

    def _register(self, path: Path) -> None:
        for link in self.link_paths():
            link.symlink_to(path)

    def uninstall(self) -> None:
        self.config_path().unlink()
        for link in self.link_paths():
            link.unlink()

    def _control(self) -> list[str]:
        return ["service", self.name]
