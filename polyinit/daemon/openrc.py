"""OpenRC backend: ``openrc-run`` script managed with ``rc-update``/``rc-service``."""

import re
import shutil
from pathlib import Path

from loguru import logger

from polyinit.config.schema import OPTION_OPENRC_SCRIPT
from polyinit.daemon import process
from polyinit.daemon.base import decode_status
from polyinit.daemon.errors import CommandError, NotInstalledError
from polyinit.daemon.script import ScriptService
from polyinit.daemon.status import Status

INIT_DIR = Path("/etc/init.d")
INITTAB = Path("/etc/inittab")

_SYSINIT = re.compile(r"::sysinit:.*openrc.*sysinit")

OPENRC_SCRIPT = """\
#!/sbin/openrc-run
supervisor=supervise-daemon
name={{ display_name|cmd }}
description={{ description|cmd }}
command={{ path|cmd }}
{% if arguments %}
command_args="{% for arg in arguments %}{{ arg|cmd_nested }} {% endfor %}"
{% endif %}
{% if working_directory %}
directory={{ working_directory|cmd }}
{% endif %}
{% if user_name %}
command_user={{ user_name|cmd }}
{% endif %}
supervise_daemon_args="--stdout {{ log_directory }}/{{ name }}.log --stderr {{ log_directory }}/{{ name }}.err"
{% for key, value in env_vars.items() %}
export {{ key }}={{ value|cmd }}
{% endfor %}
{% if dependencies %}

depend() {
{% for dep in dependencies %}
	{{ dep }}
{% endfor %}
}
{% endif %}
"""


def is_openrc() -> bool:
    if shutil.which("openrc-init"):
        return True
    try:
        return _SYSINIT.search(INITTAB.read_text(errors="replace")) is not None
    except OSError:
        return False


class OpenRCService(ScriptService):
    script_option = OPTION_OPENRC_SCRIPT
    default_script = OPENRC_SCRIPT

    def config_path(self) -> Path:
        return INIT_DIR / self.name

    def _register(self, path: Path) -> None:
        process.run("rc-update", "add", self.name)

    def uninstall(self) -> None:
        process.run("rc-update", "del", self.name)
        self.config_path().unlink()
        logger.info(f"Uninstalled {self.name} ({self.platform})")

    def _control(self) -> list[str]:
        return ["rc-service", self.name]

    def status(self) -> Status:
        if not self.config_path().exists():
            raise NotInstalledError()
        try:
            _, out = process.run_with_output("rc-service", self.name, "status")
        except CommandError as e:
            # rc-service exits 3 for a stopped service, 1 for one it does not know
            if e.exit_code != 3:
                raise
            out = e.stdout
        return decode_status(out.lstrip(), running="* status: started", stopped="* status: stopped")
