"""Upstart backend: job file in ``/etc/init`` controlled with ``initctl``."""

import re
from pathlib import Path

from loguru import logger

from polyinit.config.schema import OPTION_UPSTART_SCRIPT, Config
from polyinit.daemon import process
from polyinit.daemon.base import Interface, Service, decode_status
from polyinit.daemon.errors import NotInstalledError, ServiceError
from polyinit.daemon.script import ensure_absent, reject_user_service
from polyinit.daemon.status import Status

JOB_DIR = Path("/etc/init")
UDEV_BRIDGE = Path("/sbin/upstart-udev-bridge")
INITCTL = Path("/sbin/initctl")

_VERSION = re.compile(r"initctl \(upstart (\d+)\.(\d+)(?:\.(\d+))?\)")

UPSTART_SCRIPT = """\
# {{ description }}

{% if display_name %}
description    {{ display_name|cmd }}
{% endif %}

{% if has_kill_stanza %}
kill signal INT
{% endif %}
{% if chroot %}
chroot {{ chroot }}
{% endif %}
{% if working_directory %}
chdir {{ working_directory }}
{% endif %}
start on filesystem or runlevel [2345]
stop on runlevel [!2345]

{% if user_name and has_setuid_stanza %}
setuid {{ user_name }}
{% endif %}

respawn
respawn limit 10 5
umask 022

console none

pre-start script
    test -x {{ path|cmd }} || { stop; exit 0; }
end script

# Start
script
{% if log_output %}
    stdout_log="{{ log_directory }}/{{ name }}.out"
    stderr_log="{{ log_directory }}/{{ name }}.err"
{% endif %}

    if [ -f "/etc/sysconfig/{{ name }}" ]; then
        set -a
        . "/etc/sysconfig/{{ name }}"
        set +a
    fi
{% for key, value in env_vars.items() %}
    export {{ key }}={{ value|cmd }}
{% endfor %}

    exec {% if user_name and not has_setuid_stanza %}sudo -E -u {{ user_name }} {% endif %}{{ path|cmd }}{% for arg in arguments %} {{ arg|cmd }}{% endfor %}{% if log_output %} >> "$stdout_log" 2>> "$stderr_log"{% endif %}

end script
"""


def is_upstart() -> bool:
    if UDEV_BRIDGE.exists():
        return True
    if not INITCTL.exists():
        return False
    try:
        _, out = process.run_with_output(str(INITCTL), "--version")
    except ServiceError:
        return False
    return "initctl (upstart" in out


def upstart_version() -> tuple[int, int, int] | None:
    """Parse ``initctl --version``; None when it cannot be determined."""
    try:
        _, out = process.run_with_output("initctl", "--version")
    except ServiceError:
        return None
    match = _VERSION.search(out)
    if not match:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


class UpstartService(Service):
    def __init__(self, interface: Interface, platform: str, config: Config):
        super().__init__(interface, platform, config)
        reject_user_service(self)

    def config_path(self) -> Path:
        return JOB_DIR / f"{self.name}.conf"

    def template_source(self) -> str:
        return self.config.option.get_str(OPTION_UPSTART_SCRIPT) or UPSTART_SCRIPT

    def template_context(self) -> dict:
        ctx = super().template_context()
        version = upstart_version()
        # kill signal needs 0.6.5, setuid needs 1.4
        ctx["has_kill_stanza"] = version is not None and version >= (0, 6, 5)
        ctx["has_setuid_stanza"] = version is not None and version >= (1, 4, 0)
        return ctx

    def install(self) -> None:
        path = self.config_path()
        ensure_absent(path)
        self._write_descriptor(path, mode=0o644)
        logger.info(f"Installed {self.name} at {path} ({self.platform})")

    def uninstall(self) -> None:
        self.config_path().unlink()
        logger.info(f"Uninstalled {self.name} ({self.platform})")

    def start(self) -> None:
        process.run("initctl", "start", self.name)

    def stop(self) -> None:
        process.run("initctl", "stop", self.name)

    def status(self) -> Status:
        if not self.config_path().exists():
            raise NotInstalledError()
        _, out = process.run_with_output("initctl", "status", self.name)
        return decode_status(
            out,
            running=f"{self.name} start/running",
            stopped=f"{self.name} stop/waiting",
        )
