"""Linux systemd backend (system units, or ``--user`` units when requested)."""

from pathlib import Path

from loguru import logger

from polyinit.config.schema import (
    DEFAULT_LIMIT_NOFILE,
    DEFAULT_RESTART,
    OPTION_LIMIT_NOFILE,
    OPTION_PID_FILE,
    OPTION_RELOAD_SIGNAL,
    OPTION_RESTART,
    OPTION_SUCCESS_EXIT_STATUS,
    OPTION_SYSTEMD_SCRIPT,
)
from polyinit.daemon import process
from polyinit.daemon.base import Service
from polyinit.daemon.errors import (
    CommandError,
    NotInstalledError,
    ServiceError,
    ServiceFailedError,
)
from polyinit.daemon.script import ensure_absent
from polyinit.daemon.status import Status

SYSTEM_UNIT_DIR = Path("/etc/systemd/system")
RUN_DIR = Path("/run/systemd/system")
PID1_COMM = Path("/proc/1/comm")

# StandardOutput=file: appeared in systemd 236
_OUTPUT_FILE_MIN_VERSION = 236

SYSTEMD_UNIT = """\
[Unit]
Description={{ description }}
ConditionFileIsExecutable={{ path|cmd_escape }}
{% for dep in dependencies %}
{{ dep }}
{% endfor %}

[Service]
StartLimitInterval=5
StartLimitBurst=10
ExecStart={{ path|cmd_escape }}{% for arg in arguments %} {{ arg|cmd }}{% endfor %}

{% if chroot %}
RootDirectory={{ chroot|cmd }}
{% endif %}
{% if working_directory %}
WorkingDirectory={{ working_directory|cmd_escape }}
{% endif %}
{% if user_name %}
User={{ user_name }}
{% endif %}
{% if reload_signal %}
ExecReload=/bin/kill -{{ reload_signal }} "$MAINPID"
{% endif %}
{% if pid_file %}
PIDFile={{ pid_file|cmd }}
{% endif %}
{% if log_output and has_output_file_support %}
StandardOutput=file:{{ log_directory }}/{{ name }}.out
StandardError=file:{{ log_directory }}/{{ name }}.err
{% endif %}
{% if limit_nofile > -1 %}
LimitNOFILE={{ limit_nofile }}
{% endif %}
{% if restart %}
Restart={{ restart }}
{% endif %}
{% if success_exit_status %}
SuccessExitStatus={{ success_exit_status }}
{% endif %}
RestartSec=120
EnvironmentFile=-/etc/sysconfig/{{ name }}
{% for key, value in env_vars.items() %}
Environment={{ (key ~ "=" ~ value)|cmd }}
{% endfor %}

[Install]
WantedBy={{ wanted_by }}
"""


def user_unit_dir() -> Path:
    return Path.home() / ".config" / "systemd" / "user"


def is_systemd() -> bool:
    if RUN_DIR.exists():
        return True
    try:
        return "systemd" in PID1_COMM.read_text(errors="replace")
    except OSError:
        return False


def systemd_version() -> int | None:
    """Major version from ``systemctl --version`` (``systemd 252 (252.22-1)``)."""
    try:
        _, out = process.run_with_output("systemctl", "--version")
    except ServiceError:
        return None
    parts = out.split()
    if len(parts) < 2 or parts[0] != "systemd":
        return None
    try:
        return int(parts[1])
    except ValueError:
        return None


class SystemdService(Service):
    """Manages a systemd unit for the configured program."""

    # ------------------------------------------------------------------
    # Install / Uninstall
    # ------------------------------------------------------------------

    def unit_name(self) -> str:
        return f"{self.name}.service"

    def config_path(self) -> Path:
        unit_dir = user_unit_dir() if self.is_user_service else SYSTEM_UNIT_DIR
        return unit_dir / self.unit_name()

    def template_source(self) -> str:
        return self.config.option.get_str(OPTION_SYSTEMD_SCRIPT) or SYSTEMD_UNIT

    def template_context(self) -> dict:
        ctx = super().template_context()
        option = self.config.option
        version = systemd_version() if ctx["log_output"] else None
        ctx.update(
            reload_signal=option.get_str(OPTION_RELOAD_SIGNAL),
            pid_file=option.get_str(OPTION_PID_FILE),
            limit_nofile=option.get_int(OPTION_LIMIT_NOFILE, DEFAULT_LIMIT_NOFILE),
            restart=option.get_str(OPTION_RESTART, DEFAULT_RESTART),
            success_exit_status=option.get_str(OPTION_SUCCESS_EXIT_STATUS),
            has_output_file_support=version is not None
            and version >= _OUTPUT_FILE_MIN_VERSION,
            wanted_by="default.target" if self.is_user_service else "multi-user.target",
        )
        return ctx

    def install(self) -> None:
        path = self.config_path()
        ensure_absent(path)
        path.parent.mkdir(mode=0o700 if self.is_user_service else 0o755, parents=True, exist_ok=True)
        self._write_descriptor(path, mode=0o644)
        self._systemctl("enable", self.unit_name())
        self._systemctl("daemon-reload")
        logger.info(f"Installed {self.unit_name()} at {path}")

    def uninstall(self) -> None:
        self._systemctl("disable", self.unit_name())
        self.config_path().unlink()
        self._systemctl("daemon-reload")
        logger.info(f"Uninstalled {self.unit_name()}")

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._systemctl("start", self.unit_name())

    def stop(self) -> None:
        self._systemctl("stop", self.unit_name())

    def restart(self) -> None:
        self._systemctl("restart", self.unit_name())

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> Status:
        out = self._systemctl_output("is-active", self.unit_name())
        if out.startswith("active") or out.startswith("activating"):
            return Status.RUNNING
        if out.startswith("inactive"):
            # inactive is also what systemd says about units it has never heard of
            listed = self._systemctl_output("list-unit-files", "-t", "service", self.unit_name())
            if self.unit_name() in listed:
                return Status.STOPPED
            raise NotInstalledError()
        if out.startswith("failed"):
            raise ServiceFailedError(self.name)
        raise NotInstalledError()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _scope(self) -> list[str]:
        return ["--user"] if self.is_user_service else []

    def _systemctl(self, *args: str) -> None:
        process.run("systemctl", *self._scope(), *args)

    def _systemctl_output(self, *args: str) -> str:
        """Stdout of a query; non-zero exits still carry an answer here."""
        try:
            _, out = process.run_with_output("systemctl", *self._scope(), *args)
        except CommandError as e:
            return e.stdout
        return out
