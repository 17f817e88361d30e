"""Backends whose descriptor is a self-contained ``start|stop|restart|status`` script."""

from pathlib import Path

from loguru import logger

from polyinit.config.schema import OPTION_RCS_SCRIPT, Config
from polyinit.daemon import process
from polyinit.daemon.base import Interface, Service, decode_status
from polyinit.daemon.errors import (
    AlreadyInstalledError,
    NotInstalledError,
    UserServiceNotSupportedError,
)
from polyinit.daemon.status import Status

# Shared by rcs, boxrc and sysv. Every token of the command line goes through
# ``cmd`` so arguments with spaces reach the program intact.
CONTROL_SCRIPT_BODY = """\
name={{ name|cmd }}
pid_file="/var/run/$name.pid"
log_dir={{ log_directory|cmd }}
stdout_log="$log_dir/$name.log"
stderr_log="$log_dir/$name.err"
{% for key, value in env_vars.items() %}
export {{ key }}={{ value|cmd }}
{% endfor %}
{{ preamble }}
get_pid() {
    cat "$pid_file"
}

is_running() {
    [ -f "$pid_file" ] && cat /proc/$(get_pid)/stat > /dev/null 2>&1
}

case "$1" in
    start)
        if is_running; then
            echo "Already started"
        else
            echo "Starting $name"
{% if working_directory %}
            cd {{ working_directory|cmd }}
{% endif %}
            {{ path|cmd }}{% for arg in arguments %} {{ arg|cmd }}{% endfor %} >> "$stdout_log" 2>> "$stderr_log" &
            echo $! > "$pid_file"
            if ! is_running; then
                echo "Unable to start, see $stdout_log and $stderr_log"
                exit 1
            fi
        fi
    ;;
    stop)
        if is_running; then
            printf "Stopping %s.." "$name"
            kill $(get_pid)
            for i in 1 2 3 4 5 6 7 8 9 10
            do
                if ! is_running; then
                    break
                fi
                printf "."
                sleep 1
            done
            echo
            if is_running; then
                echo "Not stopped; may still be shutting down or shutdown may have failed"
                exit 1
            else
                echo "Stopped"
                if [ -f "$pid_file" ]; then
                    rm "$pid_file"
                fi
            fi
        else
            echo "Not running"
        fi
    ;;
    restart)
        $0 stop
        if is_running; then
            echo "Unable to stop, will not attempt to start"
            exit 1
        fi
        $0 start
    ;;
    status)
        if is_running; then
            echo "Running"
        else
            echo "Stopped"
            exit 0
        fi
    ;;
    *)
    echo "Usage: $0 {start|stop|restart|status}"
    exit 1
    ;;
esac
"""

CONTROL_SCRIPT = "#!/bin/sh\n\n" + CONTROL_SCRIPT_BODY


def reject_user_service(service: Service) -> None:
    """Raise if *service* asks for a per-user install on a system-only backend."""
    if service.is_user_service:
        raise UserServiceNotSupportedError(service.platform)


def ensure_absent(path: Path) -> None:
    if path.exists() or path.is_symlink():
        raise AlreadyInstalledError(path)


class ScriptService(Service):
    """Descriptor is a control script invoked directly with ``start``/``stop``/``status``."""

    script_option = OPTION_RCS_SCRIPT
    default_script = CONTROL_SCRIPT

    def __init__(self, interface: Interface, platform: str, config: Config):
        super().__init__(interface, platform, config)
        reject_user_service(self)

    def template_source(self) -> str:
        return self.config.option.get_str(self.script_option) or self.default_script

    def template_context(self) -> dict:
        ctx = super().template_context()
        ctx["preamble"] = ""
        return ctx

    def install(self) -> None:
        path = self.config_path()
        ensure_absent(path)
        self._write_descriptor(path)
        self._register(path)
        logger.info(f"Installed {self.name} at {path} ({self.platform})")

    def _register(self, path: Path) -> None:
        """Hook for backends that link or register the script after writing it."""

    def uninstall(self) -> None:
        self.config_path().unlink()
        logger.info(f"Uninstalled {self.name} ({self.platform})")

    def _control(self) -> list[str]:
        """Command prefix that drives the script; the verb is appended."""
        return [str(self.config_path())]

    def start(self) -> None:
        command, *args = self._control()
        process.run(command, *args, "start")

    def stop(self) -> None:
        command, *args = self._control()
        process.run(command, *args, "stop")

    def status(self) -> Status:
        if not self.config_path().exists():
            raise NotInstalledError()
        command, *args = self._control()
        _, out = process.run_with_output(command, *args, "status")
        return decode_status(out)
