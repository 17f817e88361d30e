"""Tests for the OpenRC and Upstart backends."""

import subprocess
from pathlib import Path

import pytest
from loguru import logger

from polyinit.config.schema import Config, Options
from polyinit.daemon import openrc, upstart
from polyinit.daemon.errors import (
    AlreadyInstalledError,
    CommandError,
    NotInstalledError,
    UserServiceNotSupportedError,
)
from polyinit.daemon.openrc import OpenRCService
from polyinit.daemon.status import Status
from polyinit.daemon.upstart import UpstartService

NAME = "polyinit-test-svc"


def _with_options(config: Config, **options) -> Config:
    return config.model_copy(update={"option": Options(options)})


# =============================================================================
# OpenRC
# =============================================================================


@pytest.fixture
def openrc_dir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setattr(openrc, "INIT_DIR", tmp_path)
    return tmp_path


class TestOpenRCService:
    """Tests for OpenRCService."""

    def test_install_registers(self, openrc_dir: Path, config, program, commands):
        OpenRCService(program, "linux-openrc", config).install()

        script = openrc_dir / NAME
        assert script.stat().st_mode & 0o777 == 0o755
        assert script.read_text().startswith("#!/sbin/openrc-run\n")
        assert commands.calls == [("rc-update", "add", NAME)]

    def test_second_install_refused(self, openrc_dir: Path, config, program, commands):
        service = OpenRCService(program, "linux-openrc", config)
        service.install()
        with pytest.raises(AlreadyInstalledError):
            service.install()
        assert commands.calls == [("rc-update", "add", NAME)]

    def test_uninstall(self, openrc_dir: Path, config, program, commands):
        service = OpenRCService(program, "linux-openrc", config)
        service.install()
        commands.calls.clear()

        service.uninstall()
        assert not (openrc_dir / NAME).exists()
        assert commands.calls == [("rc-update", "del", NAME)]

    def test_script_contents(self, config, program):
        config = config.model_copy(
            update={"user_name": "svc", "working_directory": "/srv/app", "dependencies": ["need net"]}
        )
        text = OpenRCService(program, "linux-openrc", config).render()
        assert "supervisor=supervise-daemon\n" in text
        assert 'command="/usr/bin/app"\n' in text
        assert 'command_args="\\"--flag\\" \\"value with spaces\\" "\n' in text
        assert 'command_user="svc"\n' in text
        assert 'directory="/srv/app"\n' in text
        assert "depend() {\n\tneed net\n}\n" in text

    def test_command_args_survive_eval(self, config, program):
        """Test openrc-run's eval of command_args yields the original argv."""
        argv = ["--greeting", "it's here", 'say "hi"', "back\\slash", "$HOME", "`id`"]
        config = config.model_copy(update={"arguments": argv})
        text = OpenRCService(program, "linux-openrc", config).render()
        line = next(ln for ln in text.splitlines() if ln.startswith("command_args="))

        script = f'{line}\neval "set -- $command_args"\nfor a in "$@"; do printf "%s\\n" "$a"; done\n'
        result = subprocess.run(["sh", "-c", script], capture_output=True, text=True, check=True)
        assert result.stdout.splitlines() == argv

    def test_start_stop(self, openrc_dir: Path, config, program, commands):
        service = OpenRCService(program, "linux-openrc", config)
        service.start()
        service.stop()
        assert commands.calls == [("rc-service", NAME, "start"), ("rc-service", NAME, "stop")]

    def test_status_started(self, openrc_dir: Path, config, program, commands):
        (openrc_dir / NAME).touch()
        commands.answer("rc-service", NAME, "status", stdout=" * status: started\n")
        assert OpenRCService(program, "linux-openrc", config).status() == Status.RUNNING

    def test_status_stopped_exit_three(self, openrc_dir: Path, config, program, commands):
        """Test rc-service's exit status 3 still carries a stopped answer."""
        (openrc_dir / NAME).touch()
        commands.answer("rc-service", NAME, "status", exit_code=3, stdout=" * status: stopped\n")
        assert OpenRCService(program, "linux-openrc", config).status() == Status.STOPPED

    def test_status_other_failure(self, openrc_dir: Path, config, program, commands):
        (openrc_dir / NAME).touch()
        commands.answer("rc-service", NAME, "status", exit_code=1)
        with pytest.raises(CommandError):
            OpenRCService(program, "linux-openrc", config).status()

    def test_status_not_installed(self, openrc_dir: Path, config, program, commands):
        with pytest.raises(NotInstalledError):
            OpenRCService(program, "linux-openrc", config).status()
        assert commands.calls == []

    def test_user_service_rejected(self, config, program):
        with pytest.raises(UserServiceNotSupportedError):
            OpenRCService(program, "linux-openrc", _with_options(config, user_service=True))


# =============================================================================
# Upstart
# =============================================================================


@pytest.fixture
def job_dir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setattr(upstart, "JOB_DIR", tmp_path)
    return tmp_path


class TestUpstartService:
    """Tests for UpstartService."""

    def test_install(self, job_dir: Path, config, program, commands):
        UpstartService(program, "linux-upstart", config).install()

        job = job_dir / f"{NAME}.conf"
        assert job.stat().st_mode & 0o777 == 0o644
        assert 'exec "/usr/bin/app" "--flag" "value with spaces"\n' in job.read_text()

    def test_second_install_refused(self, job_dir: Path, config, program, commands):
        service = UpstartService(program, "linux-upstart", config)
        service.install()
        with pytest.raises(AlreadyInstalledError):
            service.install()

    def test_uninstall(self, job_dir: Path, config, program, commands):
        service = UpstartService(program, "linux-upstart", config)
        service.install()
        service.uninstall()
        assert list(job_dir.iterdir()) == []

    def test_uninstall_is_logged(self, job_dir: Path, config, program, commands):
        messages: list[str] = []
        sink_id = logger.add(messages.append, format="{message}", level="INFO")
        try:
            service = UpstartService(program, "linux-upstart", config)
            service.install()
            service.uninstall()
        finally:
            logger.remove(sink_id)
        assert f"Uninstalled {NAME} (linux-upstart)\n" in messages

    def test_modern_upstart_stanzas(self, config, program, commands):
        commands.answer("initctl", "--version", stdout="initctl (upstart 1.12.1)\n")
        config = config.model_copy(update={"user_name": "svc"})
        text = UpstartService(program, "linux-upstart", config).render()
        assert "kill signal INT\n" in text
        assert "setuid svc\n" in text
        assert "sudo" not in text

    def test_old_upstart_falls_back_to_sudo(self, config, program, commands):
        commands.answer("initctl", "--version", stdout="initctl (upstart 0.6.5)\n")
        config = config.model_copy(update={"user_name": "svc"})
        text = UpstartService(program, "linux-upstart", config).render()
        assert "kill signal INT\n" in text
        assert "setuid" not in text
        assert 'exec sudo -E -u svc "/usr/bin/app"' in text

    def test_unknown_version(self, config, program, commands):
        commands.answer("initctl", "--version", exit_code=1)
        text = UpstartService(program, "linux-upstart", config).render()
        assert "kill signal" not in text

    def test_log_output(self, config, program, commands):
        text = UpstartService(program, "linux-upstart", _with_options(config, log_output=True)).render()
        assert 'stdout_log="/var/log/polyinit-test-svc.out"' in text
        assert '>> "$stdout_log" 2>> "$stderr_log"' in text

    def test_start_stop(self, config, program, commands):
        service = UpstartService(program, "linux-upstart", config)
        service.start()
        service.stop()
        assert commands.calls == [("initctl", "start", NAME), ("initctl", "stop", NAME)]

    def test_status_running(self, job_dir: Path, config, program, commands):
        (job_dir / f"{NAME}.conf").touch()
        commands.answer(
            "initctl", "status", NAME, stdout=f"{NAME} start/running, process 4242\n"
        )
        assert UpstartService(program, "linux-upstart", config).status() == Status.RUNNING

    def test_status_stopped(self, job_dir: Path, config, program, commands):
        (job_dir / f"{NAME}.conf").touch()
        commands.answer("initctl", "status", NAME, stdout=f"{NAME} stop/waiting\n")
        assert UpstartService(program, "linux-upstart", config).status() == Status.STOPPED

    def test_status_unrecognised(self, job_dir: Path, config, program, commands):
        (job_dir / f"{NAME}.conf").touch()
        commands.answer("initctl", "status", NAME, stdout=f"{NAME} start/pre-start\n")
        with pytest.raises(NotInstalledError):
            UpstartService(program, "linux-upstart", config).status()

    def test_user_service_rejected(self, config, program):
        with pytest.raises(UserServiceNotSupportedError):
            UpstartService(program, "linux-upstart", _with_options(config, user_service=True))

    def test_version_parsing(self, commands):
        commands.answer("initctl", "--version", stdout="initctl (upstart 1.4)\n")
        assert upstart.upstart_version() == (1, 4, 0)
