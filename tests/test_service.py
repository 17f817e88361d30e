"""Tests for the backend-independent Service behaviour."""

import signal
import threading
from pathlib import Path

import pytest

from polyinit.config.schema import Options
from polyinit.daemon import context, rcs
from polyinit.daemon.base import ServiceInfo
from polyinit.daemon.rcs import RCSService
from polyinit.daemon.status import Status


def _send_to_self(signum: int):
    def send():
        signal.pthread_kill(threading.get_ident(), signum)

    return send


def _blocked() -> set[int]:
    return set(signal.pthread_sigmask(signal.SIG_BLOCK, []))


class TestRun:
    """Tests for Service.run()."""

    @pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
    def test_stops_on_shutdown_signal(self, config, make_program, signum):
        """Test a shutdown signal raised during start is not lost."""
        program = make_program(on_start=_send_to_self(signum))
        RCSService(program, "linux-rcs", config).run()
        assert program.events == ["start", "stop"]

    def test_mask_restored_after_run(self, config, make_program):
        before = _blocked()
        program = make_program(on_start=_send_to_self(signal.SIGTERM))
        RCSService(program, "linux-rcs", config).run()
        assert _blocked() == before

    def test_failed_start_skips_stop(self, config, make_program):
        """Test a start failure propagates, stop is never called and signals are unblocked."""
        before = _blocked()
        program = make_program(fail_start=RuntimeError("boom"))

        with pytest.raises(RuntimeError, match="boom"):
            RCSService(program, "linux-rcs", config).run()
        assert program.events == ["start"]
        assert _blocked() == before

    def test_run_wait_option(self, config, program):
        """Test a run_wait callable replaces the signal wait."""
        config = config.model_copy(
            update={"option": Options(run_wait=lambda: program.events.append("wait"))}
        )
        RCSService(program, "linux-rcs", config).run()
        assert program.events == ["start", "wait", "stop"]


class TestIdentity:
    """Tests for naming and platform reporting."""

    def test_str_prefers_display_name(self, config, program):
        assert str(RCSService(program, "linux-rcs", config)) == "Polyinit Test Service"

    def test_str_falls_back_to_name(self, config, program):
        config = config.model_copy(update={"display_name": ""})
        assert str(RCSService(program, "linux-rcs", config)) == "polyinit-test-svc"

    def test_platform(self, config, program):
        assert RCSService(program, "linux-rcs", config).platform == "linux-rcs"


class TestGetInfo:
    """Tests for Service.get_info()."""

    @pytest.fixture(autouse=True)
    def init_dir(self, tmp_path: Path, monkeypatch) -> Path:
        monkeypatch.setattr(rcs, "INIT_DIR", tmp_path)
        return tmp_path

    def test_not_installed(self, config, program):
        info = RCSService(program, "linux-rcs", config).get_info()
        assert info == ServiceInfo(name="polyinit-test-svc", platform="linux-rcs")

    def test_installed(self, config, program):
        service = RCSService(program, "linux-rcs", config)
        service.install()
        info = service.get_info()
        assert info.installed is True
        assert info.service_file == service.config_path()
        assert info.status == Status.STOPPED
        assert info.error is None

    def test_query_failure_is_reported(self, config, program, commands):
        service = RCSService(program, "linux-rcs", config)
        service.config_path().touch()
        commands.answer(str(service.config_path()), "status", exit_code=2)

        info = service.get_info()
        assert info.status == Status.UNKNOWN
        assert "exit status 2" in info.error


class TestLoggerSelection:
    """Tests for Service.logger()."""

    def test_interactive_uses_console(self, config, program, monkeypatch):
        monkeypatch.setattr(context, "is_interactive", lambda: True)
        monkeypatch.setattr(
            "polyinit.daemon.logger.system_logger",
            lambda name, errors=None: pytest.fail("syslog should not be used"),
        )
        log = RCSService(program, "linux-rcs", config).logger()
        assert log.name == "polyinit-test-svc"

    def test_non_interactive_uses_syslog(self, config, program, monkeypatch):
        chosen = []
        monkeypatch.setattr(context, "is_interactive", lambda: False)
        monkeypatch.setattr(
            "polyinit.daemon.logger.system_logger",
            lambda name, errors=None: chosen.append(name) or "syslog",
        )
        assert RCSService(program, "linux-rcs", config).logger() == "syslog"
        assert chosen == ["polyinit-test-svc"]
