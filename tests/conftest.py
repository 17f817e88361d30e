"""Shared test fixtures."""

from pathlib import Path

import pytest

from polyinit.config.schema import Config
from polyinit.daemon import process
from polyinit.daemon.errors import CommandError

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config() -> Config:
    """Service config with an argument that needs quoting."""
    return Config(
        name="polyinit-test-svc",
        display_name="Polyinit Test Service",
        description="Service used by the test suite",
        executable="/usr/bin/app",
        arguments=["--flag", "value with spaces"],
    )


class RecordingProgram:
    """Interface implementation that records its callbacks."""

    def __init__(self, on_start=None, fail_start: Exception | None = None):
        self.events: list[str] = []
        self._on_start = on_start
        self._fail_start = fail_start

    def start(self, service) -> None:
        self.events.append("start")
        if self._fail_start is not None:
            raise self._fail_start
        if self._on_start is not None:
            self._on_start()

    def stop(self, service) -> None:
        self.events.append("stop")


@pytest.fixture
def program() -> RecordingProgram:
    return RecordingProgram()


# =============================================================================
# External command fakes
# =============================================================================


class FakeCommands:
    """Stands in for the process invoker; answers are keyed by full argv."""

    def __init__(self):
        self.calls: list[tuple[str, ...]] = []
        self.answers: dict[tuple[str, ...], tuple[int, str]] = {}

    def answer(self, *argv: str, exit_code: int = 0, stdout: str = "") -> None:
        self.answers[argv] = (exit_code, stdout)

    def run(self, command: str, *args: str) -> None:
        self._respond(command, args)

    def run_with_output(self, command: str, *args: str) -> tuple[int, str]:
        return self._respond(command, args)

    def _respond(self, command: str, args: tuple[str, ...]) -> tuple[int, str]:
        argv = (command, *args)
        self.calls.append(argv)
        exit_code, stdout = self.answers.get(argv, (0, ""))
        if exit_code != 0:
            raise CommandError(command, args, exit_code, stdout)
        return exit_code, stdout


@pytest.fixture
def commands(monkeypatch) -> FakeCommands:
    """Replace external command execution for the duration of a test."""
    fake = FakeCommands()
    monkeypatch.setattr(process, "run", fake.run)
    monkeypatch.setattr(process, "run_with_output", fake.run_with_output)
    return fake


# =============================================================================
# Filesystem roots
# =============================================================================


@pytest.fixture
def boxrc_dirs(tmp_path: Path, monkeypatch) -> tuple[Path, Path]:
    """Point the boxrc backend at temporary init directories."""
    init_dir = tmp_path / "boxinit.d"
    link_dir = tmp_path / "boxrc.d"
    init_dir.mkdir()
    link_dir.mkdir()
    monkeypatch.setattr("polyinit.daemon.boxrc.BOXINIT_DIR", init_dir)
    monkeypatch.setattr("polyinit.daemon.boxrc.BOXRC_DIR", link_dir)
    return init_dir, link_dir


@pytest.fixture
def make_program():
    """Factory for programs with start hooks."""
    return RecordingProgram
