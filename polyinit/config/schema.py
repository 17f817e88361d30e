"""Service configuration schema."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainValidator, field_validator

# Option bag keys
OPTION_USER_SERVICE = "user_service"
OPTION_LOG_OUTPUT = "log_output"
OPTION_LOG_DIRECTORY = "log_directory"
OPTION_RUN_WAIT = "run_wait"
OPTION_RELOAD_SIGNAL = "reload_signal"
OPTION_PID_FILE = "pid_file"
OPTION_LIMIT_NOFILE = "limit_nofile"
OPTION_RESTART = "restart"
OPTION_SUCCESS_EXIT_STATUS = "success_exit_status"
OPTION_SYSTEMD_SCRIPT = "systemd_script"
OPTION_UPSTART_SCRIPT = "upstart_script"
OPTION_OPENRC_SCRIPT = "openrc_script"
OPTION_SYSV_SCRIPT = "sysv_script"
OPTION_RCS_SCRIPT = "rcs_script"

DEFAULT_LOG_DIRECTORY = "/var/log"
DEFAULT_RESTART = "always"
DEFAULT_LIMIT_NOFILE = -1


class Options(dict[str, Any]):
    """Named, typed overrides with per-lookup defaults.

    A value of the wrong type falls back to the default rather than raising,
    so a bad option never prevents a service from being controlled.
    """

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self.get(name, default)
        return value if isinstance(value, bool) else default

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.get(name, default)
        if isinstance(value, bool) or not isinstance(value, int):
            return default
        return value

    def get_str(self, name: str, default: str = "") -> str:
        value = self.get(name, default)
        return value if isinstance(value, str) else default

    def get_callable(
        self, name: str, default: Callable[[], None] | None = None
    ) -> Callable[[], None] | None:
        value = self.get(name, default)
        return value if callable(value) else default


def _coerce_options(value: Any) -> Options:
    if value is None:
        return Options()
    if isinstance(value, Options):
        return value
    if isinstance(value, dict):
        return Options(value)
    raise ValueError("option must be a mapping")


OptionBag = Annotated[Options, PlainValidator(_coerce_options)]


class Config(BaseModel):
    """Immutable description of the service to manage."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    display_name: str = ""
    description: str = ""
    user_name: str = ""

    executable: str = ""  # Defaults to the running program
    arguments: list[str] = Field(default_factory=list)
    working_directory: str = ""
    chroot: str = ""

    dependencies: list[str] = Field(default_factory=list)  # Raw unit/depend() lines
    env_vars: dict[str, str] = Field(default_factory=dict)

    option: OptionBag = Field(default_factory=Options)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("name must not be empty")
        return value

    def exec_path(self) -> str:
        """Return the executable to register, defaulting to the current program."""
        if self.executable:
            return self.executable
        return os.path.abspath(sys.argv[0])
