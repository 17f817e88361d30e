"""Loggers handed to application code running as a service."""

from __future__ import annotations

from logging.handlers import SysLogHandler
from queue import Queue
from typing import Any

from loguru import logger

SYSLOG_ADDRESS = "/dev/log"

# service name -> loguru sink id
_syslog_sinks: dict[str, int] = {}


class ServiceLogger:
    """Error/Warning/Info logging bound to one service name.

    When an *errors* queue is given, any failure while emitting a record is
    put on the queue before it is re-raised.
    """

    def __init__(self, name: str, errors: Queue[Exception] | None = None):
        self.name = name
        self._errors = errors
        self._log = logger.bind(service=name)

    def error(self, message: str, *args: Any) -> None:
        self._emit("ERROR", message, args)

    def warning(self, message: str, *args: Any) -> None:
        self._emit("WARNING", message, args)

    def info(self, message: str, *args: Any) -> None:
        self._emit("INFO", message, args)

    def _emit(self, level: str, message: str, args: tuple[Any, ...]) -> None:
        try:
            self._log.opt(depth=2).log(level, message, *args)
        except Exception as e:
            if self._errors is not None:
                self._errors.put(e)
            raise


def console_logger(name: str, errors: Queue[Exception] | None = None) -> ServiceLogger:
    """Logger for interactive runs; uses whatever sinks loguru already has."""
    return ServiceLogger(name, errors)


def system_logger(name: str, errors: Queue[Exception] | None = None) -> ServiceLogger:
    """Logger that forwards this service's records to the local syslog daemon.

    Raises:
        OSError: If the syslog socket cannot be opened.
    """
    if name in _syslog_sinks:
        return ServiceLogger(name, errors)

    handler = SysLogHandler(address=SYSLOG_ADDRESS, facility=SysLogHandler.LOG_DAEMON)
    handler.ident = f"{name}: "
    _syslog_sinks[name] = logger.add(
        handler,
        format="{message}",
        filter=lambda record: record["extra"].get("service") == name,
        catch=False,
    )
    return ServiceLogger(name, errors)
