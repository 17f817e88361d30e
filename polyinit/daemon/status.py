"""Service status model."""

from enum import Enum


class Status(Enum):
    """Service running state, derived fresh from the OS on every query."""

    UNKNOWN = "unknown"
    RUNNING = "running"
    STOPPED = "stopped"
