"""Exception hierarchy for the office engine.

One exception per failure mode the watcher, server and lock can report.
"""
from __future__ import annotations


class OfficeError(Exception):
    """Base exception for all agent office errors."""


class SessionNotFoundError(OfficeError):
    """No active session pointer, or the session file does not exist."""
    def __init__(self, reason: str, path: str | None = None):
        self.reason = reason
        self.path = path
        message = reason if path is None else f"{reason}: {path}"
        super().__init__(message)


class SnapshotParseError(OfficeError):
    """The session file exists but does not contain a valid snapshot."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot parse session file {path}: {reason}")


class PortUnavailableError(OfficeError):
    """Every candidate port was already in use."""
    def __init__(self, first_port: int, last_port: int):
        self.first_port = first_port
        self.last_port = last_port
        super().__init__(
            f"No free port in range {first_port}-{last_port}"
        )


class LockHeldError(OfficeError):
    """Another live process holds the instance lock."""
    def __init__(self, lock_path: str, pid: int, port: int | None = None):
        self.lock_path = lock_path
        self.pid = pid
        self.port = port
        super().__init__(
            f"Lock {lock_path} is held by pid {pid}"
        )
