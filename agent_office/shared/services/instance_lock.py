"""Cooperative cross-process lock backed by a lock file.

The lock file holds ``{"pid", "timestamp", "port"}``. A lock is stale
when its timestamp is older than ``stale_seconds`` or its owning process
no longer exists; stale locks are taken over. Owners refresh the
timestamp periodically while they run.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path

from agent_office.engine.errors import LockHeldError

logger = logging.getLogger(__name__)

DEFAULT_STALE_SECONDS = 30.0


@dataclass
class LockData:
    pid: int
    timestamp: float
    port: int | None = None


def pid_alive(pid: int) -> bool:
    """Signal 0 probes for existence without touching the process."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


class InstanceLock:
    """Exclusive lock on *path* shared between processes of this tool."""

    def __init__(
        self,
        path: Path,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        clock: Callable[[], float] = time.time,
        pid: int | None = None,
        is_alive: Callable[[int], bool] = pid_alive,
    ) -> None:
        self.path = path
        self._stale_seconds = stale_seconds
        self._clock = clock
        self._pid = pid if pid is not None else os.getpid()
        self._is_alive = is_alive
        self._held = False
        self._port: int | None = None

    @property
    def held(self) -> bool:
        return self._held

    def read(self) -> LockData | None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return LockData(
                pid=int(raw["pid"]),
                timestamp=float(raw["timestamp"]),
                port=raw.get("port"),
            )
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError):
            logger.debug("Unreadable lock file %s", self.path, exc_info=True)
            return None

    def is_stale(self, data: LockData) -> bool:
        if data.pid == self._pid:
            return True
        if self._clock() - data.timestamp >= self._stale_seconds:
            return True
        return not self._is_alive(data.pid)

    def acquire(self, port: int | None = None) -> None:
        """Take the lock or raise :class:`LockHeldError` naming the live owner."""
        self._port = port
        if self._create():
            return
        existing = self.read()
        if existing is not None and not self.is_stale(existing):
            raise LockHeldError(str(self.path), existing.pid, existing.port)

        logger.info(
            "Taking over stale lock %s (previous pid=%s)",
            self.path, existing.pid if existing else "?",
        )
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        if not self._create():
            # Lost the race to another process taking over the same lock.
            current = self.read()
            raise LockHeldError(str(self.path), current.pid if current else -1,
                                current.port if current else None)

    def _payload(self) -> str:
        return json.dumps(asdict(LockData(self._pid, self._clock(), self._port)))

    def _create(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, "x", encoding="utf-8") as f:
                f.write(self._payload())
        except FileExistsError:
            return False
        self._held = True
        return True

    def refresh(self, port: int | None = None) -> None:
        """Rewrite the timestamp (and optionally the port) atomically."""
        if not self._held:
            return
        if port is not None:
            self._port = port
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self._payload())
            os.replace(tmp_name, self.path)
        except OSError:
            logger.warning("Could not refresh lock %s", self.path, exc_info=True)
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def release(self) -> None:
        """Remove the lock file if this process still owns it. Idempotent."""
        if not self._held:
            return
        self._held = False
        current = self.read()
        if current is not None and current.pid == self._pid:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
