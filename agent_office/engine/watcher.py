"""Session file watcher.

Polls one session file's modification time on a short interval.

Per change the watcher publishes the new snapshot first and the diffed
events second, so an event consumer can rely on current state already
reflecting the event.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from pathlib import Path

from agent_office.adapters.events import OfficeEvent
from agent_office.engine.diff import diff_sessions
from agent_office.engine.environment import get_session_path, read_env
from agent_office.engine.errors import SessionNotFoundError, SnapshotParseError
from agent_office.engine.models import SessionSnapshot

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.2

SessionCallback = Callable[[SessionSnapshot], None]
EventCallback = Callable[[OfficeEvent], None]
ErrorCallback = Callable[[Exception], None]


class SessionFileWatcher:
    """Watch the active session file and turn changes into snapshots and events."""

    def __init__(
        self,
        on_session_change: SessionCallback,
        on_event: EventCallback,
        on_error: ErrorCallback,
        session_path: str | Path | None = None,
        project_path: Path | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._on_session_change = on_session_change
        self._on_event = on_event
        self._on_error = on_error
        self._explicit_path = Path(session_path) if session_path else None
        self._project_path = project_path
        self._poll_interval = poll_interval
        self._session_path: Path | None = None
        self._previous: SessionSnapshot | None = None
        self._previous_mtime_ns = 0
        self._last_error_mtime_ns: int | None = None
        self._task: asyncio.Task | None = None

    @property
    def session_path(self) -> Path | None:
        return self._session_path

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _resolve_path(self) -> Path | None:
        if self._explicit_path is not None:
            return self._explicit_path
        env = read_env(self._project_path)
        if not env.has_active_session:
            self._on_error(SessionNotFoundError("No active session found"))
            return None
        return get_session_path(env.project_dir, env.active_session_id)

    def start(self) -> bool:
        """Load the initial snapshot and begin polling.

        Must be called from a running event loop. Returns False (after
        reporting through ``on_error``) when there is nothing to watch.
        """
        path = self._resolve_path()
        if path is None:
            return False
        if not path.exists():
            self._on_error(SessionNotFoundError("Session file not found", str(path)))
            return False

        self._session_path = path
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError:
            logger.debug("Initial stat failed for %s", path, exc_info=True)
            mtime_ns = 0
        self._load(mtime_ns)

        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._poll_loop())
        logger.info("Watching session file %s every %.0fms", path, self._poll_interval * 1000)
        return True

    def stop(self) -> None:
        """Cancel polling. Safe to call repeatedly."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("Stopped watching %s", self._session_path)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                self.check_for_changes()
            except Exception:
                logger.exception("Session watcher tick failed")

    def check_for_changes(self) -> None:
        """Run a single poll tick."""
        if self._session_path is None:
            return
        try:
            mtime_ns = self._session_path.stat().st_mtime_ns
        except OSError:
            # Temporarily absent while the writer replaces it.
            return
        if mtime_ns > self._previous_mtime_ns:
            self._load(mtime_ns)

    def _read_snapshot(self) -> SessionSnapshot:
        assert self._session_path is not None
        raw = self._session_path.read_bytes()
        try:
            data = json.loads(raw.decode("utf-8"))
            return SessionSnapshot.from_dict(data)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
            raise SnapshotParseError(str(self._session_path), str(exc)) from exc

    def _load(self, mtime_ns: int) -> None:
        try:
            snapshot = self._read_snapshot()
        except OSError:
            logger.debug("Session file unreadable, retrying next tick", exc_info=True)
            return
        except SnapshotParseError as exc:
            # mtime stays uncommitted; reported once per file version.
            if self._last_error_mtime_ns != mtime_ns:
                self._last_error_mtime_ns = mtime_ns
                logger.warning("%s", exc)
                self._on_error(exc)
            return

        self._previous_mtime_ns = mtime_ns
        self._last_error_mtime_ns = None
        previous = self._previous
        events = diff_sessions(previous, snapshot) if previous is not None else []

        self._previous = snapshot
        self._on_session_change(snapshot)
        for event in events:
            self._on_event(event)
