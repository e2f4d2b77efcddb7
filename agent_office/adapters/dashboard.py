"""Dashboard wiring: session watcher -> projection -> event bus -> viewers.

The watcher reports each new snapshot and then the events diffed from
it. Snapshots are mapped to a fresh projection (documents merged in) and
published; each event is folded into the published projection through
the desk state machine before it is emitted, so event listeners always
see a state that already reflects the event.
"""
from __future__ import annotations

import asyncio
import logging
import tempfile
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from agent_office.adapters.event_bus import OfficeEventBus
from agent_office.adapters.events import OfficeEvent
from agent_office.engine.config import OfficeConfig
from agent_office.engine.environment import get_plans_dir
from agent_office.engine.errors import SessionNotFoundError
from agent_office.engine.lifecycle import process_event
from agent_office.engine.models import SessionSnapshot
from agent_office.engine.projection import session_to_projection
from agent_office.engine.watcher import SessionFileWatcher
from agent_office.shared.services.documents import scan_plan_documents
from agent_office.shared.services.editor import open_browser
from agent_office.shared.services.instance_lock import InstanceLock
from agent_office.web.server import OfficeWebServer

logger = logging.getLogger(__name__)


def lock_path_for(session_path: Path) -> Path:
    return Path(tempfile.gettempdir()) / f"agent-office-{session_path.stem}.lock"


class OfficeDashboard:
    """Owns the bus, the watcher and (in web mode) the server."""

    def __init__(
        self,
        config: OfficeConfig | None = None,
        project_path: Path | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._config = config or OfficeConfig()
        self._project_path = project_path or Path.cwd()
        self._on_error = on_error
        self._last_error: Exception | None = None
        self.bus = OfficeEventBus(history_size=self._config.history_size)
        self.watcher = SessionFileWatcher(
            on_session_change=self._handle_session_change,
            on_event=self._handle_event,
            on_error=self._handle_error,
            session_path=self._config.session_file,
            project_path=self._project_path,
            poll_interval=self._config.poll_interval_seconds,
        )
        self.server: OfficeWebServer | None = None
        self._lock: InstanceLock | None = None
        self._lock_task: asyncio.Task | None = None

    # ── Watcher callbacks ──

    def _handle_session_change(self, snapshot: SessionSnapshot) -> None:
        projection = session_to_projection(snapshot)
        if projection.active_plan:
            plan_path = get_plans_dir(self._project_path) / projection.active_plan
            try:
                documents = scan_plan_documents(plan_path)
            except OSError:
                logger.warning("Document scan failed for %s", plan_path, exc_info=True)
            else:
                projection = replace(projection, documents=tuple(documents))
        self.bus.set_state(projection)

    def _handle_event(self, event: OfficeEvent) -> None:
        current = self.bus.get_state()
        updated = process_event(current, event)
        if updated is not current:
            self.bus.set_state(updated)
        logger.debug("Event %s agent=%s", event.event_type.value, event.agent_id)
        self.bus.emit(event)

    def _handle_error(self, error: Exception) -> None:
        self._last_error = error
        if self._on_error is not None:
            self._on_error(error)

    # ── Lifecycle ──

    def start_watching(self) -> None:
        """Start the watcher. Must run inside the event loop."""
        if not self.watcher.start():
            error = self._last_error
            if isinstance(error, SessionNotFoundError):
                raise error
            raise SessionNotFoundError("No active session found")

    async def start_web(self) -> int:
        """Start watcher, instance lock and server. Returns the dashboard port.

        Raises LockHeldError when another live dashboard serves the same
        session; its port is on the exception.
        """
        self.start_watching()
        assert self.watcher.session_path is not None
        self._lock = InstanceLock(
            lock_path_for(self.watcher.session_path),
            stale_seconds=self._config.lock_stale_seconds,
        )
        try:
            self._lock.acquire()
        except Exception:
            self.watcher.stop()
            raise

        self.server = OfficeWebServer(
            self.bus,
            host=self._config.host,
            port=self._config.port,
            max_port_attempts=self._config.max_port_attempts,
        )
        try:
            port = await self.server.start()
        except Exception:
            self._lock.release()
            self.watcher.stop()
            raise
        self._lock.refresh(port=port)
        self._lock_task = asyncio.create_task(self._refresh_lock_loop())

        if self._config.auto_open:
            open_browser(f"http://{self._config.host}:{port}")
        return port

    async def _refresh_lock_loop(self) -> None:
        while self._lock is not None:
            await asyncio.sleep(self._config.lock_refresh_seconds)
            self._lock.refresh()

    async def stop(self) -> None:
        """Stop server, watcher and lock, then dispose the bus. Idempotent."""
        if self._lock_task is not None:
            self._lock_task.cancel()
            self._lock_task = None
        if self.server is not None:
            await self.server.stop()
            self.server = None
        self.watcher.stop()
        if self._lock is not None:
            self._lock.release()
            self._lock = None
        self.bus.dispose()
