"""Agent Office TUI — Textual application class."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Footer, Header, Static

from agent_office.adapters.dashboard import OfficeDashboard
from agent_office.adapters.events import EventType, OfficeEvent
from agent_office.engine.config import OfficeConfig
from agent_office.engine.errors import SessionNotFoundError
from agent_office.shared.models.projection import (
    AgentViewState,
    NotificationType,
    OfficeProjection,
)
from agent_office.tui.widgets.desks import AgentGrid, OrchestratorDesk
from agent_office.tui.widgets.event_log import EventLog
from agent_office.tui.widgets.panels import DocumentsPanel, InboxPanel
from agent_office.tui.widgets.status_bar import StatusBar

logger = logging.getLogger(__name__)

NOTIFICATION_SECONDS = 4.0

_NOTIFICATION_STYLES = {
    NotificationType.SKILL: "bold black on yellow",
    NotificationType.HANDOFF: "bold white on magenta",
    NotificationType.SUCCESS: "bold black on green",
    NotificationType.INFO: "bold white on blue",
}


class OfficeApp(App):
    """Terminal view of the office, fed by the same bus as the web dashboard."""

    TITLE = "Agent Office"
    SUB_TITLE = "Live session"
    CSS = """
    #notification { height: 1; display: none; }
    #notification.visible { display: block; }
    #office { height: 1fr; }
    #floor { width: 1fr; }
    #side { width: 44; border-left: solid $primary-darken-2; }
    #inbox, #documents { height: auto; padding: 0 1 1 1; }
    #event-log { height: 8; border-top: solid $primary-darken-2; }
    #status-bar { height: 1; background: $panel; }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("i", "toggle_inbox", "Inbox"),
        ("d", "toggle_docs", "Docs"),
    ]

    def __init__(
        self,
        config: OfficeConfig | None = None,
        project_path: Path | None = None,
        dashboard: OfficeDashboard | None = None,
    ) -> None:
        super().__init__()
        self.dashboard = dashboard or OfficeDashboard(
            config, project_path=project_path, on_error=self._on_watch_error,
        )
        self._unsubscribers: list[Callable[[], None]] = []
        self._last_notification_ts = 0

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="notification")
        with Horizontal(id="office"):
            with VerticalScroll(id="floor"):
                yield OrchestratorDesk(id="orchestrator")
                yield AgentGrid(id="agents")
            with VerticalScroll(id="side"):
                yield InboxPanel(id="inbox")
                yield DocumentsPanel(id="documents")
        yield EventLog(id="event-log")
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        bus = self.dashboard.bus
        self._unsubscribers = [
            bus.on_state_change(self._on_state),
            bus.on_event(self._on_event),
        ]
        try:
            self.dashboard.start_watching()
        except SessionNotFoundError as exc:
            logger.error("Cannot start terminal view: %s", exc)
            self.exit(return_code=1, message=str(exc))
            return
        self.query_one("#status-bar", StatusBar).status = "watching"

    async def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self.dashboard.stop()

    # ── Bus listeners ──

    def _on_state(self, state: OfficeProjection) -> None:
        self.query_one("#orchestrator", OrchestratorDesk).show(state.orchestrator)
        self.query_one("#agents", AgentGrid).show(state.agents)
        self.query_one("#inbox", InboxPanel).show(state.inbox)
        self.query_one("#documents", DocumentsPanel).show(state.documents)

        bar = self.query_one("#status-bar", StatusBar)
        bar.session_id = state.session_id or "No session"
        bar.active_plan = state.active_plan or ""
        bar.total = len(state.agents)
        bar.working = sum(
            1 for a in state.agents.values() if a.state == AgentViewState.WORKING
        )

        notification = state.current_notification
        if notification is not None and notification.timestamp != self._last_notification_ts:
            self._last_notification_ts = notification.timestamp
            self._show_notification(
                notification.message,
                _NOTIFICATION_STYLES.get(notification.notification_type, "bold"),
            )

    def _on_event(self, event: OfficeEvent) -> None:
        self.query_one("#event-log", EventLog).log_event(event)
        if event.event_type == EventType.SESSION_COMPLETE:
            self.query_one("#status-bar", StatusBar).status = "complete"

    def _on_watch_error(self, error: Exception) -> None:
        if not self.is_running:
            return
        self.query_one("#event-log", EventLog).log_error(str(error))
        self.query_one("#status-bar", StatusBar).status = "error"

    def _show_notification(self, message: str, style: str) -> None:
        banner = self.query_one("#notification", Static)
        banner.update(Text(f" {message} ", style=style))
        banner.add_class("visible")
        self.set_timer(NOTIFICATION_SECONDS, lambda: banner.remove_class("visible"))

    # ── Actions ──

    def action_toggle_inbox(self) -> None:
        panel = self.query_one("#inbox", InboxPanel)
        panel.display = not panel.display

    def action_toggle_docs(self) -> None:
        panel = self.query_one("#documents", DocumentsPanel)
        panel.display = not panel.display
