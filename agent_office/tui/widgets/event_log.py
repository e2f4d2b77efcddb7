"""RichLog panel listing office events as they arrive."""

from __future__ import annotations

from datetime import datetime

from rich.markup import escape
from textual.widgets import RichLog

from agent_office.adapters.events import EventType, OfficeEvent

EVENT_COLORS = {
    EventType.AGENT_IDLE: "dim",
    EventType.AGENT_WORKING: "yellow",
    EventType.SKILL_ACTIVATED: "bold yellow",
    EventType.HANDOFF_START: "magenta",
    EventType.HANDOFF_COMPLETE: "magenta",
    EventType.RECEIVED_WORK: "cyan",
    EventType.DELIVERING: "green",
    EventType.TASK_COMPLETE: "green",
    EventType.SESSION_COMPLETE: "bold green",
}


class EventLog(RichLog):
    """Scrolling log of events as they are emitted."""

    def __init__(self, **kwargs) -> None:
        super().__init__(
            auto_scroll=True,
            wrap=True,
            markup=True,
            highlight=False,
            max_lines=2000,
            **kwargs,
        )

    def log_event(self, event: OfficeEvent) -> None:
        color = EVENT_COLORS.get(event.event_type, "white")
        stamp = datetime.fromtimestamp(event.timestamp / 1000).strftime("%H:%M:%S")
        target = f" → {escape(event.target_agent_id)}" if event.target_agent_id else ""
        self.write(
            f"[dim]{stamp}[/dim] [{color}]{event.event_type.value}[/{color}] "
            f"{escape(event.agent_id)}{target}: {escape(event.message)}"
        )

    def log_error(self, message: str) -> None:
        self.write(f"[red]Error:[/red] {escape(message)}")
