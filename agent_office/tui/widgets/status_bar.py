"""Bottom bar showing the session, active plan and desk counts."""

from __future__ import annotations

from rich.text import Text
from textual.reactive import reactive
from textual.widget import Widget


class StatusBar(Widget):
    """Single-line status bar with session info and watcher state."""

    session_id: reactive[str] = reactive("No session")
    active_plan: reactive[str] = reactive("")
    working: reactive[int] = reactive(0)
    total: reactive[int] = reactive(0)
    status: reactive[str] = reactive("waiting")

    def render(self) -> Text:
        status_colors = {
            "watching": "green",
            "complete": "cyan",
            "waiting": "yellow",
            "error": "red bold",
        }
        color = status_colors.get(self.status, "white")

        bar = Text()
        bar.append(f" {self.session_id} ", style="bold")
        if self.active_plan:
            bar.append(" │ ", style="dim")
            bar.append(self.active_plan, style="cyan")
        bar.append(" │ ", style="dim")
        bar.append(f"{self.working}/{self.total} agents working", style="dim")
        bar.append(" │ ", style="dim")
        bar.append(f"● {self.status}", style=color)
        return bar
