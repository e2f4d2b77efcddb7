"""Orchestrator desk and the sub-agent desk grid."""

from __future__ import annotations

from rich.columns import Columns
from rich.console import Group
from rich.panel import Panel
from rich.text import Text
from textual.widgets import Static

from agent_office.shared.models.projection import (
    AgentView,
    AgentViewState,
    OrchestratorView,
)

STATE_STYLES: dict[AgentViewState, str] = {
    AgentViewState.IDLE: "dim",
    AgentViewState.WORKING: "yellow",
    AgentViewState.WALKING: "cyan",
    AgentViewState.DELIVERING: "green",
    AgentViewState.RECEIVING: "magenta",
}

_BAR_WIDTH = 16


def progress_bar(progress: int, width: int = _BAR_WIDTH) -> Text:
    """Render 0..100 as a fixed-width block bar."""
    progress = max(0, min(100, progress))
    filled = round(width * progress / 100)
    bar = Text()
    bar.append("█" * filled, style="green")
    bar.append("░" * (width - filled), style="dim")
    bar.append(f" {progress:3d}%", style="dim")
    return bar


def desk_body(view: AgentView) -> Text:
    style = STATE_STYLES.get(view.state, "white")
    body = Text()
    body.append(f"● {view.state.value}", style=style)
    if view.active_skill:
        body.append(" · ", style="dim")
        body.append(view.active_skill, style="bold red" if view.has_fire_effect else "bold")
    body.append("\n")
    body.append_text(progress_bar(view.progress))
    if view.speech_bubble:
        body.append("\n")
        body.append(f"“{view.speech_bubble}”", style="italic")
    return body


def desk_panel(view: AgentView) -> Panel:
    border = "red" if view.has_fire_effect else STATE_STYLES.get(view.state, "white")
    return Panel(
        desk_body(view),
        title=f"{view.icon} {view.role}",
        title_align="left",
        border_style=border,
        width=34,
    )


class OrchestratorDesk(Static):
    """The orchestrator's desk with delegation counts."""

    def show(self, view: OrchestratorView | None) -> None:
        if view is None:
            self.update(Text("No orchestrator active", style="dim italic"))
            return
        footer = Text(
            f"{view.completed_sub_agents}/{view.total_sub_agents} sub-agents done",
            style="dim",
        )
        if view.delegated_to:
            footer.append(f" · delegating to {len(view.delegated_to)}", style="cyan")
        self.update(Panel(
            Group(desk_body(view), footer),
            title=f"{view.icon} {view.role}",
            title_align="left",
            border_style="bold " + STATE_STYLES.get(view.state, "white"),
        ))


class AgentGrid(Static):
    """Sub-agent desks laid out in columns, in insertion order."""

    def show(self, agents: dict[str, AgentView]) -> None:
        if not agents:
            self.update(Text("No sub-agents yet", style="dim italic"))
            return
        self.update(Columns([desk_panel(v) for v in agents.values()], equal=True))
