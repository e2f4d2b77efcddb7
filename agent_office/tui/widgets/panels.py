"""Inbox of delivered results and the plan documents list."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from agent_office.shared.models.projection import InboxItem, PlanDocument
from agent_office.shared.services.documents import group_documents_by_type

_GROUP_TITLES = {
    "plan": "Plan",
    "phase": "Phases",
    "research": "Research",
    "artifact": "Artifacts",
    "report": "Reports",
}


def _format_duration(ms: int) -> str:
    secs = ms // 1000
    if secs < 60:
        return f"{secs}s"
    m, s = divmod(secs, 60)
    return f"{m}m {s}s"


class InboxPanel(Static):
    """Completed agents' results, newest first."""

    def show(self, items: tuple[InboxItem, ...]) -> None:
        text = Text()
        text.append(f"Inbox ({len(items)})\n", style="bold")
        if not items:
            text.append("Nothing delivered yet", style="dim italic")
        for item in items:
            text.append(f"\n{item.agent_icon} {item.title}", style="bold")
            text.append(f"  {_format_duration(item.duration)}", style="dim")
            if item.token_usage is not None:
                text.append(
                    f"  {item.token_usage.input:,} in / {item.token_usage.output:,} out",
                    style="dim",
                )
            if item.preview:
                text.append(f"\n  {item.preview}")
        self.update(text)


class DocumentsPanel(Static):
    """Active plan documents grouped by kind."""

    def show(self, documents: tuple[PlanDocument, ...]) -> None:
        text = Text()
        text.append(f"Documents ({len(documents)})\n", style="bold")
        if not documents:
            text.append("No plan documents", style="dim italic")
        for doc_type, docs in group_documents_by_type(list(documents)).items():
            if not docs:
                continue
            text.append(f"\n{_GROUP_TITLES.get(doc_type, doc_type)}\n", style="cyan")
            for doc in docs:
                text.append(f"  {doc.icon} {doc.display_name}\n")
        self.update(text)
