"""Viewer-facing projection of a session.

The projection is owned by the event bus and always replaced wholesale.
Producers build a fresh instance (or a ``dataclasses.replace`` copy); no
one mutates a published projection.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from agent_office.shared.icons import CharacterType


class AgentViewState(str, Enum):
    """Visual state of an agent desk."""
    IDLE = "idle"
    WORKING = "working"
    WALKING = "walking"
    DELIVERING = "delivering"
    RECEIVING = "receiving"


class NotificationType(str, Enum):
    SKILL = "skill"
    HANDOFF = "handoff"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class AgentView:
    id: str
    role: str
    agent_type: str = "sub-agent"
    character_type: CharacterType = CharacterType.OTHER
    icon: str = ""
    state: AgentViewState = AgentViewState.IDLE
    active_skill: str | None = None
    progress: int = 0
    speech_bubble: str | None = None
    has_fire_effect: bool = False
    session_id: str = ""
    parent_session_id: str | None = None


@dataclass(frozen=True)
class OrchestratorView(AgentView):
    agent_type: str = "orchestrator"
    delegated_to: tuple[str, ...] = ()
    total_sub_agents: int = 0
    completed_sub_agents: int = 0


@dataclass(frozen=True)
class TokenCounts:
    input: int
    output: int


@dataclass(frozen=True)
class InboxItem:
    """Summary of a delivered result, one per completed agent."""
    id: str
    agent_id: str
    agent_role: str
    agent_icon: str
    timestamp: int
    title: str
    preview: str
    status: str = "unread"
    full_content: str | None = None
    token_usage: TokenCounts | None = None
    duration: int = 0
    skills_used: tuple[str, ...] = ()


@dataclass(frozen=True)
class PlanDocument:
    id: str
    name: str
    display_name: str
    doc_type: str
    icon: str
    path: str
    relative_path: str
    modified_at: int
    created_at: int
    size: int
    extension: str
    phase_number: int | None = None


@dataclass(frozen=True)
class OfficeNotification:
    message: str
    notification_type: NotificationType
    timestamp: int


@dataclass(frozen=True)
class OfficeProjection:
    orchestrator: OrchestratorView | None = None
    agents: dict[str, AgentView] = field(default_factory=dict)
    session_id: str | None = None
    project_dir: str | None = None
    active_plan: str | None = None
    app_name: str | None = None
    current_notification: OfficeNotification | None = None
    inbox: tuple[InboxItem, ...] = ()
    documents: tuple[PlanDocument, ...] = ()
    is_active: bool = False


# ── Wire serialization ──

_RENAMES = {
    "notification_type": "type",
    "doc_type": "type",
}


def _camel(name: str) -> str:
    name = _RENAMES.get(name, name)
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _to_wire(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_camel(k) if isinstance(k, str) else k: _to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(v) for v in value]
    return value


def serialize_projection(projection: OfficeProjection) -> dict[str, Any]:
    """Convert a projection to the JSON payload sent to viewers.

    The agent mapping becomes an explicit ``[{"key", "value"}]`` list since
    the wire format has no map type. Field names are camelCased.
    """
    agents = [
        {"key": agent_id, "value": _to_wire(asdict(view))}
        for agent_id, view in projection.agents.items()
    ]
    payload = _to_wire({
        "orchestrator": asdict(projection.orchestrator) if projection.orchestrator else None,
        "session_id": projection.session_id,
        "project_dir": projection.project_dir,
        "active_plan": projection.active_plan,
        "app_name": projection.app_name,
        "current_notification": (
            asdict(projection.current_notification)
            if projection.current_notification else None
        ),
        "inbox": [asdict(item) for item in projection.inbox],
        "documents": [asdict(doc) for doc in projection.documents],
        "is_active": projection.is_active,
    })
    payload["agents"] = agents
    return payload
