"""Projection mapper: session snapshot -> OfficeProjection.

Pure and total. Partially populated records map to defaults instead of
raising, since the session file is written by another process.
"""
from __future__ import annotations

import time

from agent_office.engine.models import (
    MAIN_AGENT_TYPE,
    AgentRecord,
    AgentStatus,
    SessionSnapshot,
    parse_timestamp_ms,
)
from agent_office.shared.icons import (
    format_display_name,
    get_character_type,
    get_icon_for_role,
)
from agent_office.shared.models.projection import (
    AgentView,
    AgentViewState,
    InboxItem,
    OfficeProjection,
    OrchestratorView,
    TokenCounts,
)

# Assumed duration of a sub-agent task, used to estimate progress.
ESTIMATED_TASK_MS = 120_000
PREVIEW_CHARS = 100


def is_orchestrator(agent: AgentRecord, snapshot: SessionSnapshot) -> bool:
    """Any one of the three signals marks the root agent."""
    return (
        agent.agent_type == MAIN_AGENT_TYPE
        or agent.parent_id is None
        or agent.agent_id == snapshot.session_id
    )


def calculate_progress(agent: AgentRecord, now_ms: int) -> int:
    if agent.status == AgentStatus.COMPLETED:
        return 100
    if agent.status == AgentStatus.FAILED:
        return 0
    start = parse_timestamp_ms(agent.start_time)
    if start is None:
        return 0
    elapsed = now_ms - start
    return max(0, min(100, round(elapsed / ESTIMATED_TASK_MS * 100)))


def _speech_bubble(agent: AgentRecord) -> str | None:
    if agent.status == AgentStatus.COMPLETED:
        return "Task complete!"
    if agent.status == AgentStatus.FAILED:
        return "Task failed"
    if agent.skills:
        return f"Working on {agent.skills[0]}..."
    return None


def agent_to_view(
    agent: AgentRecord,
    snapshot: SessionSnapshot,
    now_ms: int,
) -> AgentView:
    orchestrator = is_orchestrator(agent, snapshot)
    role = agent.role or "unknown"
    has_active_skill = bool(agent.skills) and agent.status == AgentStatus.ACTIVE
    fields = dict(
        id=agent.agent_id,
        role=role,
        character_type=get_character_type(role),
        icon=get_icon_for_role(role, orchestrator),
        state=AgentViewState.WORKING if agent.status == AgentStatus.ACTIVE else AgentViewState.IDLE,
        active_skill=agent.first_skill,
        progress=calculate_progress(agent, now_ms),
        speech_bubble=_speech_bubble(agent),
        has_fire_effect=has_active_skill,
        session_id=agent.agent_id,
        parent_session_id=agent.parent_id,
    )
    if not orchestrator:
        return AgentView(**fields)

    subs = [a for a in snapshot.agents if not is_orchestrator(a, snapshot)]
    return OrchestratorView(
        **fields,
        delegated_to=tuple(a.agent_id for a in subs if a.status == AgentStatus.ACTIVE),
        total_sub_agents=len(subs),
        completed_sub_agents=sum(1 for a in subs if a.status == AgentStatus.COMPLETED),
    )


def agent_to_inbox_item(agent: AgentRecord, now_ms: int) -> InboxItem:
    start = parse_timestamp_ms(agent.start_time)
    end = parse_timestamp_ms(agent.end_time)
    role = agent.role or "unknown"
    usage = agent.token_usage
    return InboxItem(
        id=f"inbox-{agent.agent_id}",
        agent_id=agent.agent_id,
        agent_role=role,
        agent_icon=get_icon_for_role(agent.role),
        timestamp=end if end is not None else now_ms,
        title=f"{format_display_name(agent.role or 'Agent')} completed",
        preview=agent.prompt[:PREVIEW_CHARS] if agent.prompt else "Task completed",
        token_usage=TokenCounts(usage.input, usage.output) if usage else None,
        duration=end - start if start is not None and end is not None else 0,
        skills_used=agent.skills,
    )


def session_to_projection(
    snapshot: SessionSnapshot | None,
    now_ms: int | None = None,
) -> OfficeProjection:
    """Map a snapshot to a fresh projection. ``None`` yields the empty projection."""
    if snapshot is None:
        return OfficeProjection()
    now = int(time.time() * 1000) if now_ms is None else now_ms

    orchestrator: OrchestratorView | None = None
    agents: dict[str, AgentView] = {}
    inbox: dict[str, InboxItem] = {}

    for agent in snapshot.agents:
        view = agent_to_view(agent, snapshot, now)
        if isinstance(view, OrchestratorView):
            orchestrator = view
        else:
            agents[view.id] = view

        if agent.status == AgentStatus.COMPLETED and agent.agent_id not in inbox:
            inbox[agent.agent_id] = agent_to_inbox_item(agent, now)

    return OfficeProjection(
        orchestrator=orchestrator,
        agents=agents,
        session_id=snapshot.session_id,
        project_dir=snapshot.project_dir,
        active_plan=snapshot.active_plan,
        app_name=snapshot.app_name,
        inbox=tuple(sorted(inbox.values(), key=lambda i: i.timestamp, reverse=True)),
        is_active=any(a.status == AgentStatus.ACTIVE for a in snapshot.agents),
    )
